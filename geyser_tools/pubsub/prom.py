"""Metrics of the gRPC to Pub/Sub bridge."""

from __future__ import annotations

from ..config import ConfigGrpcRequestCommitment
from ..metrics import CounterVec, Gauge, GaugeVec
from ..prom import GrpcMessageKind

GOOGLE_PUBSUB_RECV_TOTAL = CounterVec(
    "google_pubsub_recv_total", "Total number of received messages from gRPC by type", ["kind"]
)

GOOGLE_PUBSUB_SENT_TOTAL = CounterVec(
    "google_pubsub_sent_total",
    "Total number of uploaded messages to pubsub by type",
    ["kind", "status"],
)

GOOGLE_PUBSUB_SEND_BATCHES_IN_PROGRESS = Gauge(
    "google_pubsub_send_batches_in_progress", "Number of batches in progress"
)

GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS = GaugeVec(
    "google_pubsub_awaiters_in_progress", "Number of awaiters in progress by type", ["kind"]
)

GOOGLE_PUBSUB_DROP_OVERSIZED_TOTAL = CounterVec(
    "google_pubsub_drop_oversized_total", "Total number of dropped oversized messages", ["kind"]
)

GOOGLE_PUBSUB_SLOT_TIP = GaugeVec(
    "google_pubsub_slot_tip", "Latest received slot from gRPC by commitment", ["commitment"]
)

COLLECTORS = (
    GOOGLE_PUBSUB_RECV_TOTAL,
    GOOGLE_PUBSUB_SENT_TOTAL,
    GOOGLE_PUBSUB_SEND_BATCHES_IN_PROGRESS,
    GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS,
    GOOGLE_PUBSUB_DROP_OVERSIZED_TOTAL,
    GOOGLE_PUBSUB_SLOT_TIP,
)

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def recv_inc(kind: GrpcMessageKind) -> None:
    GOOGLE_PUBSUB_RECV_TOTAL.labels(kind.value).inc()
    GOOGLE_PUBSUB_RECV_TOTAL.labels("total").inc()


def sent_inc(kind: GrpcMessageKind, ok: bool) -> None:
    status = "success" if ok else "failed"
    GOOGLE_PUBSUB_SENT_TOTAL.labels(kind.value, status).inc()
    GOOGLE_PUBSUB_SENT_TOTAL.labels("total", status).inc()


def send_batches_inc() -> None:
    GOOGLE_PUBSUB_SEND_BATCHES_IN_PROGRESS.inc()


def send_batches_dec() -> None:
    GOOGLE_PUBSUB_SEND_BATCHES_IN_PROGRESS.dec()


def send_awaiters_inc(kind: GrpcMessageKind) -> None:
    GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS.labels(kind.value).inc()
    GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS.labels("total").inc()


def send_awaiters_dec(kind: GrpcMessageKind) -> None:
    GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS.labels(kind.value).dec()
    GOOGLE_PUBSUB_AWAITERS_IN_PROGRESS.labels("total").dec()


def drop_oversized_inc(kind: GrpcMessageKind) -> None:
    GOOGLE_PUBSUB_DROP_OVERSIZED_TOTAL.labels(kind.value).inc()


def _commitment_label(commitment: ConfigGrpcRequestCommitment | int) -> str:
    if isinstance(commitment, ConfigGrpcRequestCommitment):
        return commitment.value
    if isinstance(commitment, int) and not isinstance(commitment, bool):
        for level in ConfigGrpcRequestCommitment:
            if level.to_proto() == commitment:
                return level.value
    raise ValueError(f"invalid commitment: {commitment!r}")


def set_slot_tip(commitment: ConfigGrpcRequestCommitment | int, slot: int) -> None:
    """Record the latest slot seen for a commitment level (enum or its wire number)."""
    label = _commitment_label(commitment)
    if isinstance(slot, bool) or not isinstance(slot, int) or not _I64_MIN <= slot <= _I64_MAX:
        raise ValueError(f"invalid slot: {slot!r}")
    GOOGLE_PUBSUB_SLOT_TIP.labels(label).set(slot)