"""Metrics of the Kafka tools and a client context that reports librdkafka state."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import threading
from collections.abc import Mapping
from typing import Any

from ..metrics import Counter, CounterVec, GaugeVec
from ..prom import GrpcMessageKind

logger = logging.getLogger(__name__)

KAFKA_STATS = GaugeVec("kafka_stats", "librdkafka metrics", ["broker", "metric"])

KAFKA_DEDUP_TOTAL = Counter("kafka_dedup_total", "Total number of deduplicated messages")

KAFKA_RECV_TOTAL = Counter("kafka_recv_total", "Total number of received messages")

KAFKA_SENT_TOTAL = CounterVec(
    "kafka_sent_total", "Total number of uploaded messages by type", ["kind"]
)

COLLECTORS = (KAFKA_STATS, KAFKA_DEDUP_TOTAL, KAFKA_RECV_TOTAL, KAFKA_SENT_TOTAL)

BROKER_METRICS = (
    "outbuf_cnt",
    "outbuf_msg_cnt",
    "waitresp_cnt",
    "waitresp_msg_cnt",
    "tx",
    "txerrs",
    "txretries",
    "req_timeouts",
)

WINDOW_METRICS = (
    "min",
    "max",
    "avg",
    "sum",
    "cnt",
    "stddev",
    "hdrsize",
    "p50",
    "p75",
    "p90",
    "p95",
    "p99",
    "p99_99",
    "outofrange",
)

LATENCY_WINDOWS = ("int_latency", "outbuf_latency")


class KafkaLogLevel(enum.IntEnum):
    """Syslog-style severities used by librdkafka log callbacks."""

    EMERG = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


_FATAL_LEVELS = frozenset(
    {KafkaLogLevel.EMERG, KafkaLogLevel.ALERT, KafkaLogLevel.CRITICAL, KafkaLogLevel.ERROR}
)

_PY_LEVELS = {
    KafkaLogLevel.EMERG: logging.CRITICAL,
    KafkaLogLevel.ALERT: logging.CRITICAL,
    KafkaLogLevel.CRITICAL: logging.CRITICAL,
    KafkaLogLevel.ERROR: logging.ERROR,
    KafkaLogLevel.WARNING: logging.WARNING,
    KafkaLogLevel.NOTICE: logging.INFO,
    KafkaLogLevel.INFO: logging.INFO,
    KafkaLogLevel.DEBUG: logging.DEBUG,
}


def _set_value(broker: str, metric: str, value: Any) -> None:
    KAFKA_STATS.labels(broker, metric).set(float(value))


class StatsContext:
    """Exports broker statistics as metrics and signals the first client error once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fired = False
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future[None]]] = []

    @property
    def error_occurred(self) -> bool:
        with self._lock:
            return self._fired

    def _send_error(self) -> None:
        with self._lock:
            if self._fired:
                return
            self._fired = True
            waiters, self._waiters = self._waiters, []
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_resolve, future)
            except RuntimeError:
                pass

    async def wait_error(self) -> None:
        """Complete once the client has reported an error."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._fired:
                return
            future: asyncio.Future[None] = loop.create_future()
            self._waiters.append((loop, future))
        await future

    def stats(self, statistics: str | bytes | Mapping[str, Any]) -> None:
        """Record per-broker statistics; accepts the JSON text or its parsed form."""
        if isinstance(statistics, (str, bytes)):
            statistics = json.loads(statistics)
        if not isinstance(statistics, Mapping):
            raise ValueError(f"statistics: expected a mapping, got {statistics!r}")
        brokers = statistics.get("brokers") or {}
        for name, broker in brokers.items():
            for metric in BROKER_METRICS:
                if metric in broker:
                    _set_value(name, metric, broker[metric])
            for window_name in LATENCY_WINDOWS:
                window = broker.get(window_name)
                if window is None:
                    continue
                for metric in WINDOW_METRICS:
                    if metric in window:
                        _set_value(name, f"{window_name}.{metric}", window[metric])

    def log(self, level: int, fac: str, message: str) -> None:
        """Forward a client log line; error-or-worse severities signal an error."""
        level = KafkaLogLevel(level)
        logger.log(_PY_LEVELS[level], "librdkafka: %s %s", fac, message)
        if level in _FATAL_LEVELS:
            self._send_error()

    def error(self, error: Any, reason: str) -> None:
        """Log a client error and signal it."""
        logger.error("librdkafka: %s: %s", error, reason)
        self._send_error()


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)


def dedup_inc() -> None:
    KAFKA_DEDUP_TOTAL.inc()


def recv_inc() -> None:
    KAFKA_RECV_TOTAL.inc()


def sent_inc(kind: GrpcMessageKind) -> None:
    KAFKA_SENT_TOTAL.labels(kind.value).inc()