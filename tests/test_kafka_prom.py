import asyncio
import json

import pytest

from geyser_tools.kafka import prom
from geyser_tools.kafka.prom import KafkaLogLevel, StatsContext
from geyser_tools.metrics import Registry
from geyser_tools.prom import GrpcMessageKind


def test_recv_inc_increments_counter():
    counter = prom.KAFKA_RECV_TOTAL
    registry = Registry()
    registry.register(counter)
    before = counter.value
    prom.recv_inc()
    prom.recv_inc()
    text = registry.encode()
    assert f"kafka_recv_total {before + 2}" in text


def test_dedup_inc_increments_counter():
    counter = prom.KAFKA_DEDUP_TOTAL
    registry = Registry()
    registry.register(counter)
    before = counter.value
    prom.dedup_inc()
    text = registry.encode()
    assert f"kafka_dedup_total {before + 1}" in text


def test_sent_inc_uses_kind_label():
    before = prom.KAFKA_SENT_TOTAL.labels("unknown").value
    prom.sent_inc(GrpcMessageKind.UNKNOWN)
    assert prom.KAFKA_SENT_TOTAL.labels("unknown").value == before + 1


def test_stats_sets_broker_metrics():
    ctx = StatsContext()
    ctx.stats({"brokers": {"broker-a": {"tx": 5, "txerrs": 2, "outbuf_cnt": 0}}})
    assert prom.KAFKA_STATS.labels("broker-a", "tx").value == 5
    assert prom.KAFKA_STATS.labels("broker-a", "txerrs").value == 2
    assert prom.KAFKA_STATS.labels("broker-a", "outbuf_cnt").value == 0


def test_stats_latency_windows_from_json_text():
    ctx = StatsContext()
    text = json.dumps(
        {
            "brokers": {
                "broker-b": {
                    "int_latency": {"min": 3, "p99_99": 9},
                    "outbuf_latency": {"avg": 4},
                }
            }
        }
    )
    ctx.stats(text)
    assert prom.KAFKA_STATS.labels("broker-b", "int_latency.min").value == 3
    assert prom.KAFKA_STATS.labels("broker-b", "int_latency.p99_99").value == 9
    assert prom.KAFKA_STATS.labels("broker-b", "outbuf_latency.avg").value == 4


def test_stats_rejects_non_mapping():
    with pytest.raises(ValueError):
        StatsContext().stats("[1, 2]")


@pytest.mark.parametrize(
    "level",
    [KafkaLogLevel.EMERG, KafkaLogLevel.ALERT, KafkaLogLevel.CRITICAL, KafkaLogLevel.ERROR],
)
def test_severe_log_signals_error(level):
    ctx = StatsContext()
    ctx.log(level, "FAC", "message")
    assert ctx.error_occurred is True


@pytest.mark.parametrize("level", [KafkaLogLevel.WARNING, KafkaLogLevel.INFO, 7])
def test_mild_log_does_not_signal(level):
    ctx = StatsContext()
    ctx.log(level, "FAC", "message")
    assert ctx.error_occurred is False


def test_unknown_log_level_rejected():
    with pytest.raises(ValueError):
        StatsContext().log(42, "FAC", "message")


def test_error_signals():
    ctx = StatsContext()
    ctx.error("broker down", "reason")
    assert ctx.error_occurred is True


@pytest.mark.asyncio
async def test_wait_error_completes_after_error():
    ctx = StatsContext()
    waiter = asyncio.create_task(ctx.wait_error())
    await asyncio.sleep(0)
    assert not waiter.done()
    ctx.error("boom", "reason")
    await asyncio.wait_for(waiter, timeout=1)
    assert waiter.done() and waiter.exception() is None


@pytest.mark.asyncio
async def test_wait_error_returns_when_already_failed():
    ctx = StatsContext()
    ctx.log(KafkaLogLevel.ERROR, "FAC", "message")
    await asyncio.wait_for(ctx.wait_error(), timeout=1)
    assert ctx.error_occurred is True


def test_collectors_register_and_encode():
    registry = Registry()
    for collector in prom.COLLECTORS:
        registry.register(collector)
    prom.recv_inc()
    text = registry.encode()
    assert "# TYPE kafka_recv_total counter" in text
    assert "kafka_dedup_total" in text