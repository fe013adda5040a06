from datetime import timedelta

import pytest

from geyser_tools.config import ConfigGrpcRequestCommitment, load
from geyser_tools.pubsub.config import (
    DEFAULT_BATCH_MAX_IN_PROGRESS,
    DEFAULT_BATCH_MAX_MESSAGES,
    DEFAULT_BATCH_MAX_SIZE_BYTES,
    DEFAULT_BATCH_MAX_WAIT,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_POOL_SIZE,
    DEFAULT_PUBLISHER_BUNDLE_SIZE,
    DEFAULT_PUBLISHER_FLUSH_INTERVAL_MS,
    DEFAULT_PUBLISHER_WORKERS,
    Config,
    ConfigClient,
    ConfigGrpc2PubSub,
    ConfigGrpc2PubSubBatch,
    ConfigGrpc2PubSubPublisher,
)


def _section(**extra):
    data = {
        "endpoint": "http://127.0.0.1:10000",
        "request": {"slots": {"client": {}}, "commitment": "confirmed"},
        "topic": "updates",
        "publisher": {},
        "batch": {},
    }
    data.update(extra)
    return data


def test_batch_defaults():
    batch = ConfigGrpc2PubSubBatch.from_dict({})
    assert batch.max_messages == DEFAULT_BATCH_MAX_MESSAGES
    assert batch.max_size_bytes == 9_500_000
    assert batch.max_wait == DEFAULT_BATCH_MAX_WAIT
    assert batch.max_in_progress == DEFAULT_BATCH_MAX_IN_PROGRESS


def test_batch_accepts_strings_with_separators():
    batch = ConfigGrpc2PubSubBatch.from_dict(
        {"max_messages": "20", "max_size_bytes": "1_000_000", "max_wait_ms": 250, "max_in_progress": 7}
    )
    assert batch.max_messages == 20
    assert batch.max_size_bytes == 1000000
    assert batch.max_wait == timedelta(milliseconds=250)
    assert batch.max_in_progress == 7


def test_batch_rejects_bad_number():
    with pytest.raises(ValueError):
        ConfigGrpc2PubSubBatch.from_dict({"max_messages": "ten"})


def test_publisher_defaults_and_values():
    default = ConfigGrpc2PubSubPublisher.from_dict({})
    assert default == ConfigGrpc2PubSubPublisher(
        DEFAULT_PUBLISHER_WORKERS, DEFAULT_PUBLISHER_FLUSH_INTERVAL_MS, DEFAULT_PUBLISHER_BUNDLE_SIZE
    )
    custom = ConfigGrpc2PubSubPublisher.from_dict(
        {"workers": 8, "flush_interval_ms": "1_500", "bundle_size": 12}
    )
    assert custom == ConfigGrpc2PubSubPublisher(8, 1500, 12)


def test_publisher_workers_must_be_integer():
    with pytest.raises(ValueError):
        ConfigGrpc2PubSubPublisher.from_dict({"workers": "8"})


def test_client_pool_size_default_and_null():
    assert ConfigClient.from_dict({}).pool_size == DEFAULT_POOL_SIZE
    assert ConfigClient.from_dict({"pool_size": None}).pool_size is None
    client = ConfigClient.from_dict({"with_auth": True, "pool_size": 2})
    assert client.with_auth is True
    assert client.with_credentials is None
    assert client.pool_size == 2


def test_grpc2pubsub_full_section():
    section = ConfigGrpc2PubSub.from_dict(
        _section(x_token="token", max_message_size="1_024", create_if_not_exists=True)
    )
    assert section.endpoint == "http://127.0.0.1:10000"
    assert section.x_token == "token"
    assert section.topic == "updates"
    assert section.max_message_size == 1024
    assert section.create_if_not_exists is True
    assert section.request.commitment is ConfigGrpcRequestCommitment.CONFIRMED
    assert set(section.request.slots) == {"client"}


def test_grpc2pubsub_defaults():
    section = ConfigGrpc2PubSub.from_dict(_section())
    assert section.max_message_size == 512 * 1024 * 1024
    assert section.max_message_size == DEFAULT_MAX_MESSAGE_SIZE
    assert section.create_if_not_exists is False
    assert section.x_token is None


@pytest.mark.parametrize("missing", ["endpoint", "request", "topic", "publisher", "batch"])
def test_grpc2pubsub_requires_fields(missing):
    data = _section()
    del data[missing]
    with pytest.raises(ValueError, match=missing):
        ConfigGrpc2PubSub.from_dict(data)


def test_config_empty():
    config = Config.from_dict({})
    assert config.prometheus is None
    assert config.grpc2pubsub is None
    assert config.client == ConfigClient()


def test_config_load_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "prometheus: 127.0.0.1:8873\n"
        "grpc2pubsub:\n"
        "  endpoint: http://127.0.0.1:10000\n"
        "  topic: updates\n"
        "  request:\n"
        "    blocks_meta: [meta]\n"
        "  publisher:\n"
        "    workers: 5\n"
        "  batch:\n"
        "    max_wait_ms: '2_000'\n",
        encoding="utf-8",
    )
    config = Config.from_dict(load(path))
    assert config.prometheus == ("127.0.0.1", 8873)
    assert config.grpc2pubsub.publisher.workers == 5
    assert config.grpc2pubsub.batch.max_wait == timedelta(milliseconds=2000)
    assert config.grpc2pubsub.request.blocks_meta == {"meta"}


def test_config_rejects_bad_prometheus():
    with pytest.raises(ValueError):
        Config.from_dict({"prometheus": "localhost"})