"""Configuration of the gRPC to Pub/Sub bridge."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ..config import ConfigGrpcRequest, parse_duration_ms_str, parse_socket_addr, parse_usize_str

DEFAULT_POOL_SIZE = 4
DEFAULT_PUBLISHER_WORKERS = 3
DEFAULT_PUBLISHER_FLUSH_INTERVAL_MS = 100
DEFAULT_PUBLISHER_BUNDLE_SIZE = 3
DEFAULT_MAX_MESSAGE_SIZE = 512 * 1024 * 1024

DEFAULT_BATCH_MAX_MESSAGES = 10
DEFAULT_BATCH_MAX_SIZE_BYTES = 9_500_000
DEFAULT_BATCH_MAX_WAIT = timedelta(milliseconds=100)
DEFAULT_BATCH_MAX_IN_PROGRESS = 100

_HEADER_FIELD = "x_token"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a mapping, got {data!r}")
    return data


def _required(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ValueError(f"{what}: missing field `{key}`")
    return data[key]


def _usize(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{what}: expected an unsigned integer, got {value!r}")
    return value


def _opt_usize(value: Any, what: str) -> int | None:
    return None if value is None else _usize(value, what)


def _str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {value!r}")
    return value


def _opt_str(value: Any, what: str) -> str | None:
    return None if value is None else _str(value, what)


def _header_value(data: Mapping[str, Any], what: str) -> str | None:
    return _opt_str(data.get(_HEADER_FIELD), f"{what}.{_HEADER_FIELD}")


def _opt_bool(value: Any, what: str) -> bool | None:
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"{what}: expected a boolean, got {value!r}")
    return value


@dataclass
class ConfigClient:
    """How the Pub/Sub client authenticates and how many connections it keeps."""

    with_auth: bool | None = None
    with_credentials: str | None = None
    pool_size: int | None = DEFAULT_POOL_SIZE

    @classmethod
    def from_dict(cls, data: Any) -> ConfigClient:
        data = _mapping(data, "client")
        return cls(
            with_auth=_opt_bool(data.get("with_auth"), "client.with_auth"),
            with_credentials=_opt_str(data.get("with_credentials"), "client.with_credentials"),
            pool_size=_opt_usize(data.get("pool_size", DEFAULT_POOL_SIZE), "client.pool_size"),
        )


@dataclass
class ConfigGrpc2PubSubPublisher:
    """Settings handed to the Pub/Sub publisher."""

    workers: int = DEFAULT_PUBLISHER_WORKERS
    flush_interval_ms: int = DEFAULT_PUBLISHER_FLUSH_INTERVAL_MS
    bundle_size: int = DEFAULT_PUBLISHER_BUNDLE_SIZE

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpc2PubSubPublisher:
        data = _mapping(data, "publisher")
        flush = data.get("flush_interval_ms")
        return cls(
            workers=_usize(data.get("workers", DEFAULT_PUBLISHER_WORKERS), "publisher.workers"),
            flush_interval_ms=(
                DEFAULT_PUBLISHER_FLUSH_INTERVAL_MS
                if "flush_interval_ms" not in data
                else parse_usize_str(flush)
            ),
            bundle_size=_usize(
                data.get("bundle_size", DEFAULT_PUBLISHER_BUNDLE_SIZE), "publisher.bundle_size"
            ),
        )


@dataclass
class ConfigGrpc2PubSubBatch:
    """Limits of one published batch and of batches in flight."""

    max_messages: int = DEFAULT_BATCH_MAX_MESSAGES
    max_size_bytes: int = DEFAULT_BATCH_MAX_SIZE_BYTES
    max_wait: timedelta = DEFAULT_BATCH_MAX_WAIT
    max_in_progress: int = DEFAULT_BATCH_MAX_IN_PROGRESS

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpc2PubSubBatch:
        data = _mapping(data, "batch")
        return cls(
            max_messages=(
                parse_usize_str(data["max_messages"])
                if "max_messages" in data
                else DEFAULT_BATCH_MAX_MESSAGES
            ),
            max_size_bytes=(
                parse_usize_str(data["max_size_bytes"])
                if "max_size_bytes" in data
                else DEFAULT_BATCH_MAX_SIZE_BYTES
            ),
            max_wait=(
                parse_duration_ms_str(data["max_wait_ms"])
                if "max_wait_ms" in data
                else DEFAULT_BATCH_MAX_WAIT
            ),
            max_in_progress=(
                parse_usize_str(data["max_in_progress"])
                if "max_in_progress" in data
                else DEFAULT_BATCH_MAX_IN_PROGRESS
            ),
        )


@dataclass
class ConfigGrpc2PubSub:
    """Where to read updates from and which topic to publish them to."""

    endpoint: str
    request: ConfigGrpcRequest
    topic: str
    publisher: ConfigGrpc2PubSubPublisher
    batch: ConfigGrpc2PubSubBatch
    x_token: str | None = None
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    create_if_not_exists: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpc2PubSub:
        what = "grpc2pubsub"
        data = _mapping(data, what)
        create = data.get("create_if_not_exists", False)
        if not isinstance(create, bool):
            raise ValueError(f"{what}.create_if_not_exists: expected a boolean, got {create!r}")
        header = _header_value(data, what)
        return cls(
            endpoint=_str(_required(data, "endpoint", what), f"{what}.endpoint"),
            request=ConfigGrpcRequest.from_dict(_required(data, "request", what)),
            topic=_str(_required(data, "topic", what), f"{what}.topic"),
            publisher=ConfigGrpc2PubSubPublisher.from_dict(_required(data, "publisher", what)),
            batch=ConfigGrpc2PubSubBatch.from_dict(_required(data, "batch", what)),
            x_token=header,
            max_message_size=(
                parse_usize_str(data["max_message_size"])
                if "max_message_size" in data
                else DEFAULT_MAX_MESSAGE_SIZE
            ),
            create_if_not_exists=create,
        )


@dataclass
class Config:
    """Top-level configuration of the Pub/Sub tool."""

    prometheus: tuple[str, int] | None = None
    client: ConfigClient = field(default_factory=ConfigClient)
    grpc2pubsub: ConfigGrpc2PubSub | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        data = _mapping(data, "config")
        prometheus = data.get("prometheus")
        client = data.get("client")
        section = data.get("grpc2pubsub")
        return cls(
            prometheus=None if prometheus is None else parse_socket_addr(prometheus),
            client=ConfigClient() if client is None else ConfigClient.from_dict(client),
            grpc2pubsub=None if section is None else ConfigGrpc2PubSub.from_dict(section),
        )