"""Configuration of the Kafka tools."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import ConfigGrpcRequest, parse_socket_addr, parse_usize_str
from .dedup import KafkaDedupMemory

DEFAULT_KAFKA_QUEUE_SIZE = 10_000
DEFAULT_CHANNEL_CAPACITY = 250_000

_HEADER_FIELD = "x_token"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a mapping, got {data!r}")
    return data


def _required(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ValueError(f"{what}: missing field `{key}`")
    return data[key]


def _str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {value!r}")
    return value


def _opt_str(value: Any, what: str) -> str | None:
    return None if value is None else _str(value, what)


def _header_value(data: Mapping[str, Any], what: str) -> str | None:
    return _opt_str(data.get(_HEADER_FIELD), f"{what}.{_HEADER_FIELD}")


def _str_map(value: Any, what: str) -> dict[str, str]:
    value = _mapping(value, what)
    return {_str(key, what): _str(item, f"{what}.{key}") for key, item in value.items()}


def _queue_size(data: Mapping[str, Any]) -> int:
    if "kafka_queue_size" in data:
        return parse_usize_str(data["kafka_queue_size"])
    return DEFAULT_KAFKA_QUEUE_SIZE


class ConfigDedupBackend(enum.Enum):
    """Storage used to remember already forwarded messages."""

    MEMORY = "memory"

    @classmethod
    def from_dict(cls, data: Any) -> ConfigDedupBackend:
        data = _mapping(data, "backend")
        kind = _required(data, "type", "backend")
        try:
            return cls(kind)
        except ValueError:
            raise ValueError(f"unknown dedup backend: {kind!r}") from None

    async def create(self) -> KafkaDedupMemory:
        match self:
            case ConfigDedupBackend.MEMORY:
                return KafkaDedupMemory()
        raise ValueError(f"unsupported dedup backend: {self!r}")


@dataclass
class ConfigDedup:
    """Settings of the deduplicating Kafka to Kafka relay."""

    kafka_input: str
    kafka_output: str
    backend: ConfigDedupBackend
    kafka: dict[str, str] = field(default_factory=dict)
    kafka_queue_size: int = DEFAULT_KAFKA_QUEUE_SIZE

    @classmethod
    def from_dict(cls, data: Any) -> ConfigDedup:
        what = "dedup"
        data = _mapping(data, what)
        return cls(
            kafka_input=_str(_required(data, "kafka_input", what), f"{what}.kafka_input"),
            kafka_output=_str(_required(data, "kafka_output", what), f"{what}.kafka_output"),
            backend=ConfigDedupBackend.from_dict(_required(data, "backend", what)),
            kafka=_str_map(data.get("kafka", {}), f"{what}.kafka"),
            kafka_queue_size=_queue_size(data),
        )


@dataclass
class ConfigGrpc2Kafka:
    """Settings of the gRPC to Kafka relay."""

    endpoint: str
    request: ConfigGrpcRequest
    kafka_topic: str
    x_token: str | None = None
    kafka: dict[str, str] = field(default_factory=dict)
    kafka_queue_size: int = DEFAULT_KAFKA_QUEUE_SIZE

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpc2Kafka:
        what = "grpc2kafka"
        data = _mapping(data, what)
        header = _header_value(data, what)
        return cls(
            endpoint=_str(_required(data, "endpoint", what), f"{what}.endpoint"),
            request=ConfigGrpcRequest.from_dict(_required(data, "request", what)),
            kafka_topic=_str(_required(data, "kafka_topic", what), f"{what}.kafka_topic"),
            x_token=header,
            kafka=_str_map(data.get("kafka", {}), f"{what}.kafka"),
            kafka_queue_size=_queue_size(data),
        )


@dataclass
class ConfigKafka2Grpc:
    """Settings of the Kafka to gRPC relay."""

    kafka_topic: str
    listen: tuple[str, int]
    kafka: dict[str, str] = field(default_factory=dict)
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY

    @classmethod
    def from_dict(cls, data: Any) -> ConfigKafka2Grpc:
        what = "kafka2grpc"
        data = _mapping(data, what)
        capacity = data.get("channel_capacity", DEFAULT_CHANNEL_CAPACITY)
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
            raise ValueError(f"{what}.channel_capacity: expected an unsigned integer")
        return cls(
            kafka_topic=_str(_required(data, "kafka_topic", what), f"{what}.kafka_topic"),
            listen=parse_socket_addr(_required(data, "listen", what)),
            kafka=_str_map(data.get("kafka", {}), f"{what}.kafka"),
            channel_capacity=capacity,
        )


@dataclass
class Config:
    """Top-level configuration of the Kafka tool."""

    prometheus: tuple[str, int] | None = None
    kafka: dict[str, str] = field(default_factory=dict)
    dedup: ConfigDedup | None = None
    grpc2kafka: ConfigGrpc2Kafka | None = None
    kafka2grpc: ConfigKafka2Grpc | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        data = _mapping(data, "config")
        prometheus = data.get("prometheus")
        kafka = data.get("kafka")
        dedup = data.get("dedup")
        grpc2kafka = data.get("grpc2kafka")
        kafka2grpc = data.get("kafka2grpc")
        return cls(
            prometheus=None if prometheus is None else parse_socket_addr(prometheus),
            kafka={} if kafka is None else _str_map(kafka, "kafka"),
            dedup=None if dedup is None else ConfigDedup.from_dict(dedup),
            grpc2kafka=None if grpc2kafka is None else ConfigGrpc2Kafka.from_dict(grpc2kafka),
            kafka2grpc=None if kafka2grpc is None else ConfigKafka2Grpc.from_dict(kafka2grpc),
        )