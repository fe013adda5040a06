"""A small metrics registry with Prometheus text exposition."""

from __future__ import annotations

import math
import re
import threading
from collections.abc import Iterable, Iterator

_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

Sample = tuple[tuple[tuple[str, str], ...], float]


def _check_name(name: str) -> str:
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise ValueError(f"invalid metric name: {name!r}")
    return name


def _format_value(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class _Scalar:
    kind = "untyped"

    def __init__(self, name: str, help: str) -> None:  # noqa: A002
        self.name = _check_name(name)
        self.help = help
        self._value: float = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def _samples(self) -> Iterator[Sample]:
        yield (), self.value


class Counter(_Scalar):
    """A value that only goes up."""

    kind = "counter"

    def inc(self, amount: float = 1) -> None:
        if amount < 0:
            raise ValueError("counters can only increase")
        with self._lock:
            self._value += amount


class Gauge(_Scalar):
    """A value that can go up and down."""

    kind = "gauge"

    def inc(self, amount: float = 1) -> None:
        with self._lock:
            self._value += amount

    def dec(self, amount: float = 1) -> None:
        with self._lock:
            self._value -= amount

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value


class _MetricVec:
    _child_type: type[_Scalar] = _Scalar

    def __init__(self, name: str, help: str, labelnames: Iterable[str]) -> None:  # noqa: A002
        self.name = _check_name(name)
        self.help = help
        self.labelnames = tuple(labelnames)
        for label in self.labelnames:
            if not _LABEL_RE.fullmatch(label):
                raise ValueError(f"invalid label name: {label!r}")
        self.kind = self._child_type.kind
        self._children: dict[tuple[str, ...], _Scalar] = {}
        self._lock = threading.Lock()

    def _child(self, args: tuple) -> _Scalar:
        if len(args) != len(self.labelnames):
            raise ValueError(
                f"{self.name}: expected {len(self.labelnames)} label values, got {len(args)}"
            )
        if not all(isinstance(arg, str) for arg in args):
            raise TypeError(f"{self.name}: label values must be strings")
        with self._lock:
            child = self._children.get(args)
            if child is None:
                child = self._children[args] = self._child_type(self.name, self.help)
            return child

    def _samples(self) -> Iterator[Sample]:
        with self._lock:
            children = sorted(self._children.items())
        for values, child in children:
            yield tuple(zip(self.labelnames, values)), child.value


class CounterVec(_MetricVec):
    """Counters partitioned by label values."""

    _child_type = Counter

    def labels(self, *args: str) -> Counter:
        return self._child(args)  # type: ignore[return-value]


class GaugeVec(_MetricVec):
    """Gauges partitioned by label values."""

    _child_type = Gauge

    def labels(self, *args: str) -> Gauge:
        return self._child(args)  # type: ignore[return-value]


Metric = Counter | Gauge | CounterVec | GaugeVec


class Registry:
    """A set of uniquely named metrics."""

    def __init__(self) -> None:
        self._metrics: dict[str, Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: Metric) -> None:
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError(f"duplicate metric: {metric.name}")
            self._metrics[metric.name] = metric

    def encode(self) -> str:
        """Render all metrics in the Prometheus text format."""
        with self._lock:
            metrics = sorted(self._metrics.items())
        lines: list[str] = []
        for name, metric in metrics:
            samples = list(metric._samples())  # pylint: disable=protected-access
            if not samples:
                continue
            lines.append(f"# HELP {name} {_escape_help(metric.help)}")
            lines.append(f"# TYPE {name} {metric.kind}")
            for labels, value in samples:
                label_text = ""
                if labels:
                    pairs = ",".join(f'{key}="{_escape_label(val)}"' for key, val in labels)
                    label_text = "{" + pairs + "}"
                lines.append(f"{name}{label_text} {_format_value(value)}")
        return "\n".join(lines) + "\n" if lines else ""