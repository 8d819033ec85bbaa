"""Counters, histograms and a registry for the HTTP and gRPC servers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def exponential_buckets_range(minimum: float, maximum: float, count: int) -> list[float]:
    """Return count bucket bounds growing exponentially from minimum to maximum."""
    if count < 1:
        raise ValueError("exponential buckets range needs a positive count")
    if minimum <= 0:
        raise ValueError("exponential buckets range minimum needs to be greater than 0")
    if count == 1:
        return [float(minimum)]
    growth = (maximum / minimum) ** (1.0 / (count - 1))
    return [minimum * growth**i for i in range(count)]


def _label_key(names: tuple[str, ...], labels: Mapping[str, str] | None) -> tuple[str, ...]:
    labels = labels or {}
    if set(labels) != set(names):
        raise ValueError(f"expected labels {sorted(names)}, got {sorted(labels)}")
    return tuple(str(labels[name]) for name in names)


@dataclass
class Counter:
    """A monotonically increasing value per label combination."""

    name: str
    help: str
    label_names: tuple[str, ...] = ()
    values: dict[tuple[str, ...], float] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def inc(self, labels: Mapping[str, str] | None = None, amount: float = 1.0) -> None:
        """Add a non-negative amount to the series for labels."""
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        key = _label_key(self.label_names, labels)
        with self._lock:
            self.values[key] = self.values.get(key, 0.0) + amount


@dataclass
class _HistogramSeries:
    bucket_counts: list[int]
    count: int = 0
    sum: float = 0.0


@dataclass
class Histogram:
    """Cumulative bucket counts, sum and count of observations per label combination."""

    name: str
    help: str
    label_names: tuple[str, ...] = ()
    buckets: tuple[float, ...] = DEFAULT_BUCKETS
    series: dict[tuple[str, ...], _HistogramSeries] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.buckets = tuple(float(b) for b in self.buckets)
        if any(lo >= hi for lo, hi in zip(self.buckets, self.buckets[1:])):
            raise ValueError("histogram buckets must be in increasing order")

    def observe(self, labels: Mapping[str, str] | None, value: float) -> None:
        """Record one observation for labels."""
        key = _label_key(self.label_names, labels)
        with self._lock:
            state = self.series.setdefault(key, _HistogramSeries([0] * len(self.buckets)))
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    state.bucket_counts[i] += 1
            state.count += 1
            state.sum += value


Collector = Union[Counter, Histogram]


@dataclass
class Registry:
    """Collectors by their full, prefixed name."""

    prefix: str = ""
    collectors: dict[str, Collector] = field(default_factory=dict)

    def register(self, collector: Collector) -> str:
        """Register a collector and return its full name."""
        full_name = self.prefix + collector.name
        if full_name in self.collectors:
            raise ValueError(f"duplicate metrics collector registration attempted: {full_name}")
        self.collectors[full_name] = collector
        return full_name


def _register_all(registry: Registry, collectors: Iterable[Collector]) -> None:
    errors = []
    for collector in collectors:
        try:
            registry.register(collector)
        except ValueError as exc:
            errors.append(str(exc))
    if errors:
        raise ValueError("\n".join(errors))


_HTTP_LABELS = ("code", "method", "path")

HTTP_REQUESTS_TOTAL = Counter(
    "requests_total", "The total amount of http requests we answered", _HTTP_LABELS
)
HTTP_REQUESTS_SECONDS = Histogram(
    "requests_seconds",
    "The histogram of time spent answering http requests",
    _HTTP_LABELS,
    tuple(exponential_buckets_range(0.1, 30, 20)),
)

_GRPC_LABELS = ("grpc_type", "grpc_service", "grpc_method")

GRPC_SERVER_STARTED_TOTAL = Counter(
    "grpc_server_started_total", "Total number of RPCs started on the server.", _GRPC_LABELS
)
GRPC_SERVER_HANDLED_TOTAL = Counter(
    "grpc_server_handled_total",
    "Total number of RPCs completed on the server, regardless of success or failure.",
    _GRPC_LABELS + ("grpc_code",),
)
GRPC_SERVER_MSG_RECEIVED_TOTAL = Counter(
    "grpc_server_msg_received_total",
    "Total number of RPC stream messages received on the server.",
    _GRPC_LABELS,
)
GRPC_SERVER_MSG_SENT_TOTAL = Counter(
    "grpc_server_msg_sent_total",
    "Total number of gRPC stream messages sent by the server.",
    _GRPC_LABELS,
)
GRPC_SERVER_HANDLING_SECONDS = Histogram(
    "grpc_server_handling_seconds",
    "Histogram of response latency (seconds) of gRPC that had been application-level "
    "handled by the server.",
    _GRPC_LABELS,
    tuple(exponential_buckets_range(0.1, 30, 20)),
)


def register_http_metrics(registry: Registry) -> None:
    """Register the HTTP request metrics."""
    _register_all(registry, (HTTP_REQUESTS_TOTAL, HTTP_REQUESTS_SECONDS))


def register_grpc_metrics(registry: Registry) -> None:
    """Register the gRPC server metrics."""
    _register_all(
        registry,
        (
            GRPC_SERVER_STARTED_TOTAL,
            GRPC_SERVER_HANDLED_TOTAL,
            GRPC_SERVER_MSG_RECEIVED_TOTAL,
            GRPC_SERVER_MSG_SENT_TOTAL,
            GRPC_SERVER_HANDLING_SECONDS,
        ),
    )