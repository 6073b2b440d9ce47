"""In-process counters and histograms with Prometheus text exposition."""

from __future__ import annotations

import math
import threading
from bisect import bisect_left
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def _format_value(value: float) -> str:
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if math.isnan(value):
        return "NaN"
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(float(value))


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _label_text(names: Sequence[str], values: Sequence[str]) -> str:
    if not names:
        return ""
    pairs = ",".join(f'{name}="{_escape(value)}"' for name, value in zip(names, values))
    return "{" + pairs + "}"


def _check_labels(label_names: Sequence[str], values: Sequence[str]) -> tuple[str, ...]:
    if len(values) != len(label_names):
        raise ValueError(
            f"inconsistent label cardinality: expected {len(label_names)} label values "
            f"but got {len(values)}"
        )
    return tuple(values)


class Counter:
    """A monotonically increasing value."""

    kind = "counter"

    def __init__(self, name: str, help_text: str) -> None:
        self.name = name
        self.help = help_text
        self._value = 0.0
        self._lock = threading.Lock()

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def _lines(self) -> Iterator[str]:
        yield f"{self.name} {_format_value(self.value)}"


class CounterVec:
    """A family of counters partitioned by label values."""

    kind = "counter"

    def __init__(self, name: str, help_text: str, label_names: Sequence[str]) -> None:
        self.name = name
        self.help = help_text
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def inc(self, *args: str) -> None:
        """Increment the counter for the given label values by one."""
        key = _check_labels(self.label_names, args)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + 1.0

    def get(self, *args: str) -> float:
        key = _check_labels(self.label_names, args)
        with self._lock:
            return self._values.get(key, 0.0)

    def _lines(self) -> Iterator[str]:
        with self._lock:
            items = sorted(self._values.items())
        for key, value in items:
            yield f"{self.name}{_label_text(self.label_names, key)} {_format_value(value)}"


@dataclass(frozen=True)
class _HistogramSnapshot:
    buckets: tuple[tuple[float, int], ...]
    sum: float
    count: int


class _Series:
    __slots__ = ("counts", "total", "count")

    def __init__(self, size: int) -> None:
        self.counts = [0] * size
        self.total = 0.0
        self.count = 0


class HistogramVec:
    """A family of histograms partitioned by label values."""

    kind = "histogram"

    def __init__(self, name: str, help_text: str, label_names: Sequence[str],
                 buckets: Sequence[float] = DEFAULT_BUCKETS) -> None:
        bounds = tuple(float(b) for b in buckets if not math.isinf(b))
        if any(a >= b for a, b in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be in increasing order")
        self.name = name
        self.help = help_text
        self.label_names = tuple(label_names)
        self.buckets = bounds
        self._series: dict[tuple[str, ...], _Series] = {}
        self._lock = threading.Lock()

    def observe(self, labels: Sequence[str], value: float) -> None:
        key = _check_labels(self.label_names, tuple(labels))
        index = bisect_left(self.buckets, value)
        with self._lock:
            series = self._series.setdefault(key, _Series(len(self.buckets)))
            if index < len(self.buckets):
                series.counts[index] += 1
            series.total += value
            series.count += 1

    def snapshot(self, labels: Sequence[str]) -> _HistogramSnapshot:
        """Cumulative bucket counts, sum and count for one label combination."""
        key = _check_labels(self.label_names, tuple(labels))
        with self._lock:
            series = self._series.get(key)
            counts = list(series.counts) if series else [0] * len(self.buckets)
            total = series.total if series else 0.0
            count = series.count if series else 0
        cumulative: list[tuple[float, int]] = []
        running = 0
        for bound, amount in zip(self.buckets, counts):
            running += amount
            cumulative.append((bound, running))
        cumulative.append((math.inf, count))
        return _HistogramSnapshot(buckets=tuple(cumulative), sum=total, count=count)

    def _lines(self) -> Iterator[str]:
        with self._lock:
            keys = sorted(self._series)
        names = self.label_names + ("le",)
        for key in keys:
            snap = self.snapshot(key)
            for bound, amount in snap.buckets:
                labels = _label_text(names, key + (_format_value(bound),))
                yield f"{self.name}_bucket{labels} {amount}"
            base = _label_text(self.label_names, key)
            yield f"{self.name}_sum{base} {_format_value(snap.sum)}"
            yield f"{self.name}_count{base} {snap.count}"


class MetricsCollector:
    """Application metrics for entity changes, authentication and HTTP traffic."""

    def __init__(self) -> None:
        self.portfolios_created = Counter("portfolios_created_total", "Total number of portfolios created")
        self.portfolios_updated = Counter("portfolios_updated_total", "Total number of portfolios updated")
        self.portfolios_deleted = Counter("portfolios_deleted_total", "Total number of portfolios deleted")

        self.categories_created = Counter("categories_created_total", "Total number of categories created")
        self.categories_updated = Counter("categories_updated_total", "Total number of categories updated")
        self.categories_deleted = Counter("categories_deleted_total", "Total number of categories deleted")

        self.sections_created = Counter("sections_created_total", "Total number of sections created")
        self.sections_updated = Counter("sections_updated_total", "Total number of sections updated")
        self.sections_deleted = Counter("sections_deleted_total", "Total number of sections deleted")

        self.users_created = Counter("users_created_total", "Total number of users created")
        self.users_updated = Counter("users_updated_total", "Total number of users updated")
        self.users_deleted = Counter("users_deleted_total", "Total number of users deleted")

        self.auth_attempts = CounterVec(
            "auth_attempts_total", "Total number of authentication attempts", ["auth_type", "status"]
        )
        self.jwt_tokens = CounterVec(
            "jwt_tokens_issued_total", "Total number of JWT tokens issued", ["token_type"]
        )

        self.http_requests_total = CounterVec(
            "http_requests_total", "Total number of HTTP requests", ["method", "path", "status"]
        )
        self.http_request_duration = HistogramVec(
            "http_request_duration_seconds", "HTTP request duration in seconds",
            ["method", "path"], DEFAULT_BUCKETS,
        )

        self._metrics = [
            self.portfolios_created, self.portfolios_updated, self.portfolios_deleted,
            self.categories_created, self.categories_updated, self.categories_deleted,
            self.sections_created, self.sections_updated, self.sections_deleted,
            self.users_created, self.users_updated, self.users_deleted,
            self.auth_attempts, self.jwt_tokens,
            self.http_requests_total, self.http_request_duration,
        ]

    def increment_portfolios_created(self) -> None:
        self.portfolios_created.inc()

    def increment_portfolios_updated(self) -> None:
        self.portfolios_updated.inc()

    def increment_portfolios_deleted(self) -> None:
        self.portfolios_deleted.inc()

    def increment_categories_created(self) -> None:
        self.categories_created.inc()

    def increment_categories_updated(self) -> None:
        self.categories_updated.inc()

    def increment_categories_deleted(self) -> None:
        self.categories_deleted.inc()

    def increment_sections_created(self) -> None:
        self.sections_created.inc()

    def increment_sections_updated(self) -> None:
        self.sections_updated.inc()

    def increment_sections_deleted(self) -> None:
        self.sections_deleted.inc()

    def increment_users_created(self) -> None:
        self.users_created.inc()

    def increment_users_updated(self) -> None:
        self.users_updated.inc()

    def increment_users_deleted(self) -> None:
        self.users_deleted.inc()

    def increment_auth_attempts(self, auth_type: str, status: str) -> None:
        self.auth_attempts.inc(auth_type, status)

    def increment_jwt_tokens(self, token_type: str) -> None:
        self.jwt_tokens.inc(token_type)

    def record_http_duration(self, method: str, path: str, status: int, duration: float) -> None:
        self.http_request_duration.observe((method, path), duration)

    def increment_http_requests(self, method: str, path: str, status: int) -> None:
        self.http_requests_total.inc(method, path, str(status))

    def render(self) -> str:
        """All metrics in the Prometheus text exposition format."""
        lines: list[str] = []
        for metric in sorted(self._metrics, key=lambda m: m.name):
            lines.append(f"# HELP {metric.name} {metric.help}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            lines.extend(metric._lines())
        return "\n".join(lines) + "\n"