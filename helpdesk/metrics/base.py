"""Metric primitives backing the in-process registry."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Iterable, Iterator, Mapping

LabelValues = tuple[str, ...]


class Metric(ABC):
    """Named metric with an optional fixed set of label names."""

    kind = "untyped"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        self.name = name
        self.description = description
        self.label_names: LabelValues = tuple(label_names or ())
        self._lock = Lock()

    def _label_values(self, labels: Mapping[str, str] | None) -> LabelValues:
        labels = labels or {}
        unexpected = set(labels) - set(self.label_names)
        if unexpected:
            raise ValueError(f"Metric '{self.name}' got unexpected labels {sorted(unexpected)}")
        missing = [name for name in self.label_names if name not in labels]
        if missing:
            raise ValueError(f"Metric '{self.name}' is missing labels {missing}")
        return tuple(str(labels[name]) for name in self.label_names)

    @abstractmethod
    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        """Return current values keyed by label values."""


class CounterMetric(Metric):
    """Monotonically increasing counter."""

    kind = "counter"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: dict[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only be incremented")
        key = self._label_values(labels)
        with self._lock:
            self._values[key] += amount

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self._label_values(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: {"value": value} for key, value in self._values.items()}


@dataclass
class _Summary:
    count: int = 0
    total: float = 0.0
    min: float | None = None
    max: float | None = None

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    def as_mapping(self) -> Mapping[str, float]:
        return {
            "count": float(self.count),
            "sum": self.total,
            "min": self.min or 0.0,
            "max": self.max or 0.0,
            "avg": self.total / self.count if self.count else 0.0,
        }


class DistributionMetric(Metric):
    """Summary statistics over observed values."""

    kind = "summary"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: dict[LabelValues, _Summary] = defaultdict(_Summary)

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._label_values(labels)
        with self._lock:
            self._values[key].add(value)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: summary.as_mapping() for key, summary in self._values.items()}


@contextmanager
def track_duration(metric: DistributionMetric, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
    """Observe the wall-clock duration of the wrapped block in seconds."""

    started = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - started, labels=labels)
