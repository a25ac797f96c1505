"""
Metric primitives backing ``@Timed`` and the management endpoints.

- Counter: monotonically increasing value per label set
- Histogram: bucketed distribution that also tracks sum, count and max

Labels are plain string dicts; every metric is safe to update from
multiple worker threads.
"""

import threading
from bisect import bisect_left
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from twentyonepoints.core.decorators import Component

LabelKey = Tuple[Tuple[str, str], ...]


def labels_to_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def key_to_labels(key: LabelKey) -> Dict[str, str]:
    return dict(key)


class _LabelledMetric:
    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._lock = threading.Lock()


class Counter(_LabelledMetric):
    def __init__(self, name: str, help_text: str = ""):
        super().__init__(name, help_text)
        self._values: Dict[LabelKey, float] = {}

    def inc(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0):
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = labels_to_key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + amount

    def get(self, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._values.get(labels_to_key(labels), 0.0)

    def total(self) -> float:
        with self._lock:
            return sum(self._values.values())

    def samples(self) -> List[Tuple[Dict[str, str], float]]:
        with self._lock:
            return [(key_to_labels(k), v) for k, v in self._values.items()]


@dataclass
class HistogramSnapshot:
    labels: Dict[str, str]
    count: int
    total: float
    max: float
    buckets: List[Tuple[float, int]]

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class Histogram(_LabelledMetric):
    """Bucket counts are cumulative, as in the Prometheus exposition format."""

    # Seconds: 1ms .. 10s
    DEFAULT_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

    def __init__(
        self, name: str, help_text: str = "", buckets: Optional[List[float]] = None
    ):
        super().__init__(name, help_text)
        self.buckets = tuple(sorted(buckets or self.DEFAULT_BUCKETS))
        self._bucket_counts: Dict[LabelKey, List[int]] = {}
        self._count: Dict[LabelKey, int] = {}
        self._sum: Dict[LabelKey, float] = {}
        self._max: Dict[LabelKey, float] = {}

    def observe(self, value: float, labels: Optional[Dict[str, str]] = None):
        key = labels_to_key(labels)
        first_bucket = bisect_left(self.buckets, value)
        with self._lock:
            counts = self._bucket_counts.setdefault(key, [0] * len(self.buckets))
            for i in range(first_bucket, len(self.buckets)):
                counts[i] += 1
            self._count[key] = self._count.get(key, 0) + 1
            self._sum[key] = self._sum.get(key, 0.0) + value
            self._max[key] = max(self._max.get(key, value), value)

    def snapshot(self, labels: Optional[Dict[str, str]] = None) -> HistogramSnapshot:
        key = labels_to_key(labels)
        with self._lock:
            return self._snapshot_locked(key)

    def snapshots(self) -> List[HistogramSnapshot]:
        with self._lock:
            return [self._snapshot_locked(key) for key in self._count]

    def _snapshot_locked(self, key: LabelKey) -> HistogramSnapshot:
        counts = self._bucket_counts.get(key, [0] * len(self.buckets))
        return HistogramSnapshot(
            labels=key_to_labels(key),
            count=self._count.get(key, 0),
            total=self._sum.get(key, 0.0),
            max=self._max.get(key, 0.0),
            buckets=list(zip(self.buckets, counts)),
        )


@Component()
class MetricsStorage:
    """Registry of named metrics, toggled by ``metrics.enabled``."""

    def __init__(self):
        self.counters: Dict[str, Counter] = {}
        self.histograms: Dict[str, Histogram] = {}
        self.enabled = False
        self._lock = threading.Lock()

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def counter(self, name: str, help_text: str = "") -> Counter:
        with self._lock:
            if name not in self.counters:
                self.counters[name] = Counter(name, help_text)
            return self.counters[name]

    def histogram(
        self, name: str, help_text: str = "", buckets: Optional[List[float]] = None
    ) -> Histogram:
        with self._lock:
            if name not in self.histograms:
                self.histograms[name] = Histogram(name, help_text, buckets)
            return self.histograms[name]
