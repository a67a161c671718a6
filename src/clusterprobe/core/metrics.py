"""Cumulative histogram used to instrument poll cycles."""

import asyncio
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from clusterprobe.core.models import MetricSample
from clusterprobe.core.ports import MetricsStoragePort

DEFAULT_HISTOGRAM_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]


@dataclass
class _Series:
    """Cumulative state of one histogram label set."""

    bucket_counts: list[int] = field(default_factory=list)
    total: float = 0.0
    count: int = 0


class Histogram:
    """Cumulative histogram writing its series to a metrics storage.

    One instance is shared by every poller. Counts are guarded by a
    ``threading.Lock``. Observations of one label set are serialized by an
    ``asyncio.Lock`` held from the update until its bucket, sum and count
    samples are written, so storage never ends on an older snapshot.

    Args:
        name: Metric family name (e.g., "http_request_duration_seconds")
        storage: Storage adapter receiving the cumulative samples.
        buckets: Bucket boundaries (default: Prometheus standard buckets)
    """

    def __init__(
        self,
        name: str,
        storage: MetricsStoragePort,
        buckets: list[float] | None = None,
    ) -> None:
        bounds = sorted(buckets if buckets is not None else DEFAULT_HISTOGRAM_BUCKETS)
        if not bounds:
            raise ValueError("histogram needs at least one bucket")
        self.name = name
        self.buckets = bounds
        self._storage = storage
        self._series: dict[tuple[tuple[str, str], ...], _Series] = {}
        self._lock = threading.Lock()
        self._write_locks: dict[tuple[tuple[str, str], ...], asyncio.Lock] = {}

    def _record(self, key: tuple[tuple[str, str], ...], value: float) -> _Series:
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = _Series(bucket_counts=[0] * len(self.buckets))
                self._series[key] = series
            for i, boundary in enumerate(self.buckets):
                if value <= boundary:
                    series.bucket_counts[i] += 1
            series.total += value
            series.count += 1
            return _Series(list(series.bucket_counts), series.total, series.count)

    def samples(
        self, labels: Mapping[str, str], timestamp: float | None = None
    ) -> list[MetricSample]:
        """Build the current bucket, sum and count samples for a label set.

        Returns an empty list for label sets never observed.
        """
        key = tuple(sorted(labels.items()))
        with self._lock:
            series = self._series.get(key)
            if series is None:
                return []
            snapshot = _Series(list(series.bucket_counts), series.total, series.count)
        return self._to_samples(dict(key), snapshot, timestamp or time.time())

    def _to_samples(
        self, base_labels: dict[str, str], series: _Series, timestamp: float
    ) -> list[MetricSample]:
        samples: list[MetricSample] = []

        for boundary, bucket_count in zip(self.buckets, series.bucket_counts):
            samples.append(
                MetricSample(
                    name=f"{self.name}_bucket",
                    timestamp=timestamp,
                    value=float(bucket_count),
                    labels={**base_labels, "le": str(boundary)},
                )
            )

        # +Inf bucket always holds every observation
        samples.append(
            MetricSample(
                name=f"{self.name}_bucket",
                timestamp=timestamp,
                value=float(series.count),
                labels={**base_labels, "le": "+Inf"},
            )
        )
        samples.append(
            MetricSample(
                name=f"{self.name}_sum",
                timestamp=timestamp,
                value=series.total,
                labels=base_labels,
            )
        )
        samples.append(
            MetricSample(
                name=f"{self.name}_count",
                timestamp=timestamp,
                value=float(series.count),
                labels=base_labels,
            )
        )
        return samples

    async def observe(self, labels: Mapping[str, str], seconds: float) -> None:
        """Record one observation and publish the updated series."""
        key = tuple(sorted(labels.items()))
        write_lock = self._write_locks.get(key)
        if write_lock is None:
            write_lock = self._write_locks[key] = asyncio.Lock()
        async with write_lock:
            snapshot = self._record(key, seconds)
            for sample in self._to_samples(dict(key), snapshot, time.time()):
                await self._storage.write(sample)
