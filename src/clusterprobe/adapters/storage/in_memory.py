"""In-memory storage adapter for metric samples."""

from collections.abc import AsyncIterable

from clusterprobe.core.models import MetricSample

SeriesKey = tuple[str, tuple[tuple[str, str], ...]]


def series_key(sample: MetricSample) -> SeriesKey:
    """Identify the series a sample belongs to (name plus sorted labels)."""
    return sample.name, tuple(sorted(sample.labels.items()))


class InMemoryMetricsStorage:
    """In-memory implementation of MetricsStoragePort.

    Keeps the latest sample of every series in a dict. Suitable for testing
    and for exporters where persistence is not required. Writes never
    suspend, so concurrent pollers on one event loop need no locking.
    """

    def __init__(self) -> None:
        self._series: dict[SeriesKey, MetricSample] = {}

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample, replacing the previous value of its series."""
        self._series[series_key(sample)] = sample

    async def read(self, since: float = 0) -> AsyncIterable[MetricSample]:
        """Read samples since the given timestamp.

        Returns samples with timestamp > since, ordered by timestamp ascending.
        """
        filtered = [s for s in self._series.values() if s.timestamp > since]
        for sample in sorted(filtered, key=lambda s: s.timestamp):
            yield sample

    async def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape all current metric samples."""
        for sample in list(self._series.values()):
            yield sample

    async def clear(self) -> None:
        """Drop every stored series."""
        self._series.clear()
