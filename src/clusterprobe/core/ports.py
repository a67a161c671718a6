"""Port interfaces for pollers and their collaborators.

These protocols define the contracts that fetchers, sinks, instrumentation
and storage adapters must implement. The poller depends only on these
interfaces, not concrete implementations.
"""

from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Protocol, runtime_checkable

from clusterprobe.core.models import MetricSample, MetricType, RawMetric


@runtime_checkable
class Fetcher(Protocol):
    """Port for subsystem-specific endpoint reads.

    Implementations perform the network call(s) for one subsystem and
    return flattened leaves. Any exception aborts only the current cycle.
    """

    async def fetch(self) -> Iterable[RawMetric]:
        """Fetch one batch of raw metrics."""
        ...


@runtime_checkable
class MetricSink(Protocol):
    """Port for consumers of classified metrics.

    The label and metric filters are configured once, before the first
    ``collect`` call.
    """

    async def collect(
        self,
        metric: MetricType,
        key: str,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        """Consume one classified metric.

        Raises:
            SinkError: If the metric could not be stored.
        """
        ...

    def set_const_labels(self, labels: Mapping[str, str]) -> None: ...

    def set_skip_labels(self, names: Iterable[str]) -> None: ...

    def set_skip_metrics(self, keys: Iterable[str]) -> None: ...

    def set_include_labels(self, names: Iterable[str]) -> None: ...


@runtime_checkable
class DurationObserver(Protocol):
    """Port for cycle-duration instrumentation.

    Implementations are shared by every poller and must be safe for
    concurrent use.
    """

    async def observe(self, labels: Mapping[str, str], seconds: float) -> None:
        """Record one duration for the given label set."""
        ...


@runtime_checkable
class MetricsStoragePort(Protocol):
    """Port for metrics storage operations.

    Adapters implementing this protocol keep the latest sample per series.
    Examples: InMemoryMetricsStorage, SQLiteMetricsStorage.
    """

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample to storage."""
        ...

    def read(self, since: float = 0) -> AsyncIterable[MetricSample]:
        """Read samples with timestamp > since, ordered by timestamp."""
        ...

    def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape all current metric samples."""
        ...
