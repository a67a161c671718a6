"""Per-subsystem metric sink writing samples to a metrics storage."""

import re
import time
from collections.abc import Callable, Iterable, Mapping

from clusterprobe.core.errors import SinkError
from clusterprobe.core.models import Bytes, Label, MetricSample, MetricType, Time
from clusterprobe.core.ports import MetricsStoragePort

DEFAULT_NAMESPACE = "clusterprobe"

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]+")


def sanitize_name(name: str) -> str:
    """Turn an arbitrary string into a valid metric or label name part."""
    return _INVALID_NAME_CHARS.sub("_", name).strip("_")


class Collection:
    """MetricSink turning classified metrics into stored samples.

    One collection is created per subsystem; the storage behind it is shared
    by all of them. Sample names are ``<namespace>_<subsystem>_<key>``, with a
    ``_bytes`` or ``_seconds`` unit suffix for byte and time metrics. Label
    metrics are exported as ``..._info`` samples of value 1 carrying the
    label itself. Null metrics produce no sample.
    """

    def __init__(
        self,
        subsystem: str,
        storage: MetricsStoragePort,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the collection.

        Args:
            subsystem: Subsystem name, e.g. "_cat/health".
            storage: Storage adapter receiving the samples.
            namespace: Prefix of every metric name.
            clock: Wall clock used to timestamp samples.
        """
        self.subsystem = subsystem
        self.storage = storage
        self.namespace = namespace
        self.const_labels: dict[str, str] = {}
        self.skip_labels: frozenset[str] = frozenset()
        self.skip_metrics: frozenset[str] = frozenset()
        self.include_labels: frozenset[str] = frozenset()
        self._clock = clock
        parts = (sanitize_name(namespace), sanitize_name(subsystem))
        self._prefix = "_".join(part for part in parts if part)

    def set_const_labels(self, labels: Mapping[str, str]) -> None:
        """Set labels added to every sample."""
        self.const_labels = dict(labels)

    def set_skip_labels(self, names: Iterable[str]) -> None:
        """Set label names removed from every sample.

        Names are matched after sanitizing, so ``node.role`` and ``node_role``
        select the same exported label.
        """
        self.skip_labels = frozenset(sanitize_name(name) for name in names)

    def set_skip_metrics(self, keys: Iterable[str]) -> None:
        """Set metric keys that are never exported."""
        self.skip_metrics = frozenset(keys)

    def set_include_labels(self, names: Iterable[str]) -> None:
        """Set the fetched label names to keep. Empty keeps all of them."""
        self.include_labels = frozenset(sanitize_name(name) for name in names)

    def metric_name(self, metric: MetricType, key: str) -> str:
        """Build the exported sample name for a classified metric."""
        name = f"{self._prefix}_{sanitize_name(key)}"
        if isinstance(metric, Bytes) and not name.endswith("_bytes"):
            name += "_bytes"
        elif isinstance(metric, Time) and not name.endswith("_seconds"):
            name += "_seconds"
        elif isinstance(metric, Label):
            name += "_info"
        return name

    def _keep_label(self, name: str) -> bool:
        name = sanitize_name(name)
        if name in self.skip_labels:
            return False
        return not self.include_labels or name in self.include_labels

    def sample_labels(self, labels: Mapping[str, str] | None) -> dict[str, str]:
        """Apply include/skip filters to fetched labels and add const labels."""
        result = {
            sanitize_name(name): value
            for name, value in (labels or {}).items()
            if self._keep_label(name)
        }
        for name, value in self.const_labels.items():
            if sanitize_name(name) not in self.skip_labels:
                result[name] = value
        return result

    async def collect(
        self,
        metric: MetricType,
        key: str,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        """Store one classified metric.

        Raises:
            SinkError: If the storage write fails.
        """
        if key in self.skip_metrics:
            return

        sample_labels = self.sample_labels(labels)
        if isinstance(metric, Label):
            if not self._keep_label(key):
                return
            sample_labels[sanitize_name(key)] = metric.value
            value = 1.0
        else:
            sample_value = metric.sample_value()
            if sample_value is None:
                return
            value = sample_value

        sample = MetricSample(
            name=self.metric_name(metric, key),
            timestamp=self._clock(),
            value=value,
            labels=sample_labels,
        )
        try:
            await self.storage.write(sample)
        except Exception as e:
            raise SinkError(f"failed to store {sample.name}: {e}") from e
