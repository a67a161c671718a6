"""Core domain models for polled telemetry."""

from dataclasses import dataclass, field

# JSON leaf values accepted by the classifier.
Scalar = bool | None | int | float | str


@dataclass(frozen=True)
class RawMetric:
    """An unclassified leaf of flattened upstream telemetry.

    Attributes:
        key: Leaf key name used to pick a classification rule.
        value: JSON scalar (bool, None, int, float or str).
        labels: Dimension labels extracted by the fetcher for this leaf.
    """

    key: str
    value: Scalar
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Time:
    """Duration since epoch or elapsed time, in milliseconds."""

    millis: int

    def sample_value(self) -> float:
        """Return the duration as float seconds."""
        return self.millis / 1000.0


@dataclass(frozen=True)
class Bytes:
    """A byte-count quantity."""

    value: int

    def sample_value(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Gauge:
    """An integer point-in-time value."""

    value: int

    def sample_value(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class GaugeF:
    """A floating point-in-time value."""

    value: float

    def sample_value(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Switch:
    """A boolean-valued metric encoded as 0 or 1."""

    value: int

    def sample_value(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Label:
    """A descriptive value exported as a label rather than a sample value."""

    value: str

    def sample_value(self) -> None:
        return None


@dataclass(frozen=True)
class Null:
    """Explicit absence of a value."""

    def sample_value(self) -> None:
        return None


MetricType = Time | Bytes | Gauge | GaugeF | Switch | Label | Null


@dataclass(frozen=True)
class SubsystemConfig:
    """Per-subsystem polling and labeling configuration.

    Attributes:
        poll_interval: Seconds between cycles. None falls back to the
            process-wide default.
        skip_labels: Label names removed from exported samples.
        skip_metrics: Metric keys that are never exported.
        include_labels: When non-empty, the only fetched label names kept.
        const_labels: Labels added to every exported sample.
    """

    poll_interval: float | None = None
    skip_labels: frozenset[str] = frozenset()
    skip_metrics: frozenset[str] = frozenset()
    include_labels: frozenset[str] = frozenset()
    const_labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MetricSample:
    """A single metric measurement.

    Attributes:
        name: Metric name (e.g., clusterprobe_cat_health_shards).
        timestamp: Unix timestamp in seconds.
        value: The metric value.
        labels: Key-value pairs for metric dimensions.
    """

    name: str
    timestamp: float
    value: float
    labels: dict[str, str] = field(default_factory=dict)
