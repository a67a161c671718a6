"""Process-wide exporter options with per-subsystem overrides."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from clusterprobe.adapters.collection import DEFAULT_NAMESPACE
from clusterprobe.core.models import SubsystemConfig
from clusterprobe.core.poller import DEFAULT_MAX_JITTER, DEFAULT_POLL_INTERVAL


def _string_sets(value: Mapping[str, Any]) -> dict[str, frozenset[str]]:
    return {name: frozenset(items) for name, items in value.items()}


@dataclass
class ExporterOptions:
    """Options shared by every subsystem poller.

    Attributes:
        namespace: Prefix of exported metric names.
        cluster_name: Cluster label of the request-duration histogram.
        poll_default_interval: Poll period (seconds) for subsystems without
            an entry in ``poll_intervals``.
        poll_intervals: Poll period per subsystem.
        skip_labels: Label names dropped, per subsystem.
        skip_metrics: Metric keys dropped, per subsystem.
        include_labels: Label names kept (when non-empty), per subsystem.
        const_labels: Labels added to every sample of every subsystem.
        max_startup_jitter: Upper bound of each poller's startup delay.
    """

    namespace: str = DEFAULT_NAMESPACE
    cluster_name: str = ""
    poll_default_interval: float = DEFAULT_POLL_INTERVAL
    poll_intervals: dict[str, float] = field(default_factory=dict)
    skip_labels: dict[str, frozenset[str]] = field(default_factory=dict)
    skip_metrics: dict[str, frozenset[str]] = field(default_factory=dict)
    include_labels: dict[str, frozenset[str]] = field(default_factory=dict)
    const_labels: dict[str, str] = field(default_factory=dict)
    max_startup_jitter: float = DEFAULT_MAX_JITTER

    def __post_init__(self) -> None:
        if self.poll_default_interval <= 0:
            raise ValueError(
                "poll_default_interval must be positive, "
                f"got {self.poll_default_interval}"
            )
        for subsystem, interval in self.poll_intervals.items():
            if interval <= 0:
                raise ValueError(
                    f"poll interval for {subsystem!r} must be positive, got {interval}"
                )
        if self.max_startup_jitter < 0:
            raise ValueError(
                "max_startup_jitter must not be negative, "
                f"got {self.max_startup_jitter}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExporterOptions":
        """Build options from an already parsed document (JSON, YAML, ...).

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown exporter options: {', '.join(unknown)}")

        kwargs: dict[str, Any] = dict(data)
        for name in ("skip_labels", "skip_metrics", "include_labels"):
            if name in kwargs:
                kwargs[name] = _string_sets(kwargs[name])
        if "poll_intervals" in kwargs:
            kwargs["poll_intervals"] = {
                name: float(seconds)
                for name, seconds in kwargs["poll_intervals"].items()
            }
        for name in ("poll_default_interval", "max_startup_jitter"):
            if name in kwargs:
                kwargs[name] = float(kwargs[name])
        if "const_labels" in kwargs:
            kwargs["const_labels"] = {
                str(k): str(v) for k, v in kwargs["const_labels"].items()
            }
        return cls(**kwargs)

    def subsystem_config(self, subsystem: str) -> SubsystemConfig:
        """Resolve the configuration of one subsystem."""
        return SubsystemConfig(
            poll_interval=self.poll_intervals.get(subsystem),
            skip_labels=self.skip_labels.get(subsystem, frozenset()),
            skip_metrics=self.skip_metrics.get(subsystem, frozenset()),
            include_labels=self.include_labels.get(subsystem, frozenset()),
            const_labels=dict(self.const_labels),
        )
