"""clusterprobe - typed metrics from loosely-typed cluster telemetry."""

from clusterprobe.adapters.collection import Collection
from clusterprobe.adapters.frameworks.asgi import create_asgi_app
from clusterprobe.adapters.storage import InMemoryMetricsStorage, SQLiteMetricsStorage
from clusterprobe.config import ExporterOptions
from clusterprobe.core.classify import classify
from clusterprobe.core.errors import (
    ClassificationError,
    ErrorKind,
    FetchError,
    SinkError,
)
from clusterprobe.core.metrics import Histogram
from clusterprobe.core.models import (
    Bytes,
    Gauge,
    GaugeF,
    Label,
    MetricSample,
    MetricType,
    Null,
    RawMetric,
    SubsystemConfig,
    Switch,
    Time,
)
from clusterprobe.core.poller import SubsystemPoller
from clusterprobe.exporter import build_pollers, run_pollers

__all__ = [
    "Bytes",
    "ClassificationError",
    "Collection",
    "ErrorKind",
    "ExporterOptions",
    "FetchError",
    "Gauge",
    "GaugeF",
    "Histogram",
    "InMemoryMetricsStorage",
    "Label",
    "MetricSample",
    "MetricType",
    "Null",
    "RawMetric",
    "SQLiteMetricsStorage",
    "SinkError",
    "SubsystemConfig",
    "SubsystemPoller",
    "Switch",
    "Time",
    "build_pollers",
    "classify",
    "create_asgi_app",
    "run_pollers",
]
