"""Storage adapters implementing MetricsStoragePort."""

from clusterprobe.adapters.storage.in_memory import InMemoryMetricsStorage
from clusterprobe.adapters.storage.sqlite import SQLiteMetricsStorage

__all__ = [
    "InMemoryMetricsStorage",
    "SQLiteMetricsStorage",
]
