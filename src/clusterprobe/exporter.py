"""Wiring of subsystem pollers and running them concurrently."""

import asyncio
import logging
import random
from collections.abc import Iterable, Mapping

from clusterprobe.adapters.collection import Collection
from clusterprobe.config import ExporterOptions
from clusterprobe.core.metrics import Histogram
from clusterprobe.core.poller import SubsystemPoller
from clusterprobe.core.ports import Fetcher, MetricsStoragePort

logger = logging.getLogger(__name__)


def request_histogram(
    options: ExporterOptions, storage: MetricsStoragePort
) -> Histogram:
    """Create the shared subsystem request-duration histogram."""
    return Histogram(f"{options.namespace}_subsystem_request_duration_seconds", storage)


def build_pollers(
    options: ExporterOptions,
    fetchers: Mapping[str, Fetcher],
    storage: MetricsStoragePort,
    histogram: Histogram | None = None,
    rng: random.Random | None = None,
) -> list[SubsystemPoller]:
    """Create one collection and poller per subsystem.

    Args:
        options: Process-wide exporter options.
        fetchers: Fetcher per subsystem name.
        storage: Storage shared by every collection and the histogram.
        histogram: Duration instrumentation; created from options if omitted.
        rng: Random source for startup jitter.
    """
    if histogram is None:
        histogram = request_histogram(options, storage)
    pollers = []
    for subsystem, fetcher in fetchers.items():
        collection = Collection(subsystem, storage, namespace=options.namespace)
        pollers.append(
            SubsystemPoller(
                subsystem,
                fetcher,
                collection,
                options.subsystem_config(subsystem),
                histogram=histogram,
                cluster_name=options.cluster_name,
                default_interval=options.poll_default_interval,
                max_jitter=options.max_startup_jitter,
                rng=rng,
            )
        )
    return pollers


async def run_pollers(pollers: Iterable[SubsystemPoller]) -> None:
    """Run every poller as its own task until cancelled.

    A poller task that dies unexpectedly is logged and does not stop the
    others.
    """
    tasks = [
        asyncio.create_task(poller.run(), name=f"poll:{poller.subsystem}")
        for poller in pollers
    ]
    if not tasks:
        return
    try:
        for finished in asyncio.as_completed(tasks):
            try:
                await finished
            except Exception:
                logger.exception("poller task stopped unexpectedly")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
