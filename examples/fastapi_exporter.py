"""Example FastAPI exporter polling two simulated subsystems.

Run with:
    uvicorn examples.fastapi_exporter:app --reload

Endpoints:
    /metrics              - NDJSON samples (all current series)
    /metrics?since=<ts>   - NDJSON samples updated after timestamp
    /metrics/prometheus   - Prometheus text format
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clusterprobe import ExporterOptions, RawMetric, build_pollers, run_pollers
from clusterprobe.adapters.frameworks.fastapi import create_metrics_router
from clusterprobe.adapters.storage.in_memory import InMemoryMetricsStorage

logging.basicConfig(level=logging.INFO)


class SimulatedHealthFetcher:
    """Stands in for a GET on /_cat/health?format=json."""

    async def fetch(self) -> list[RawMetric]:
        await asyncio.sleep(random.uniform(0.01, 0.1))
        return [
            RawMetric("cluster", "demo"),
            RawMetric("status", random.choice(["green", "yellow"])),
            RawMetric("epoch", "1702300000123"),
            RawMetric("nodes", "3"),
            RawMetric("shards", str(random.randint(10, 12))),
            RawMetric("unassign", "0"),
            RawMetric("percent", "100.0%"),
        ]


class SimulatedIndicesFetcher:
    """Stands in for a GET on /_cat/indices?format=json&bytes=b."""

    async def fetch(self) -> list[RawMetric]:
        metrics = []
        for index in ("logs-1", "logs-2"):
            labels = {"index": index}
            metrics.append(RawMetric("docs", random.randint(1000, 2000), labels))
            metrics.append(RawMetric("store", "52428800", labels))
            metrics.append(RawMetric("health", "green", labels))
        return metrics


options = ExporterOptions(
    cluster_name="demo",
    poll_intervals={"_cat/indices": 15.0},
    skip_labels={"_cat/indices": frozenset({"uuid"})},
    const_labels={"env": "example"},
)
metrics_storage = InMemoryMetricsStorage()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    pollers = build_pollers(
        options,
        {
            "_cat/health": SimulatedHealthFetcher(),
            "_cat/indices": SimulatedIndicesFetcher(),
        },
        metrics_storage,
    )
    task = asyncio.create_task(run_pollers(pollers))
    try:
        yield
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


app = FastAPI(title="clusterprobe example", lifespan=lifespan)
app.include_router(create_metrics_router(metrics_storage))
