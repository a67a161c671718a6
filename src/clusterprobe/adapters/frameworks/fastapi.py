"""FastAPI adapter for the exposition endpoints."""

from fastapi import APIRouter, Query, Response

from clusterprobe.adapters.frameworks.asgi import (
    NDJSON_CONTENT_TYPE,
    PROMETHEUS_CONTENT_TYPE,
)
from clusterprobe.core.encoding.ndjson import encode_ndjson
from clusterprobe.core.encoding.prometheus import encode_current
from clusterprobe.core.ports import MetricsStoragePort


def create_metrics_router(metrics_storage: MetricsStoragePort) -> APIRouter:
    """Create a FastAPI router with /metrics and /metrics/prometheus endpoints.

    Args:
        metrics_storage: Storage adapter implementing MetricsStoragePort.

    Returns:
        APIRouter with both exposition endpoints configured.
    """
    router = APIRouter()

    @router.get("/metrics")
    async def get_metrics(since: float = Query(default=0, ge=0)) -> Response:
        """Return samples newer than ``since`` as NDJSON."""
        body = await encode_ndjson(metrics_storage.read(since=since))
        return Response(content=body, media_type=NDJSON_CONTENT_TYPE)

    @router.get("/metrics/prometheus")
    async def get_prometheus_metrics() -> Response:
        """Return every current series in Prometheus text format."""
        body = await encode_current(metrics_storage.scrape())
        return Response(content=body, media_type=PROMETHEUS_CONTENT_TYPE)

    return router
