"""Integration tests for the FastAPI exposition router."""

import json

import pytest
from fastapi import FastAPI

from clusterprobe.adapters.frameworks.fastapi import create_metrics_router
from clusterprobe.adapters.storage.in_memory import InMemoryMetricsStorage
from clusterprobe.core.models import MetricSample

pytestmark = [pytest.mark.integration, pytest.mark.tier(2)]


@pytest.fixture
async def app(metrics_storage: InMemoryMetricsStorage):
    await metrics_storage.write(
        MetricSample(name="clusterprobe_cat_health_nodes", timestamp=10.0, value=3)
    )
    await metrics_storage.write(
        MetricSample(name="clusterprobe_cat_health_shards", timestamp=20.0, value=8)
    )
    application = FastAPI()
    application.include_router(create_metrics_router(metrics_storage))
    return application


class TestFastAPIRouter:
    """Tests for create_metrics_router()."""

    async def test_ndjson_endpoint(self, app, asgi_test_client) -> None:
        async with asgi_test_client(app) as client:
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        lines = response.text.strip().split("\n")
        assert [json.loads(line)["value"] for line in lines] == [3.0, 8.0]

    async def test_ndjson_since(self, app, asgi_test_client) -> None:
        async with asgi_test_client(app) as client:
            response = await client.get("/metrics", params={"since": 10})

        lines = response.text.strip().split("\n")
        assert len(lines) == 1
        assert json.loads(lines[0])["name"] == "clusterprobe_cat_health_shards"

    async def test_negative_since_is_rejected(self, app, asgi_test_client) -> None:
        async with asgi_test_client(app) as client:
            response = await client.get("/metrics", params={"since": -1})

        assert response.status_code == 422

    async def test_prometheus_endpoint(self, app, asgi_test_client) -> None:
        async with asgi_test_client(app) as client:
            response = await client.get("/metrics/prometheus")

        assert response.status_code == 200
        assert "version=0.0.4" in response.headers["content-type"]
        assert "clusterprobe_cat_health_shards 8" in response.text
