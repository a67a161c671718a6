"""Shared test fixtures for all test modules."""

from pathlib import Path

import pytest

from clusterprobe.adapters.storage.in_memory import InMemoryMetricsStorage
from tests.fakes import FakeClock, RecordingObserver, RecordingSink

try:
    import httpx
except ImportError:
    httpx = None


@pytest.fixture
def metrics_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for metrics storage tests."""
    return str(tmp_path / "metrics.db")


@pytest.fixture
def metrics_storage() -> InMemoryMetricsStorage:
    """Fixture providing an empty in-memory metrics storage."""
    return InMemoryMetricsStorage()


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Sink that records every collected metric."""
    return RecordingSink()


@pytest.fixture
def recording_observer() -> RecordingObserver:
    """Duration observer that records every observation."""
    return RecordingObserver()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Manual clock starting at t=1000."""
    return FakeClock()


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(metrics_storage)
            async with asgi_test_client(app) as client:
                response = await client.get("/metrics")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
