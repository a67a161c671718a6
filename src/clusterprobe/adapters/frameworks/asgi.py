"""ASGI application serving collected samples to scrapers.

Needs no web framework: any ASGI server (uvicorn, hypercorn) can run it
directly. When pollers are passed in, they run for as long as the server
does, started and stopped through the ASGI lifespan protocol.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable, Sequence
from typing import Any, NamedTuple
from urllib.parse import parse_qs

from clusterprobe.adapters.frameworks.query_params import _parse_since_param
from clusterprobe.core.encoding.ndjson import encode_ndjson
from clusterprobe.core.encoding.prometheus import encode_current
from clusterprobe.core.poller import SubsystemPoller
from clusterprobe.core.ports import MetricsStoragePort
from clusterprobe.exporter import run_pollers

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
NDJSON_CONTENT_TYPE = "application/x-ndjson"

_ALLOWED_METHODS = ("GET", "HEAD")


class _Route(NamedTuple):
    name: str
    content_type: str
    render: Callable[[dict[str, list[str]]], Awaitable[str]]


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Decode the query string of a request scope.

    Undecodable bytes are replaced rather than rejected; a missing query
    string gives an empty dict.
    """
    raw: bytes = scope.get("query_string") or b""
    return parse_qs(raw.decode("utf-8", errors="replace"))


async def _send_response(
    send: Send,
    status: int,
    content_type: str,
    body: str,
    *,
    include_body: bool = True,
    extra_headers: Sequence[tuple[bytes, bytes]] = (),
) -> None:
    payload = body.encode()
    headers = [
        (b"content-type", content_type.encode()),
        (b"content-length", str(len(payload)).encode()),
        *extra_headers,
    ]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send(
        {"type": "http.response.body", "body": payload if include_body else b""}
    )


async def _serve(
    send: Send,
    route: _Route,
    params: dict[str, list[str]],
    include_body: bool,
) -> None:
    """Render a route and send it, answering encoder failures with a JSON 500."""
    try:
        body = await route.render(params)
    except Exception:
        logger.exception("Error encoding %s endpoint", route.name)
        error_body = json.dumps({"error": "Internal Server Error"})
        await _send_response(
            send, 500, "application/json", error_body, include_body=include_body
        )
        return
    await _send_response(send, 200, route.content_type, body, include_body=include_body)


async def _lifespan(
    receive: Receive, send: Send, pollers: list[SubsystemPoller]
) -> None:
    task: asyncio.Task[None] | None = None
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            if pollers:
                task = asyncio.create_task(run_pollers(pollers), name="pollers")
                logger.info("Started %d subsystem pollers", len(pollers))
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            if task is not None:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            await send({"type": "lifespan.shutdown.complete"})
            return


def create_asgi_app(
    metrics_storage: MetricsStoragePort,
    pollers: Iterable[SubsystemPoller] | None = None,
) -> ASGIApp:
    """Create an ASGI app with /metrics and /metrics/prometheus endpoints.

    ``/metrics`` returns NDJSON and honours a ``since`` query parameter;
    ``/metrics/prometheus`` returns every current series in Prometheus text
    format. Both answer GET and HEAD.

    Args:
        metrics_storage: Storage adapter implementing MetricsStoragePort.
        pollers: Pollers to run between lifespan startup and shutdown.

    Returns:
        ASGI application callable.
    """

    async def render_ndjson(params: dict[str, list[str]]) -> str:
        since = _parse_since_param(params)
        return await encode_ndjson(metrics_storage.read(since=since))

    async def render_prometheus(params: dict[str, list[str]]) -> str:
        return await encode_current(metrics_storage.scrape())

    routes = {
        "/metrics": _Route("metrics", NDJSON_CONTENT_TYPE, render_ndjson),
        "/metrics/prometheus": _Route(
            "prometheus", PROMETHEUS_CONTENT_TYPE, render_prometheus
        ),
    }
    managed = list(pollers or ())

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await _lifespan(receive, send, managed)
            return
        if scope["type"] != "http":
            return

        route = routes.get(scope["path"])
        if route is None:
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        method = scope.get("method", "GET")
        if method not in _ALLOWED_METHODS:
            await _send_response(
                send,
                405,
                "text/plain",
                "Method Not Allowed",
                extra_headers=[(b"allow", ", ".join(_ALLOWED_METHODS).encode())],
            )
            return
        await _serve(
            send, route, _parse_query_params(scope), include_body=method != "HEAD"
        )

    return app
