"""Prometheus metrics for the HTTP surface and the CRM write paths."""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

# ----- HTTP -----

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
REQUEST_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "In-progress HTTP requests",
    ["method"],
)

# ----- Domain -----

SAGA_COMPENSATIONS = Counter(
    "crm_saga_compensations_total",
    "Compensating actions run after a failed multi-step write",
    ["step", "outcome"],
)
HOLDER_LINK_CONFLICTS = Counter(
    "crm_holder_link_conflicts_total",
    "Rejected holder links, by the layer that caught the conflict",
    ["link_type", "caught_by"],
)
CASCADE_DELETIONS = Counter(
    "crm_cascade_deletions_total",
    "Records removed by deletion cascades",
    ["entity", "mode"],
)


def record_compensation(step: str, succeeded: bool) -> None:
    SAGA_COMPENSATIONS.labels(step=step, outcome="ok" if succeeded else "failed").inc()


def record_link_conflict(link_type: str, caught_by: str) -> None:
    """``caught_by`` is ``precheck`` or ``unique_index``."""
    HOLDER_LINK_CONFLICTS.labels(link_type=link_type, caught_by=caught_by).inc()


def record_cascade_deletion(entity: str, hard_delete: bool) -> None:
    CASCADE_DELETIONS.labels(entity=entity, mode="hard" if hard_delete else "soft").inc()


def _route_template(request: Request) -> str:
    # Templates keep holder and alias IDs out of label values
    route: Any | None = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) and path else "unknown"


def setup_metrics(app: FastAPI) -> None:
    """Attach the request metrics middleware and the /metrics endpoint."""

    @app.middleware("http")
    async def metrics_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        method = request.method
        REQUEST_IN_PROGRESS.labels(method=method).inc()
        start = time.perf_counter()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            path = _route_template(request)
            REQUEST_LATENCY.labels(method=method, path=path).observe(time.perf_counter() - start)
            REQUEST_COUNT.labels(method=method, path=path, status_code=status_code).inc()
            REQUEST_IN_PROGRESS.labels(method=method).dec()

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
