import time
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match


UNMATCHED_PATH = "unmatched"

REQUEST_COUNTER = Counter(
    "api_requests_total",
    "HTTP requests total",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "api_request_duration_seconds",
    "HTTP request latency",
    ["method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5),
)

AUTHZ_DECISIONS = Counter(
    "authz_decisions_total",
    "Board authorization decisions",
    ["decision"],
)

USER_LOGINS = Counter(
    "user_logins_total",
    "Successful OAuth logins",
    ["provider"],
)


def increment_authz_decision(decision: str) -> None:
    AUTHZ_DECISIONS.labels(decision).inc()


def increment_user_login(provider: str) -> None:
    USER_LOGINS.labels(provider).inc()


def path_label(request: Request) -> str:
    """Label a request by its route template, e.g. ``/api/boards/{board_id}``.

    Requests that match no route share the ``UNMATCHED_PATH`` label.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_PATH)
    return UNMATCHED_PATH


async def metrics_endpoint(_: Request) -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def request_metrics_middleware(request: Request, call_next: Callable):
    path = path_label(request)
    started = time.perf_counter()
    response = await call_next(request)
    REQUEST_LATENCY.labels(request.method).observe(time.perf_counter() - started)
    REQUEST_COUNTER.labels(request.method, path, str(response.status_code)).inc()
    return response
