"""Request correlation middleware.

Every request gets a request ID (client-supplied X-Request-ID when it looks
sane, otherwise a fresh UUID) and its client address and user agent are
captured for the activity log. Latency and status are exported per route
template, so /documents/17 and /documents/18 share one series.
"""

import re
import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds, http_requests_total
from .request_id import generate_request_id, set_client_info, set_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Probes and scrapes are not logged per request
_QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request ID and client info to the request context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _incoming_request_id(request) or generate_request_id()
        set_request_id(request_id)
        set_client_info(client_ip(request), request.headers.get("User-Agent"))

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            _observe(request, 500, time.perf_counter() - started)
            logger.error(
                f"{request.method} {request.url.path} failed",
                extra={"action": "request_failed"},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - started
        _observe(request, response.status_code, elapsed)
        if request.url.path not in _QUIET_PATHS:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({elapsed * 1000:.1f} ms)"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _incoming_request_id(request: Request) -> Optional[str]:
    value = request.headers.get(REQUEST_ID_HEADER)
    if value and _REQUEST_ID_PATTERN.match(value):
        return value
    return None


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def _observe(request: Request, status_code: int, elapsed: float) -> None:
    route = _route_template(request)
    http_requests_total.labels(method=request.method, route=route, status_code=str(status_code)).inc()
    http_request_duration_seconds.labels(method=request.method, route=route).observe(elapsed)


def client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
