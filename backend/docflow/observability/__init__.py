"""Observability for DocFlow: logging, request context, metrics, health checks.

The HTTP router lives in observability.router and is imported by main only.
"""

from .health import ComponentHealth, HealthStatus
from .logging_config import configure_logging, get_logger
from .request_id import NO_REQUEST_ID, get_client_info, get_request_id, set_request_id

__all__ = [
    "ComponentHealth",
    "HealthStatus",
    "configure_logging",
    "get_logger",
    "NO_REQUEST_ID",
    "get_client_info",
    "get_request_id",
    "set_request_id",
]
