"""Component health checks.

The database is the authoritative store: when it fails the service is
UNHEALTHY. Redis only backs the cache, so an unreachable Redis, or a
coordinator serving from its in-memory fallback, is DEGRADED.
"""

import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _probe(name: str, check: Callable[[], None], failure_status: HealthStatus) -> ComponentHealth:
    """Run check(); HEALTHY with its latency, or failure_status with the error."""
    started = time.perf_counter()
    try:
        check()
    except Exception as e:
        logger.warning(f"{name} health check failed: {e}")
        return ComponentHealth(status=failure_status, message=f"{name} error: {e}")
    latency_ms = (time.perf_counter() - started) * 1000
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"{name} connection OK",
        latency_ms=round(latency_ms, 2),
    )


def check_database_health(db: Session) -> ComponentHealth:
    return _probe("Database", lambda: db.execute(text("SELECT 1")), HealthStatus.UNHEALTHY)


def check_redis_health(redis_url: str) -> ComponentHealth:
    def ping():
        client = redis.from_url(redis_url, socket_connect_timeout=2, socket_timeout=2)
        try:
            client.ping()
        finally:
            client.close()

    return _probe("Redis", ping, HealthStatus.DEGRADED)


def check_cache_health(stats: Dict) -> ComponentHealth:
    """Summarize CacheCoordinator.stats() as a component health."""
    if not stats.get("enabled", True):
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Cache disabled")
    if stats.get("primary_connected"):
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Serving from Redis")
    return ComponentHealth(
        status=HealthStatus.DEGRADED,
        message=f"Serving from in-memory fallback ({stats.get('fallback_size') or 0} entries)",
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Worst component status wins."""
    statuses = {component.status for component in components.values()}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
