"""Operational endpoints: Prometheus scrape, health and readiness probes."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..cache.coordinator import CacheCoordinator
from ..config import get_settings
from ..database import get_db
from ..dependencies import get_cache_coordinator
from .health import (
    HealthStatus,
    check_cache_health,
    check_database_health,
    check_redis_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/health",
    summary="Component health",
    description="""
    Database, Redis and cache state. 503 only when the database is down;
    a cache serving from its in-memory fallback reports `degraded`.
    """,
)
def health_check(
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> JSONResponse:
    components = {
        "database": check_database_health(db),
        "redis": check_redis_health(get_settings().REDIS_URL),
        "cache": check_cache_health(cache.stats()),
    }
    overall = get_overall_health(components)

    return JSONResponse(
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
        content={
            "status": overall.value,
            "components": {name: component.to_dict() for name, component in components.items()},
        },
    )


@router.get("/ready", summary="Readiness probe (database reachable)")
def readiness_check(db: Session = Depends(get_db)) -> JSONResponse:
    database = check_database_health(db)
    if database.status == HealthStatus.HEALTHY:
        return JSONResponse(content={"status": "ready"})
    return JSONResponse(status_code=503, content={"status": "not_ready", "message": database.message})
