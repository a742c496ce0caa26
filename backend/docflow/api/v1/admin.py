"""Administration API Router: cache control and activity retention.

All endpoints require the admin:system capability.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...activity.service import ActivityLogService
from ...auth.dependencies import require_capability
from ...auth.principal import Principal
from ...auth.roles import Capability
from ...cache.coordinator import CacheCoordinator, save_cache_enabled
from ...config import get_settings
from ...database import get_db
from ...dependencies import get_cache_coordinator, get_clock
from ...domain.clock import Clock
from ...observability.logging_config import get_logger
from .schemas import (
    ActivityCleanupResponse,
    CacheClearResponse,
    CacheSettingsRequest,
    CacheStatsResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_capability(Capability.ADMIN_SYSTEM)


@router.get("/cache/stats", response_model=CacheStatsResponse, summary="Cache statistics")
def cache_stats(
    principal: Principal = Depends(require_admin),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> CacheStatsResponse:
    return CacheStatsResponse(**cache.stats())


@router.post("/cache/clear", response_model=CacheClearResponse, summary="Remove every cache entry")
def cache_clear(
    principal: Principal = Depends(require_admin),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> CacheClearResponse:
    removed = cache.clear()
    logger.info(f"Cache cleared by user {principal.user_id}", extra={"actor_id": principal.user_id})
    return CacheClearResponse(removed=removed)


@router.put(
    "/cache/settings",
    response_model=CacheStatsResponse,
    summary="Enable or disable caching",
    description="Persists the switch in system_settings and refreshes the coordinator's settings.",
)
def cache_settings(
    data: CacheSettingsRequest,
    principal: Principal = Depends(require_admin),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    db: Session = Depends(get_db),
) -> CacheStatsResponse:
    save_cache_enabled(db, data.enabled)
    db.commit()
    cache.refresh_settings()
    logger.info(
        f"Cache {'enabled' if data.enabled else 'disabled'} by user {principal.user_id}",
        extra={"actor_id": principal.user_id},
    )
    return CacheStatsResponse(**cache.stats())


@router.post(
    "/activity/cleanup",
    response_model=ActivityCleanupResponse,
    summary="Delete activity entries older than the retention period",
)
def activity_cleanup(
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ActivityCleanupResponse:
    retention_days = get_settings().ACTIVITY_RETENTION_DAYS
    deleted = ActivityLogService(db).clean_old_logs(retention_days, clock.now())
    db.commit()
    return ActivityCleanupResponse(deleted=deleted, retention_days=retention_days)
