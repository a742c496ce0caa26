"""Activity log API Router (admin and district managers)."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...activity.service import ActivityLogFilters, ActivityLogService
from ...auth.dependencies import require_capability
from ...auth.principal import Principal
from ...auth.roles import Capability
from ...database import get_db
from .schemas import ActivityLogPageResponse, ActivitySummaryResponse

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get(
    "",
    response_model=ActivityLogPageResponse,
    summary="Query the activity log",
)
def list_activity(
    user_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    document_id: Optional[int] = Query(None),
    branch_ba_code: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_capability(Capability.ACTIVITY_READ)),
    db: Session = Depends(get_db),
) -> ActivityLogPageResponse:
    filters = ActivityLogFilters(
        user_id=user_id,
        action=action,
        document_id=document_id,
        branch_ba_code=branch_ba_code,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    items, total = ActivityLogService(db).get_activity_logs(filters)
    return ActivityLogPageResponse(items=items, total=total, page=page, limit=limit)


@router.get(
    "/summary",
    response_model=ActivitySummaryResponse,
    summary="Activity counts by action",
)
def activity_summary(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    principal: Principal = Depends(require_capability(Capability.ACTIVITY_READ)),
    db: Session = Depends(get_db),
) -> ActivitySummaryResponse:
    counts = ActivityLogService(db).get_activity_summary(date_from, date_to)
    return ActivitySummaryResponse(counts=counts, total=sum(counts.values()))
