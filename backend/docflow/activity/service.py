"""Activity log queries and retention.

Read side of the activity trail: filtered listing, per-action summary and
cleanup of entries older than the retention period.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..models.activity_log import ActivityLog
from ..observability.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ActivityLogFilters:
    user_id: Optional[int] = None
    action: Optional[str] = None
    document_id: Optional[int] = None
    branch_ba_code: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = 1
    limit: int = 50


class ActivityLogService:
    """Queries over activity_logs.

    Args:
        db: Database session
    """

    def __init__(self, db: Session):
        self.db = db

    def _apply_filters(self, stmt, filters: ActivityLogFilters):
        if filters.user_id is not None:
            stmt = stmt.where(ActivityLog.user_id == filters.user_id)
        if filters.action:
            stmt = stmt.where(ActivityLog.action == filters.action)
        if filters.document_id is not None:
            stmt = stmt.where(ActivityLog.document_id == filters.document_id)
        if filters.branch_ba_code is not None:
            stmt = stmt.where(ActivityLog.branch_ba_code == filters.branch_ba_code)
        if filters.date_from is not None:
            stmt = stmt.where(ActivityLog.created_at >= filters.date_from)
        if filters.date_to is not None:
            stmt = stmt.where(ActivityLog.created_at <= filters.date_to)
        return stmt

    def get_activity_logs(self, filters: ActivityLogFilters) -> Tuple[List[Dict[str, Any]], int]:
        """Page of activity entries, newest first.

        Args:
            filters: Filter and paging options

        Returns:
            Tuple of (entries as dicts, total matching entries)
        """
        total = self.db.execute(
            self._apply_filters(select(func.count(ActivityLog.id)), filters)
        ).scalar_one()

        stmt = self._apply_filters(select(ActivityLog), filters)
        stmt = (
            stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        rows = self.db.execute(stmt).scalars().all()
        return [row.to_dict() for row in rows], total

    def get_activity_summary(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Number of entries per action in the date range."""
        stmt = select(ActivityLog.action, func.count(ActivityLog.id)).group_by(ActivityLog.action)
        if date_from is not None:
            stmt = stmt.where(ActivityLog.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(ActivityLog.created_at <= date_to)
        return {action: count for action, count in self.db.execute(stmt).all()}

    def clean_old_logs(self, retention_days: int, now: datetime) -> int:
        """Delete entries older than retention_days (caller commits).

        Returns:
            Number of entries deleted
        """
        cutoff = now - timedelta(days=retention_days)
        result = self.db.execute(
            delete(ActivityLog)
            .where(ActivityLog.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        logger.info(f"Cleaned {deleted} activity log entries older than {retention_days} days")
        return deleted
