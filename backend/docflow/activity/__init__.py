"""User activity trail: event emission, persistence and queries"""

from .events import ActivityAction, ActivityEvent
from .recorder import (
    ActivityRecorder,
    DatabaseActivityRecorder,
    QueuedActivityRecorder,
    write_activity_log,
)
from .service import ActivityLogFilters, ActivityLogService

__all__ = [
    "ActivityAction",
    "ActivityEvent",
    "ActivityRecorder",
    "DatabaseActivityRecorder",
    "QueuedActivityRecorder",
    "write_activity_log",
    "ActivityLogFilters",
    "ActivityLogService",
]
