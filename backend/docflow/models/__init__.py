"""SQLAlchemy models for DocFlow"""

from .base import Base, JSONColumn, SlotNameList
from .branch import Branch
from .document import Document, SupplementaryFile, DocumentStatusHistory, Comment
from .activity_log import ActivityLog
from .system_setting import SystemSetting

__all__ = [
    "Base",
    "JSONColumn",
    "SlotNameList",
    "Branch",
    "Document",
    "SupplementaryFile",
    "DocumentStatusHistory",
    "Comment",
    "ActivityLog",
    "SystemSetting",
]
