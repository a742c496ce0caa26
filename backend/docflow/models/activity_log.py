"""ActivityLog SQLAlchemy model"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from sqlalchemy.sql import func

from .base import Base, JSONColumn


class ActivityLog(Base):
    """ActivityLog model for the append-only user activity trail.

    Records document actions (creation, status updates, verification,
    comments) for auditing. Entries are only removed by retention cleanup.
    document_id and branch_ba_code are plain columns so that audit rows
    survive the deletion of the entity they describe.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_created_at", "created_at"),
        Index("ix_activity_logs_document_id", "document_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(100), nullable=False)
    document_id = Column(Integer, nullable=True)
    branch_ba_code = Column(Integer, nullable=True)
    details = Column(JSONColumn, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        """Convert activity log entry to dictionary representation"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "document_id": self.document_id,
            "branch_ba_code": self.branch_ba_code,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
