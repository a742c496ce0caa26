"""SystemSetting SQLAlchemy model"""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func

from .base import Base


class SystemSetting(Base):
    """Key/value operational setting editable by administrators (e.g. cache_enabled)"""
    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
