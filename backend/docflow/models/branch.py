"""Branch SQLAlchemy model"""

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime
from sqlalchemy.sql import func

from .base import Base


class Branch(Base):
    """Regional branch office, identified by its BA code.

    The BA code is the unit of access scoping; region_code groups branches
    that district and branch managers may act on together.
    """
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ba_code = Column(Integer, nullable=False, unique=True)
    branch_code = Column(BigInteger, nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    region_code = Column(String(10), nullable=False, server_default="R6")
    is_active = Column(Boolean, nullable=False, server_default="1", default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "ba_code": self.ba_code,
            "branch_code": self.branch_code,
            "name": self.name,
            "region_code": self.region_code,
            "is_active": self.is_active,
        }
