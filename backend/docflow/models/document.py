"""Document SQLAlchemy models

Document is the routed record; SupplementaryFile answers one declared
supplementary-document slot of a document; DocumentStatusHistory and
Comment hang off a document and are append-only.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey,
    Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, SlotNameList


class Document(Base):
    """Document routed from the district uploader to a branch and back.

    status holds one of the DocumentStatus values; additional_docs lists the
    names of the required supplementary slots (blank names allowed) and always
    has exactly additional_docs_count entries.

    version increases with every write to the row. Conditional updates key on
    it, so a write based on a stale read matches no row.
    """
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_branch_status", "branch_ba_code", "status"),
        CheckConstraint("additional_docs_count >= 0", name="ck_documents_additional_docs_count"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_path = Column(String(500), nullable=False, default="")
    original_filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)
    branch_ba_code = Column(Integer, ForeignKey("branches.ba_code"), nullable=False)
    uploader_id = Column(Integer, nullable=False)
    mt_number = Column(String(100), nullable=False)
    mt_date = Column(Date, nullable=True)
    subject = Column(Text, nullable=False)
    month_year = Column(String(20), nullable=True)
    status = Column(String(50), nullable=False, server_default="sent_to_branch")
    has_additional_docs = Column(Boolean, nullable=False, default=False)
    additional_docs_count = Column(Integer, nullable=False, default=0)
    additional_docs = Column(SlotNameList, nullable=True)
    received_paper_doc_date = Column(Date, nullable=True)
    additional_docs_received_date = Column(Date, nullable=True)
    version = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    branch = relationship("Branch")
    supplementary_files = relationship(
        "SupplementaryFile",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="SupplementaryFile.item_index",
    )


class SupplementaryFile(Base):
    """Attachment answering one required supplementary-document slot.

    is_verified is a tri-state: NULL (unset), TRUE (checked and correct),
    FALSE (checked and incorrect, verification_comment required).
    """
    __tablename__ = "additional_document_files"
    __table_args__ = (
        UniqueConstraint("document_id", "item_index", name="uq_additional_document_files_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    item_index = Column(Integer, nullable=False)
    item_name = Column(Text, nullable=False)
    file_path = Column(String(500), nullable=False)
    original_filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)
    uploader_id = Column(Integer, nullable=False)
    is_verified = Column(Boolean, nullable=True)
    verified_by = Column(Integer, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    document = relationship("Document", back_populates="supplementary_files")


class DocumentStatusHistory(Base):
    """Append-only record of a document status transition.

    Entries are never updated or deleted by the application.
    """
    __tablename__ = "document_status_history"
    __table_args__ = (
        Index("ix_document_status_history_document_id", "document_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String(50), nullable=True)
    to_status = Column(String(50), nullable=False)
    changed_by = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Comment(Base):
    """Free-text comment attached to a document"""
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
