"""Document domain models.

These are the domain representations (not the database models) exchanged
between the workflow and the authoritative store.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from .document_status import DocumentStatus


@dataclass(frozen=True)
class BranchRecord:
    """Branch office as seen by the authorization resolver."""
    ba_code: int
    name: str
    region_code: str
    branch_code: Optional[int] = None
    is_active: bool = True


@dataclass
class DocumentRecord:
    """Snapshot of a document row."""
    id: int
    status: DocumentStatus
    branch_ba_code: int
    uploader_id: int
    mt_number: str
    subject: str
    original_filename: str
    file_path: str = ""
    file_size: Optional[int] = None
    mt_date: Optional[date] = None
    month_year: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs_count: int = 0
    additional_docs: list[str] = field(default_factory=list)
    received_paper_doc_date: Optional[date] = None
    additional_docs_received_date: Optional[date] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Receipt(str, Enum):
    """Receipts the district office records on a sent-back document.

    Values are the document fields holding the receipt date.
    """
    PAPER = "received_paper_doc_date"
    ADDITIONAL_DOCS = "additional_docs_received_date"


@dataclass
class SupplementaryFileRecord:
    """File uploaded for one supplementary slot.

    is_verified is the verification tri-state: None (unset), True, False.
    """
    document_id: int
    item_index: int
    item_name: str
    file_path: str
    original_filename: str
    uploader_id: int
    file_size: Optional[int] = None
    is_verified: Optional[bool] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    verification_comment: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class StatusHistoryEntry:
    """Append-only record of one status transition."""
    document_id: int
    from_status: Optional[DocumentStatus]
    to_status: DocumentStatus
    changed_by: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class CommentRecord:
    document_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class NewDocument:
    """Metadata for a document being created.

    additional_docs may be shorter than additional_docs_count; missing
    slot names are stored as blanks.
    """
    branch_ba_code: int
    mt_number: str
    subject: str
    original_filename: str
    file_path: str = ""
    file_size: Optional[int] = None
    mt_date: Optional[date] = None
    month_year: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs_count: int = 0
    additional_docs: list[str] = field(default_factory=list)


# Metadata fields that may be reset to empty
CLEARABLE_METADATA = frozenset({"mt_date", "month_year"})


@dataclass
class DocumentMetadataUpdate:
    """Partial metadata update.

    None leaves a field unchanged; fields named in clear are reset to empty.
    Only CLEARABLE_METADATA fields can be cleared.
    """
    branch_ba_code: Optional[int] = None
    mt_number: Optional[str] = None
    mt_date: Optional[date] = None
    subject: Optional[str] = None
    month_year: Optional[str] = None
    has_additional_docs: Optional[bool] = None
    additional_docs_count: Optional[int] = None
    additional_docs: Optional[list[str]] = None
    clear: frozenset[str] = frozenset()


@dataclass(frozen=True)
class StoredFileRef:
    """Reference returned by the file store for a persisted file."""
    storage_ref: str
    original_filename: str
    size_bytes: int


@dataclass
class SupplementaryUpload:
    """Payload of a supplementary file upload."""
    original_filename: str
    content: bytes
    mime_type: str = "application/pdf"


@dataclass
class DocumentFilters:
    """Filters for a branch document listing.

    search matches the reference number or subject, case-insensitively.
    """
    status: Optional[DocumentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class StatusChangeResult:
    """Outcome of a successful status transition"""
    document: DocumentRecord
    from_status: DocumentStatus
    to_status: DocumentStatus
    history_entry: StatusHistoryEntry
