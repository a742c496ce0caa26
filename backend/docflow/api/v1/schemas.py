"""Request and response schemas of the v1 API."""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...domain.documents.document_status import DocumentStatus


class ORMModel(BaseModel):
    """Response model readable from records and ORM rows"""
    model_config = ConfigDict(from_attributes=True)


# Branches

class BranchResponse(ORMModel):
    ba_code: int
    name: str
    region_code: str
    branch_code: Optional[int] = None
    is_active: bool = True


class BranchCountsResponse(ORMModel):
    ba_code: int
    counts: Dict[str, int]
    total: int


# Documents

class DocumentResponse(ORMModel):
    id: int
    status: DocumentStatus
    branch_ba_code: int
    uploader_id: int
    mt_number: str
    subject: str
    original_filename: str
    file_size: Optional[int] = None
    mt_date: Optional[date] = None
    month_year: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs_count: int = 0
    additional_docs: List[str] = []
    received_paper_doc_date: Optional[date] = None
    additional_docs_received_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SupplementaryFileResponse(ORMModel):
    document_id: int
    item_index: int
    item_name: str
    original_filename: str
    file_size: Optional[int] = None
    uploader_id: int
    is_verified: Optional[bool] = Field(None, description="null = not yet checked")
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    verification_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusHistoryResponse(ORMModel):
    from_status: Optional[DocumentStatus] = None
    to_status: DocumentStatus
    changed_by: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class CommentResponse(ORMModel):
    id: Optional[int] = None
    document_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None


class DocumentDetailResponse(ORMModel):
    document: DocumentResponse
    supplementary_files: List[SupplementaryFileResponse]
    history: List[StatusHistoryResponse]
    comments: List[CommentResponse]
    required_slots: List[int]
    pending_slots: List[int]
    all_required_slots_verified: bool
    is_complete: bool


class DocumentPageResponse(ORMModel):
    items: List[DocumentResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class DocumentCreateRequest(BaseModel):
    branch_ba_code: int
    mt_number: str = Field(..., min_length=1, max_length=100, description="Reference number")
    subject: str = Field(..., min_length=1)
    original_filename: str = Field(..., min_length=1, max_length=255)
    file_path: str = ""
    file_size: Optional[int] = Field(None, ge=0)
    mt_date: Optional[date] = None
    month_year: Optional[str] = Field(None, max_length=20)
    has_additional_docs: bool = False
    additional_docs_count: int = Field(0, ge=0)
    additional_docs: List[str] = []
    status: Literal["draft", "sent_to_branch"] = "sent_to_branch"

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "branch_ba_code": 1101,
            "mt_number": "MT-2024-0001",
            "subject": "Monthly meter reading report",
            "original_filename": "report.pdf",
            "month_year": "01/2024",
            "has_additional_docs": True,
            "additional_docs_count": 2,
            "additional_docs": ["Signed cover letter", "Meter photos"],
        }
    })


class MetadataUpdateRequest(BaseModel):
    branch_ba_code: Optional[int] = None
    mt_number: Optional[str] = Field(None, max_length=100)
    mt_date: Optional[date] = None
    subject: Optional[str] = None
    month_year: Optional[str] = Field(None, max_length=20)
    has_additional_docs: Optional[bool] = None
    additional_docs_count: Optional[int] = Field(None, ge=0)
    additional_docs: Optional[List[str]] = None


class StatusUpdateRequest(BaseModel):
    status: DocumentStatus
    comment: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"status": "sent_back_to_district", "comment": "Page 3 missing signature"}
    })


class StatusChangeResponse(ORMModel):
    document: DocumentResponse
    from_status: DocumentStatus
    to_status: DocumentStatus
    history_entry: StatusHistoryResponse


class VerificationRequest(BaseModel):
    verified: bool
    comment: Optional[str] = None


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)


# Activity

class ActivityLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    document_id: Optional[int] = None
    branch_ba_code: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[str] = None


class ActivityLogPageResponse(BaseModel):
    items: List[ActivityLogResponse]
    total: int
    page: int
    limit: int


class ActivitySummaryResponse(BaseModel):
    counts: Dict[str, int]
    total: int


class ActivityCleanupResponse(BaseModel):
    deleted: int
    retention_days: int


# Cache administration

class CacheStatsResponse(BaseModel):
    hits: int
    misses: int
    sets: int
    deletes: int
    errors: int
    hit_rate: float
    enabled: bool
    primary_connected: bool
    fallback_size: Optional[int] = None


class CacheClearResponse(BaseModel):
    removed: int


class CacheSettingsRequest(BaseModel):
    enabled: bool
