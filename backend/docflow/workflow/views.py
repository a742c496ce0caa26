"""Read projections served through the cache.

Every projection is a plain dataclass tree so the cache coordinator can
serialize it to JSON and validate it back on a hit.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from ..domain.documents.models import (
    CommentRecord,
    DocumentRecord,
    StatusHistoryEntry,
    SupplementaryFileRecord,
)


@dataclass
class DocumentView:
    """A document with its attachments, history and comments.

    is_complete is derived: acknowledged and every required slot verified.
    """
    document: DocumentRecord
    supplementary_files: List[SupplementaryFileRecord] = field(default_factory=list)
    history: List[StatusHistoryEntry] = field(default_factory=list)
    comments: List[CommentRecord] = field(default_factory=list)
    required_slots: List[int] = field(default_factory=list)
    pending_slots: List[int] = field(default_factory=list)
    all_required_slots_verified: bool = True
    is_complete: bool = False


@dataclass
class DocumentPage:
    """One page of a branch document listing"""
    items: List[DocumentRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass
class BranchDocumentCounts:
    """Non-draft document counts of a branch by status"""
    ba_code: int
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())
