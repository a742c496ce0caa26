"""Collaborator ports of the document engine.

The workflow depends only on these interfaces; adapters live in
docflow.infrastructure.

Architecture: Hexagonal - Port interfaces in domain layer
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from .document_status import DocumentStatus
from .models import (
    BranchRecord,
    CommentRecord,
    DocumentFilters,
    DocumentRecord,
    NewDocument,
    Receipt,
    StatusHistoryEntry,
    StoredFileRef,
    SupplementaryFileRecord,
)


class DocumentStorePort(ABC):
    """Authoritative store for documents and their satellites.

    Writes are staged in a unit of work and become visible only after
    commit(). Document writes are conditional on the version the caller
    read: a write based on a stale read raises ConcurrentModificationError
    instead of applying.
    """

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[DocumentRecord]:
        """Load a document, None if it does not exist."""

    @abstractmethod
    def create_document(
        self,
        data: NewDocument,
        uploader_id: int,
        status: DocumentStatus,
        now: datetime,
    ) -> DocumentRecord:
        """Insert a new document and return it with its identifier."""

    @abstractmethod
    def update_document_status(
        self,
        document_id: int,
        expected_status: DocumentStatus,
        expected_version: int,
        new_status: DocumentStatus,
        now: datetime,
    ) -> None:
        """Move a document to new_status if it is unchanged since it was read.

        Raises:
            NotFoundError: The document does not exist
            ConcurrentModificationError: The status or version differs from the expected one
        """

    @abstractmethod
    def update_document_metadata(
        self,
        document_id: int,
        expected_version: int,
        changes: Dict[str, Any],
        now: datetime,
    ) -> DocumentRecord:
        """Apply column changes to a document and return the updated record.

        Raises:
            NotFoundError: The document does not exist
            ConcurrentModificationError: The document changed since expected_version
        """

    @abstractmethod
    def bump_document_version(self, document_id: int, expected_version: int) -> None:
        """Claim the document for a write to one of its satellites.

        Raises:
            NotFoundError: The document does not exist
            ConcurrentModificationError: The document changed since expected_version
        """

    @abstractmethod
    def record_receipt(
        self,
        document_id: int,
        receipt: Receipt,
        expected_version: int,
        received_on: date,
        now: datetime,
    ) -> DocumentRecord:
        """Record a receipt date if the document is unchanged since it was read.

        Raises:
            NotFoundError: The document does not exist
            ConcurrentModificationError: The document changed since expected_version
        """

    @abstractmethod
    def append_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        """Append a status history entry (never updated afterwards)."""

    @abstractmethod
    def list_history(self, document_id: int) -> List[StatusHistoryEntry]:
        """History entries of a document, oldest first."""

    @abstractmethod
    def get_supplementary_file(
        self,
        document_id: int,
        slot_index: int,
    ) -> Optional[SupplementaryFileRecord]:
        """Load the file uploaded for a slot, None if nothing was uploaded."""

    @abstractmethod
    def list_supplementary_files(self, document_id: int) -> List[SupplementaryFileRecord]:
        """Files uploaded for a document, ordered by slot index."""

    @abstractmethod
    def save_supplementary_file(
        self,
        record: SupplementaryFileRecord,
        now: datetime,
    ) -> SupplementaryFileRecord:
        """Insert or replace the file of a slot, resetting its verification.

        Raises:
            SlotLockedError: The slot's current file is verified as correct
        """

    @abstractmethod
    def set_slot_verification(
        self,
        document_id: int,
        slot_index: int,
        expected: Optional[bool],
        verified: bool,
        verifier_id: int,
        comment: Optional[str],
        now: datetime,
    ) -> SupplementaryFileRecord:
        """Record a verification decision if the slot is still in the expected state.

        Raises:
            NotFoundError: No file was uploaded for the slot
            ConcurrentModificationError: The slot changed state in between
        """

    @abstractmethod
    def add_comment(self, comment: CommentRecord) -> CommentRecord:
        """Insert a comment."""

    @abstractmethod
    def list_comments(self, document_id: int) -> List[CommentRecord]:
        """Comments of a document, oldest first."""

    @abstractmethod
    def get_branch(self, ba_code: int) -> Optional[BranchRecord]:
        """Load a branch by BA code."""

    @abstractmethod
    def list_branches(self, active_only: bool = True) -> List[BranchRecord]:
        """All branches ordered by BA code."""

    @abstractmethod
    def list_branch_documents(
        self,
        ba_code: int,
        filters: DocumentFilters,
    ) -> Tuple[List[DocumentRecord], int]:
        """One page of a branch's non-draft documents, newest first, plus the total count."""

    @abstractmethod
    def count_branch_documents(self, ba_code: int) -> Dict[str, int]:
        """Non-draft document counts of a branch keyed by status."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the staged unit of work."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard the staged unit of work."""


class FileStorePort(ABC):
    """Storage for uploaded file content.

    Storage mechanics (encryption, layout) are the adapter's concern; the
    engine only keeps the returned reference.
    """

    @abstractmethod
    def store(self, document_id: int, slot_index: int, filename: str, content: bytes) -> StoredFileRef:
        """Persist file content and return a reference to it."""

    @abstractmethod
    def delete(self, storage_ref: str) -> None:
        """Remove stored content. Missing content is not an error."""


class NotifierPort(ABC):
    """Outbound notification of routing events (e.g. a chat bot)."""

    @abstractmethod
    def document_routed(
        self,
        document: DocumentRecord,
        from_status: Optional[DocumentStatus],
        to_status: DocumentStatus,
        comment: Optional[str] = None,
    ) -> None:
        """Announce that a document reached a new routing status."""
