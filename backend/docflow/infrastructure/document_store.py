"""SQLAlchemy implementation of the authoritative document store.

Document and verification writes are single conditional UPDATE statements
keyed on the state the caller validated against; document writes also
increment documents.version. Zero affected rows on an existing row means
another caller won the race.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.documents.document_status import DocumentStatus
from ..domain.documents.models import (
    BranchRecord,
    CommentRecord,
    DocumentFilters,
    DocumentRecord,
    NewDocument,
    Receipt,
    StatusHistoryEntry,
    SupplementaryFileRecord,
)
from ..domain.documents.ports import DocumentStorePort
from ..domain.errors import ConcurrentModificationError, NotFoundError, SlotLockedError
from ..models.branch import Branch
from ..models.document import Comment, Document, DocumentStatusHistory, SupplementaryFile

# Columns a metadata update may touch
METADATA_COLUMNS = frozenset({
    "branch_ba_code",
    "mt_number",
    "mt_date",
    "subject",
    "month_year",
    "has_additional_docs",
    "additional_docs_count",
    "additional_docs",
})


def _to_branch_record(row: Branch) -> BranchRecord:
    return BranchRecord(
        ba_code=row.ba_code,
        name=row.name,
        region_code=row.region_code,
        branch_code=row.branch_code,
        is_active=bool(row.is_active),
    )


def _to_document_record(row: Document) -> DocumentRecord:
    return DocumentRecord(
        id=row.id,
        status=DocumentStatus(row.status),
        branch_ba_code=row.branch_ba_code,
        uploader_id=row.uploader_id,
        mt_number=row.mt_number,
        subject=row.subject,
        original_filename=row.original_filename,
        file_path=row.file_path,
        file_size=row.file_size,
        mt_date=row.mt_date,
        month_year=row.month_year,
        has_additional_docs=bool(row.has_additional_docs),
        additional_docs_count=row.additional_docs_count or 0,
        additional_docs=list(row.additional_docs or []),
        received_paper_doc_date=row.received_paper_doc_date,
        additional_docs_received_date=row.additional_docs_received_date,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_file_record(row: SupplementaryFile) -> SupplementaryFileRecord:
    return SupplementaryFileRecord(
        id=row.id,
        document_id=row.document_id,
        item_index=row.item_index,
        item_name=row.item_name,
        file_path=row.file_path,
        original_filename=row.original_filename,
        file_size=row.file_size,
        uploader_id=row.uploader_id,
        is_verified=row.is_verified,
        verified_by=row.verified_by,
        verified_at=row.verified_at,
        verification_comment=row.verification_comment,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_history_entry(row: DocumentStatusHistory) -> StatusHistoryEntry:
    return StatusHistoryEntry(
        id=row.id,
        document_id=row.document_id,
        from_status=DocumentStatus(row.from_status) if row.from_status else None,
        to_status=DocumentStatus(row.to_status),
        changed_by=row.changed_by,
        comment=row.comment,
        created_at=row.created_at,
    )


def _to_comment_record(row: Comment) -> CommentRecord:
    return CommentRecord(
        id=row.id,
        document_id=row.document_id,
        user_id=row.user_id,
        content=row.content,
        created_at=row.created_at,
    )


def _start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class SqlAlchemyDocumentStore(DocumentStorePort):
    """Document store on a SQLAlchemy session (one unit of work per instance).

    Args:
        db: SQLAlchemy database session
    """

    def __init__(self, db: Session):
        self.db = db

    # Documents

    def _load_document_row(self, document_id: int) -> Optional[Document]:
        stmt = (
            select(Document)
            .where(Document.id == document_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_document(self, document_id: int) -> Optional[DocumentRecord]:
        row = self._load_document_row(document_id)
        return _to_document_record(row) if row is not None else None

    def create_document(
        self,
        data: NewDocument,
        uploader_id: int,
        status: DocumentStatus,
        now: datetime,
    ) -> DocumentRecord:
        row = Document(
            file_path=data.file_path,
            original_filename=data.original_filename,
            file_size=data.file_size,
            branch_ba_code=data.branch_ba_code,
            uploader_id=uploader_id,
            mt_number=data.mt_number,
            mt_date=data.mt_date,
            subject=data.subject,
            month_year=data.month_year,
            status=status.value,
            has_additional_docs=data.has_additional_docs,
            additional_docs_count=data.additional_docs_count,
            additional_docs=list(data.additional_docs),
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self.db.flush()
        return _to_document_record(row)

    def _conditional_document_update(
        self,
        document_id: int,
        conditions: tuple,
        values: Dict[str, Any],
        conflict: str,
    ) -> None:
        """UPDATE the row if every condition holds, incrementing its version."""
        result = self.db.execute(
            update(Document)
            .where(Document.id == document_id, *conditions)
            .values(version=Document.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        if self._load_document_row(document_id) is None:
            raise NotFoundError(f"Document {document_id} not found")
        raise ConcurrentModificationError(f"Document {document_id} {conflict}")

    def update_document_status(
        self,
        document_id: int,
        expected_status: DocumentStatus,
        expected_version: int,
        new_status: DocumentStatus,
        now: datetime,
    ) -> None:
        self._conditional_document_update(
            document_id,
            (Document.status == expected_status.value, Document.version == expected_version),
            {"status": new_status.value, "updated_at": now},
            conflict=f"changed while moving out of {expected_status.value}",
        )

    def update_document_metadata(
        self,
        document_id: int,
        expected_version: int,
        changes: Dict[str, Any],
        now: datetime,
    ) -> DocumentRecord:
        unknown = set(changes) - METADATA_COLUMNS
        if unknown:
            raise ValueError(f"Not metadata columns: {sorted(unknown)}")

        self._conditional_document_update(
            document_id,
            (Document.version == expected_version,),
            {**changes, "updated_at": now},
            conflict="was modified concurrently",
        )
        return _to_document_record(self._load_document_row(document_id))

    def bump_document_version(self, document_id: int, expected_version: int) -> None:
        self._conditional_document_update(
            document_id,
            (Document.version == expected_version,),
            {},
            conflict="was modified concurrently",
        )

    def record_receipt(
        self,
        document_id: int,
        receipt: Receipt,
        expected_version: int,
        received_on: date,
        now: datetime,
    ) -> DocumentRecord:
        self._conditional_document_update(
            document_id,
            (Document.version == expected_version,),
            {receipt.value: received_on, "updated_at": now},
            conflict="was modified concurrently",
        )
        return _to_document_record(self._load_document_row(document_id))

    # Status history

    def append_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        row = DocumentStatusHistory(
            document_id=entry.document_id,
            from_status=entry.from_status.value if entry.from_status else None,
            to_status=entry.to_status.value,
            changed_by=entry.changed_by,
            comment=entry.comment,
            created_at=entry.created_at,
        )
        self.db.add(row)
        self.db.flush()
        return _to_history_entry(row)

    def list_history(self, document_id: int) -> List[StatusHistoryEntry]:
        stmt = (
            select(DocumentStatusHistory)
            .where(DocumentStatusHistory.document_id == document_id)
            .order_by(DocumentStatusHistory.created_at, DocumentStatusHistory.id)
        )
        return [_to_history_entry(row) for row in self.db.execute(stmt).scalars()]

    # Supplementary files

    def _load_file_row(self, document_id: int, slot_index: int) -> Optional[SupplementaryFile]:
        stmt = (
            select(SupplementaryFile)
            .where(
                SupplementaryFile.document_id == document_id,
                SupplementaryFile.item_index == slot_index,
            )
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_supplementary_file(
        self,
        document_id: int,
        slot_index: int,
    ) -> Optional[SupplementaryFileRecord]:
        row = self._load_file_row(document_id, slot_index)
        return _to_file_record(row) if row is not None else None

    def list_supplementary_files(self, document_id: int) -> List[SupplementaryFileRecord]:
        stmt = (
            select(SupplementaryFile)
            .where(SupplementaryFile.document_id == document_id)
            .order_by(SupplementaryFile.item_index)
            .execution_options(populate_existing=True)
        )
        return [_to_file_record(row) for row in self.db.execute(stmt).scalars()]

    def save_supplementary_file(
        self,
        record: SupplementaryFileRecord,
        now: datetime,
    ) -> SupplementaryFileRecord:
        existing = self._load_file_row(record.document_id, record.item_index)
        if existing is None:
            row = SupplementaryFile(
                document_id=record.document_id,
                item_index=record.item_index,
                item_name=record.item_name,
                file_path=record.file_path,
                original_filename=record.original_filename,
                file_size=record.file_size,
                uploader_id=record.uploader_id,
                created_at=now,
                updated_at=now,
            )
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError as exc:
                raise ConcurrentModificationError(
                    f"Slot {record.item_index} of document {record.document_id} was uploaded concurrently"
                ) from exc
            return _to_file_record(row)

        # Re-upload: only while the slot is not verified as correct
        result = self.db.execute(
            update(SupplementaryFile)
            .where(
                SupplementaryFile.id == existing.id,
                or_(SupplementaryFile.is_verified.is_(None), SupplementaryFile.is_verified.is_(False)),
            )
            .values(
                item_name=record.item_name,
                file_path=record.file_path,
                original_filename=record.original_filename,
                file_size=record.file_size,
                uploader_id=record.uploader_id,
                is_verified=None,
                verified_by=None,
                verified_at=None,
                verification_comment=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SlotLockedError(
                f"Slot {record.item_index} of document {record.document_id} is verified and cannot be replaced"
            )
        return _to_file_record(self._load_file_row(record.document_id, record.item_index))

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
        if expected is None:
            state_clause = SupplementaryFile.is_verified.is_(None)
        else:
            state_clause = SupplementaryFile.is_verified.is_(expected)

        result = self.db.execute(
            update(SupplementaryFile)
            .where(
                SupplementaryFile.document_id == document_id,
                SupplementaryFile.item_index == slot_index,
                state_clause,
            )
            .values(
                is_verified=verified,
                verified_by=verifier_id,
                verified_at=now,
                verification_comment=comment,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        row = self._load_file_row(document_id, slot_index)
        if row is None:
            raise NotFoundError(f"No file uploaded for slot {slot_index} of document {document_id}")
        if result.rowcount == 0:
            raise ConcurrentModificationError(
                f"Verification of slot {slot_index} of document {document_id} changed concurrently"
            )
        return _to_file_record(row)

    # Comments

    def add_comment(self, comment: CommentRecord) -> CommentRecord:
        row = Comment(
            document_id=comment.document_id,
            user_id=comment.user_id,
            content=comment.content,
            created_at=comment.created_at,
        )
        self.db.add(row)
        self.db.flush()
        return _to_comment_record(row)

    def list_comments(self, document_id: int) -> List[CommentRecord]:
        stmt = (
            select(Comment)
            .where(Comment.document_id == document_id)
            .order_by(Comment.created_at, Comment.id)
        )
        return [_to_comment_record(row) for row in self.db.execute(stmt).scalars()]

    # Branches

    def get_branch(self, ba_code: int) -> Optional[BranchRecord]:
        row = self.db.execute(select(Branch).where(Branch.ba_code == ba_code)).scalar_one_or_none()
        return _to_branch_record(row) if row is not None else None

    def list_branches(self, active_only: bool = True) -> List[BranchRecord]:
        stmt = select(Branch).order_by(Branch.ba_code)
        if active_only:
            stmt = stmt.where(Branch.is_active.is_(True))
        return [_to_branch_record(row) for row in self.db.execute(stmt).scalars()]

    def _branch_documents_query(self, stmt, ba_code: int, filters: DocumentFilters):
        stmt = stmt.where(
            Document.branch_ba_code == ba_code,
            Document.status != DocumentStatus.DRAFT.value,
        )
        if filters.status is not None:
            stmt = stmt.where(Document.status == filters.status.value)
        if filters.date_from is not None:
            stmt = stmt.where(Document.created_at >= _start_of_day(filters.date_from))
        if filters.date_to is not None:
            stmt = stmt.where(Document.created_at < _start_of_day(filters.date_to + timedelta(days=1)))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(or_(Document.mt_number.ilike(pattern), Document.subject.ilike(pattern)))
        return stmt

    def list_branch_documents(
        self,
        ba_code: int,
        filters: DocumentFilters,
    ) -> Tuple[List[DocumentRecord], int]:
        total = self.db.execute(
            self._branch_documents_query(select(func.count(Document.id)), ba_code, filters)
        ).scalar_one()

        stmt = (
            self._branch_documents_query(select(Document), ba_code, filters)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .execution_options(populate_existing=True)
        )
        return [_to_document_record(row) for row in self.db.execute(stmt).scalars()], total

    def count_branch_documents(self, ba_code: int) -> Dict[str, int]:
        stmt = (
            select(Document.status, func.count(Document.id))
            .where(
                Document.branch_ba_code == ba_code,
                Document.status != DocumentStatus.DRAFT.value,
            )
            .group_by(Document.status)
        )
        return {status: count for status, count in self.db.execute(stmt).all()}

    # Unit of work

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
