"""Pytest fixtures for the DocFlow engine.

Provides reusable test fixtures for:
- Database session on an in-memory SQLite database (tables created per test)
- Branches in two regions (R6: 1101, 1102, inactive 1199; R7: 2201)
- Principals for every role
- A pinned clock, an in-memory cache and recording activity/notifier doubles
- A wired DocumentWorkflow / DocumentQueries pair and a document factory

Usage:
    def test_acknowledge(workflow, create_document, branch_user):
        document = create_document()
        workflow.update_status(document.id, branch_user, DocumentStatus.ACKNOWLEDGED)
"""

import os

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ACTIVITY_ASYNC", "false")
os.environ.setdefault("LOG_JSON", "false")

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generator, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docflow.activity.events import ActivityAction, ActivityEvent
from docflow.activity.recorder import ActivityRecorder, write_activity_log
from docflow.auth.principal import Principal
from docflow.cache.coordinator import CacheCoordinator, CacheSettings
from docflow.cache.memory_backend import InMemoryCacheBackend
from docflow.domain.clock import Clock
from docflow.domain.documents.document_status import DocumentStatus
from docflow.domain.documents.models import (
    DocumentRecord,
    NewDocument,
    StoredFileRef,
    SupplementaryUpload,
)
from docflow.domain.documents.ports import FileStorePort, NotifierPort
from docflow.infrastructure.document_store import SqlAlchemyDocumentStore
from docflow.models import Base, Branch
from docflow.workflow.queries import DocumentQueries
from docflow.workflow.service import DocumentWorkflow, UploadPolicy


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FixedClock(Clock):
    """Clock pinned to a settable instant."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)


class RecordingActivityRecorder(ActivityRecorder):
    """Keeps events in memory; optionally also writes them to a session."""

    def __init__(self, db: Optional[Session] = None):
        self.events: List[ActivityEvent] = []
        self.db = db

    def record(self, event: ActivityEvent) -> None:
        self.events.append(event)
        if self.db is not None:
            write_activity_log(self.db, event)
            self.db.commit()

    def actions(self) -> List[ActivityAction]:
        return [event.action for event in self.events]


class RecordingNotifier(NotifierPort):
    def __init__(self):
        self.calls = []
        self.fail = False

    def document_routed(self, document, from_status, to_status, comment=None) -> None:
        if self.fail:
            raise ConnectionError("notification service unreachable")
        self.calls.append((document.id, from_status, to_status, comment))


class InMemoryFileStore(FileStorePort):
    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self._counter = 0

    def store(self, document_id: int, slot_index: int, filename: str, content: bytes) -> StoredFileRef:
        self._counter += 1
        ref = f"{document_id}/{slot_index}_{self._counter}_{filename}"
        self.files[ref] = content
        return StoredFileRef(storage_ref=ref, original_filename=filename, size_bytes=len(content))

    def delete(self, storage_ref: str) -> None:
        self.files.pop(storage_ref, None)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory SQLite database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def branches(db_session: Session) -> List[Branch]:
    """Three active branches in two regions plus one inactive branch."""
    rows = [
        Branch(ba_code=1101, branch_code=110100, name="North Branch", region_code="R6", is_active=True),
        Branch(ba_code=1102, branch_code=110200, name="South Branch", region_code="R6", is_active=True),
        Branch(ba_code=1199, branch_code=119900, name="Closed Branch", region_code="R6", is_active=False),
        Branch(ba_code=2201, branch_code=220100, name="Harbour Branch", region_code="R7", is_active=True),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


# =============================================================================
# PRINCIPALS
# =============================================================================

@pytest.fixture
def admin() -> Principal:
    return Principal.from_role_names(1, ["admin"])


@pytest.fixture
def district_manager() -> Principal:
    return Principal.from_role_names(2, ["district_manager"], region_code="R6")


@pytest.fixture
def branch_manager() -> Principal:
    return Principal.from_role_names(3, ["branch_manager"], ba_code=1101, region_code="R6")


@pytest.fixture
def branch_user() -> Principal:
    return Principal.from_role_names(4, ["branch_user"], ba_code=1101)


@pytest.fixture
def other_branch_user() -> Principal:
    return Principal.from_role_names(5, ["branch_user"], ba_code=1102)


@pytest.fixture
def uploader() -> Principal:
    return Principal.from_role_names(10, ["uploader"])


@pytest.fixture
def other_uploader() -> Principal:
    return Principal.from_role_names(11, ["uploader"])


@pytest.fixture
def plain_user() -> Principal:
    return Principal.from_role_names(20, ["user"], ba_code=1101)


# =============================================================================
# ENGINE COLLABORATORS
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def cache(clock: FixedClock) -> CacheCoordinator:
    return CacheCoordinator(InMemoryCacheBackend(clock=clock), settings=CacheSettings())


@pytest.fixture
def activity() -> RecordingActivityRecorder:
    return RecordingActivityRecorder()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def file_store() -> InMemoryFileStore:
    return InMemoryFileStore()


@pytest.fixture
def store(db_session: Session, branches) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(db_session)


@pytest.fixture
def queries(store, cache) -> DocumentQueries:
    return DocumentQueries(store, cache)


@pytest.fixture
def workflow(store, cache, activity, queries, clock, notifier, file_store) -> DocumentWorkflow:
    return DocumentWorkflow(
        store=store,
        cache=cache,
        activity=activity,
        authorization=queries.authorization,
        clock=clock,
        notifier=notifier,
        file_store=file_store,
        upload_policy=UploadPolicy(),
    )


@pytest.fixture
def create_document(workflow: DocumentWorkflow, uploader: Principal) -> Callable[..., DocumentRecord]:
    """Factory creating a document through the workflow.

    Keyword arguments override NewDocument fields; `status` selects the
    initial status and `actor` the creating principal.
    """

    def _create(
        status: DocumentStatus = DocumentStatus.SENT_TO_BRANCH,
        actor: Optional[Principal] = None,
        **overrides,
    ) -> DocumentRecord:
        fields = {
            "branch_ba_code": 1101,
            "mt_number": "MT-2024-0001",
            "subject": "Monthly meter reading report",
            "original_filename": "report.pdf",
        }
        fields.update(overrides)
        return workflow.create_document(actor or uploader, NewDocument(**fields), initial_status=status)

    return _create


@pytest.fixture
def document_with_slots(create_document) -> DocumentRecord:
    """Dispatched document declaring two required slots and one blank slot."""
    return create_document(
        has_additional_docs=True,
        additional_docs_count=3,
        additional_docs=["Signed cover letter", "Meter photos", ""],
    )


@pytest.fixture
def pdf_upload() -> Callable[..., SupplementaryUpload]:
    def _upload(filename: str = "attachment.pdf", content: bytes = PDF_BYTES) -> SupplementaryUpload:
        return SupplementaryUpload(original_filename=filename, content=content, mime_type="application/pdf")

    return _upload
