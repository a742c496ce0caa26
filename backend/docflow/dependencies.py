"""Engine wiring for FastAPI.

Process-wide collaborators (cache coordinator, activity recorder, clock,
notifier, file store) are created once and shared. The document store,
queries and workflow are created per request around the request's
database session.

Tests replace any of these through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .activity.recorder import ActivityRecorder, DatabaseActivityRecorder, QueuedActivityRecorder
from .cache.coordinator import CacheCoordinator, CacheSettings, load_cache_settings
from .cache.fallback import FallbackCacheBackend
from .cache.memory_backend import InMemoryCacheBackend
from .cache.redis_backend import RedisCacheBackend
from .config import get_settings
from .database import get_db, get_db_session, get_session_factory
from .domain.clock import Clock, SystemClock
from .domain.documents.ports import FileStorePort, NotifierPort
from .infrastructure.document_store import SqlAlchemyDocumentStore
from .infrastructure.file_store import LocalFileStore
from .infrastructure.notifier import LoggingNotifier
from .observability.logging_config import get_logger
from .workflow.queries import DocumentQueries
from .workflow.service import DocumentWorkflow, UploadPolicy

logger = get_logger(__name__)


@lru_cache()
def get_clock() -> Clock:
    return SystemClock()


def read_cache_settings() -> CacheSettings:
    """Effective cache settings (environment + system_settings override)."""
    settings = get_settings()
    try:
        with get_db_session() as session:
            return load_cache_settings(session, settings)
    except Exception:
        logger.warning("Could not read cache settings from the database, using defaults", exc_info=True)
        return CacheSettings.from_settings(settings)


@lru_cache()
def get_cache_coordinator() -> CacheCoordinator:
    """Shared cache coordinator: Redis primary, in-memory fallback."""
    settings = get_settings()
    clock = get_clock()
    primary = None
    if settings.REDIS_URL:
        primary = RedisCacheBackend.from_url(
            settings.REDIS_URL,
            prefix=settings.CACHE_KEY_PREFIX,
            tag_ttl=max(
                settings.CACHE_DEFAULT_TTL,
                settings.CACHE_DOCUMENT_TTL,
                settings.CACHE_BRANCH_LIST_TTL,
                settings.CACHE_BRANCHES_TTL,
            ),
        )
    backend = FallbackCacheBackend(
        primary=primary,
        fallback=InMemoryCacheBackend(clock=clock, cleanup_interval=settings.CACHE_FALLBACK_CLEANUP_SECONDS),
        clock=clock,
        retry_seconds=settings.CACHE_PRIMARY_RETRY_SECONDS,
    )
    return CacheCoordinator(
        backend,
        settings=CacheSettings.from_settings(settings),
        settings_loader=read_cache_settings,
    )


@lru_cache()
def get_activity_recorder() -> ActivityRecorder:
    settings = get_settings()
    recorder: ActivityRecorder = DatabaseActivityRecorder(get_session_factory())
    if settings.ACTIVITY_ASYNC:
        recorder = QueuedActivityRecorder(recorder, maxsize=settings.ACTIVITY_QUEUE_SIZE)
    return recorder


@lru_cache()
def get_notifier() -> NotifierPort:
    return LoggingNotifier()


@lru_cache()
def get_file_store() -> FileStorePort:
    return LocalFileStore(get_settings().UPLOAD_ROOT)


def get_upload_policy() -> UploadPolicy:
    settings = get_settings()
    return UploadPolicy(
        max_file_size=settings.SUPPLEMENTARY_MAX_FILE_SIZE,
        allowed_mime_types=frozenset(settings.SUPPLEMENTARY_ALLOWED_MIME_TYPES),
    )


def get_document_store(db: Session = Depends(get_db)) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(db)


def get_document_queries(
    store: SqlAlchemyDocumentStore = Depends(get_document_store),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> DocumentQueries:
    return DocumentQueries(store, cache)


def get_document_workflow(
    store: SqlAlchemyDocumentStore = Depends(get_document_store),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    queries: DocumentQueries = Depends(get_document_queries),
    activity: ActivityRecorder = Depends(get_activity_recorder),
    clock: Clock = Depends(get_clock),
    notifier: NotifierPort = Depends(get_notifier),
    file_store: FileStorePort = Depends(get_file_store),
    upload_policy: UploadPolicy = Depends(get_upload_policy),
) -> DocumentWorkflow:
    return DocumentWorkflow(
        store=store,
        cache=cache,
        activity=activity,
        authorization=queries.authorization,
        clock=clock,
        notifier=notifier,
        file_store=file_store,
        upload_policy=upload_policy,
    )
