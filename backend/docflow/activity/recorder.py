"""Activity recorders.

record() never raises: a recorder swallows its own failures, logs them and
counts them in docflow_activity_events_total. The workflow's result never
depends on whether the activity trail was written.

DatabaseActivityRecorder writes each event in its own short transaction.
QueuedActivityRecorder decouples the caller from that write: events are put
on a bounded queue and a single worker thread drains it into a sink
recorder. When the queue is full the event is dropped and logged.
"""

import queue
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..models.activity_log import ActivityLog
from ..observability.request_id import NO_REQUEST_ID
from ..observability.logging_config import get_logger
from ..observability.metrics import activity_events_total, activity_queue_depth
from .events import ActivityEvent

logger = get_logger(__name__)

_STOP = object()


class ActivityRecorder(ABC):
    """Sink for activity events"""

    @abstractmethod
    def record(self, event: ActivityEvent) -> None:
        """Record an event. Must not raise."""

    def close(self, timeout: Optional[float] = None) -> None:
        """Release resources, flushing pending events where possible."""


def write_activity_log(db: Session, event: ActivityEvent) -> ActivityLog:
    """Add an activity_logs row for the event.

    Args:
        db: Database session (caller commits)
        event: Event to persist

    Returns:
        ActivityLog: The created row
    """
    details = dict(event.details)
    if event.request_id and event.request_id != NO_REQUEST_ID:
        details.setdefault("request_id", event.request_id)

    entry = ActivityLog(
        user_id=event.user_id,
        action=event.action.value,
        document_id=event.document_id,
        branch_ba_code=event.branch_ba_code,
        details=details or None,
        ip_address=event.ip_address,
        user_agent=event.user_agent,
        created_at=event.occurred_at,
    )
    db.add(entry)
    db.flush()
    return entry


class DatabaseActivityRecorder(ActivityRecorder):
    """Writes each event to activity_logs in its own session.

    Args:
        session_factory: Returns a new Session (e.g. a sessionmaker)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def record(self, event: ActivityEvent) -> None:
        session = None
        try:
            session = self._session_factory()
            write_activity_log(session, event)
            session.commit()
            activity_events_total.labels(result="recorded").inc()
        except Exception:
            activity_events_total.labels(result="error").inc()
            logger.error(
                f"Failed to record activity {event.action.value}",
                extra={"document_id": event.document_id, "actor_id": event.user_id},
                exc_info=True,
            )
            if session is not None:
                session.rollback()
        finally:
            if session is not None:
                session.close()


class QueuedActivityRecorder(ActivityRecorder):
    """Post-commit emitter: hands events to a worker thread through a bounded queue.

    Args:
        sink: Recorder the worker writes to
        maxsize: Queue capacity; events beyond it are dropped
    """

    def __init__(self, sink: ActivityRecorder, maxsize: int = 1000):
        self._sink = sink
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closed = False

    def start(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._run,
                name="docflow-activity",
                daemon=True,
            )
            self._worker.start()

    def record(self, event: ActivityEvent) -> None:
        if self._closed:
            activity_events_total.labels(result="dropped").inc()
            logger.warning(f"Activity recorder closed, dropping {event.action.value} event")
            return
        self.start()
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            activity_events_total.labels(result="dropped").inc()
            logger.warning(
                f"Activity queue full, dropping {event.action.value} event",
                extra={"document_id": event.document_id, "actor_id": event.user_id},
            )
            return
        activity_queue_depth.set(self._queue.qsize())

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._sink.record(item)
            except Exception:
                activity_events_total.labels(result="error").inc()
                logger.error("Activity worker failed to record event", exc_info=True)
            finally:
                self._queue.task_done()
                activity_queue_depth.set(self._queue.qsize())

    def flush(self) -> None:
        """Block until every queued event has been handed to the sink."""
        if self._worker is not None:
            self._queue.join()

    def close(self, timeout: Optional[float] = 5.0) -> None:
        self._closed = True
        worker = self._worker
        if worker is None:
            return
        self._queue.put(_STOP)
        worker.join(timeout)
        if worker.is_alive():
            logger.warning(f"Activity worker did not stop, {self._queue.qsize()} event(s) pending")
