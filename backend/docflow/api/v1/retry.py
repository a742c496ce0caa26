"""Single retry of operations that lost an optimistic-concurrency race.

ConcurrentModificationError is the only engine error worth retrying: the
operation is simply run again, which re-reads the current state and
re-validates the request against it. A second loss is returned to the
caller.
"""

from typing import Callable, TypeVar

from ...domain.errors import ConcurrentModificationError
from ...observability.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_single_retry(operation: Callable[[], T], description: str = "operation") -> T:
    """Run operation, retrying it once on ConcurrentModificationError.

    Example:
        result = run_with_single_retry(
            lambda: workflow.update_status(document_id, principal, target),
            description=f"status update of document {document_id}",
        )
    """
    try:
        return operation()
    except ConcurrentModificationError as exc:
        logger.info(f"Retrying {description} after concurrent modification: {exc.message}")
        return operation()
