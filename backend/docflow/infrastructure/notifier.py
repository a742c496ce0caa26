"""Default notifier: routing events go to the application log."""

from typing import Optional

from ..domain.documents.document_status import DocumentStatus
from ..domain.documents.models import DocumentRecord
from ..domain.documents.ports import NotifierPort
from ..observability.logging_config import get_logger

logger = get_logger(__name__)


class LoggingNotifier(NotifierPort):
    """NotifierPort that logs instead of messaging an external service"""

    def document_routed(
        self,
        document: DocumentRecord,
        from_status: Optional[DocumentStatus],
        to_status: DocumentStatus,
        comment: Optional[str] = None,
    ) -> None:
        logger.info(
            f"Document {document.mt_number} routed to {to_status.value}",
            extra={
                "document_id": document.id,
                "ba_code": document.branch_ba_code,
                "action": "notify",
            },
        )
