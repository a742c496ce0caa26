"""Activity events emitted by the document engine.

Events are created after the authoritative write commits and handed to an
ActivityRecorder; the workflow never waits on their persistence.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..observability.request_id import get_client_info, get_request_id


class ActivityAction(str, Enum):
    """Action names stored in activity_logs.action"""
    CREATE_DOCUMENT = "create_document"
    UPDATE_DOCUMENT = "update_document"
    NOTIFY_SENT = "notify_sent"
    STATUS_UPDATE = "status_update"
    ADD_COMMENT = "add_comment"
    VIEW_DOCUMENT = "view_document"
    UPLOAD_SUPPLEMENTARY_FILE = "upload_supplementary_file"
    VERIFY_SUPPLEMENTARY_FILE = "verify_supplementary_file"
    RECEIVE_PAPER_DOCUMENT = "receive_paper_document"
    RECEIVE_ADDITIONAL_DOCS = "receive_additional_docs"


@dataclass(frozen=True)
class ActivityEvent:
    """One entry of the user activity trail"""
    action: ActivityAction
    user_id: Optional[int]
    occurred_at: datetime
    document_id: Optional[int] = None
    branch_ba_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def for_current_request(
        cls,
        action: ActivityAction,
        user_id: Optional[int],
        occurred_at: datetime,
        document_id: Optional[int] = None,
        branch_ba_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ActivityEvent":
        """Build an event carrying the client info and request ID of the current request."""
        ip_address, user_agent = get_client_info()
        return cls(
            action=action,
            user_id=user_id,
            occurred_at=occurred_at,
            document_id=document_id,
            branch_ba_code=branch_ba_code,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=get_request_id(),
        )
