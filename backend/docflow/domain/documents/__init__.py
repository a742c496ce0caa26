"""Document domain: status state machine, verification sub-workflow, ports"""

from .document_status import (
    DocumentStatus,
    TransitionRule,
    TRANSITION_RULES,
    INITIAL_STATUSES,
    get_transition_rule,
)
from .models import (
    CLEARABLE_METADATA,
    BranchRecord,
    CommentRecord,
    DocumentFilters,
    DocumentMetadataUpdate,
    DocumentRecord,
    NewDocument,
    Receipt,
    StatusChangeResult,
    StatusHistoryEntry,
    StoredFileRef,
    SupplementaryFileRecord,
    SupplementaryUpload,
)
from .verification import (
    VerificationState,
    all_required_slots_verified,
    is_complete,
    pending_slot_indexes,
)
from .ports import DocumentStorePort, FileStorePort, NotifierPort

__all__ = [
    "DocumentStatus",
    "TransitionRule",
    "TRANSITION_RULES",
    "INITIAL_STATUSES",
    "get_transition_rule",
    "CLEARABLE_METADATA",
    "BranchRecord",
    "CommentRecord",
    "DocumentFilters",
    "DocumentMetadataUpdate",
    "DocumentRecord",
    "NewDocument",
    "Receipt",
    "StatusChangeResult",
    "StatusHistoryEntry",
    "StoredFileRef",
    "SupplementaryFileRecord",
    "SupplementaryUpload",
    "VerificationState",
    "all_required_slots_verified",
    "is_complete",
    "pending_slot_indexes",
    "DocumentStorePort",
    "FileStorePort",
    "NotifierPort",
]
