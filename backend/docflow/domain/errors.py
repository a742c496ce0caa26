"""Engine error taxonomy.

Every business-rule violation raised by the document engine derives from
DocFlowError. Request handlers translate the error code into an HTTP status;
none of these errors is retried automatically except
ConcurrentModificationError, which marks a lost race rather than an invalid
request.
"""


class DocFlowError(Exception):
    """Base class for engine errors surfaced to the request handler."""

    code = "docflow_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DocFlowError):
    """Raised when a document, branch or supplementary slot does not exist."""

    code = "not_found"


class ForbiddenError(DocFlowError):
    """Raised when the acting principal is not authorized for the operation."""

    code = "forbidden"


class InvalidTransitionError(DocFlowError):
    """Raised when a status or verification change is not in the state table."""

    code = "invalid_transition"


class CommentRequiredError(DocFlowError):
    """Raised when an edge requires a justification and none was supplied."""

    code = "comment_required"


class UnverifiedAttachmentsError(DocFlowError):
    """Raised when a document is sent back while required attachments are not verified."""

    code = "unverified_attachments"

    def __init__(self, message: str, pending_slots: list[int] | None = None):
        super().__init__(message)
        self.pending_slots = pending_slots or []


class ConcurrentModificationError(DocFlowError):
    """Raised when a conditional write lost a race with another caller."""

    code = "concurrent_modification"
    retryable = True


class InvalidInputError(DocFlowError):
    """Raised for malformed input: undeclared slot, bad metadata, oversized file."""

    code = "invalid_input"


class SlotLockedError(DocFlowError):
    """Raised when a file is uploaded to a slot already verified as correct."""

    code = "slot_locked"


class AlreadyReceivedError(DocFlowError):
    """Raised when a paper or supplementary-document receipt was already recorded."""

    code = "already_received"
