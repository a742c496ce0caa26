"""DocumentStatus state machine for the document routing lifecycle

State flow:
    draft → sent_to_branch → acknowledged → sent_back_to_district
    sent_to_branch → sent_back_to_district (direct send-back)
    sent_back_to_district → sent_to_branch (re-send loop)

New documents start in draft or, when created directly for dispatch, in
sent_to_branch. There is no terminal status; a document is operationally
complete once it is acknowledged and every required supplementary slot is
verified (see verification.is_complete).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from ...auth.roles import DocFlowRole, UPLOADER_TIER, BRANCH_TIER


class DocumentStatus(str, Enum):
    """Document routing status enum"""
    DRAFT = "draft"                                    # Prepared by the uploader, not yet dispatched
    SENT_TO_BRANCH = "sent_to_branch"                  # Dispatched, awaiting branch acknowledgement
    ACKNOWLEDGED = "acknowledged"                      # Branch confirmed receipt
    SENT_BACK_TO_DISTRICT = "sent_back_to_district"    # Returned to the district office


@dataclass(frozen=True)
class TransitionRule:
    """One edge of the status state machine.

    Attributes:
        from_status: Current status
        to_status: Target status
        allowed_roles: Roles of which the actor must hold at least one
        comment_required: Edge requires a non-blank justification
        requires_verified_attachments: Edge is gated on every required
            supplementary slot being verified as correct
    """
    from_status: DocumentStatus
    to_status: DocumentStatus
    allowed_roles: FrozenSet[DocFlowRole]
    comment_required: bool = False
    requires_verified_attachments: bool = False


TRANSITION_RULES: Tuple[TransitionRule, ...] = (
    TransitionRule(DocumentStatus.DRAFT, DocumentStatus.SENT_TO_BRANCH, UPLOADER_TIER),
    TransitionRule(DocumentStatus.SENT_TO_BRANCH, DocumentStatus.ACKNOWLEDGED, BRANCH_TIER),
    TransitionRule(
        DocumentStatus.SENT_TO_BRANCH,
        DocumentStatus.SENT_BACK_TO_DISTRICT,
        BRANCH_TIER,
        comment_required=True,
        requires_verified_attachments=True,
    ),
    TransitionRule(
        DocumentStatus.ACKNOWLEDGED,
        DocumentStatus.SENT_BACK_TO_DISTRICT,
        BRANCH_TIER,
        comment_required=True,
        requires_verified_attachments=True,
    ),
    TransitionRule(
        DocumentStatus.SENT_BACK_TO_DISTRICT,
        DocumentStatus.SENT_TO_BRANCH,
        UPLOADER_TIER,
        comment_required=True,
    ),
)

# Statuses a document may be created in
INITIAL_STATUSES: FrozenSet[DocumentStatus] = frozenset({
    DocumentStatus.DRAFT,
    DocumentStatus.SENT_TO_BRANCH,
})

_RULES_BY_EDGE: Dict[Tuple[DocumentStatus, DocumentStatus], TransitionRule] = {
    (rule.from_status, rule.to_status): rule for rule in TRANSITION_RULES
}


def get_transition_rule(
    from_status: DocumentStatus,
    to_status: DocumentStatus,
) -> Optional[TransitionRule]:
    """Look up the rule for an edge, or None if the edge is not in the table."""
    return _RULES_BY_EDGE.get((from_status, to_status))


def parse_status(value: str) -> Optional[DocumentStatus]:
    """Convert a stored status string to DocumentStatus, None if unknown."""
    try:
        return DocumentStatus(value)
    except ValueError:
        return None
