"""Branch-scoped authorization.

The resolver answers questions, it never raises: every check returns a
bool or a (possibly empty) set, and the operation boundary turns a
negative answer into ForbiddenError.

Branch scope by role:
    admin                           → every branch
    district_manager, branch_manager → every branch of the principal's region
    branch_user, uploader, user     → the principal's own branch, or nothing

Branch actions:
    READ          list/view documents of the branch (branch must be in scope)
    UPLOAD        create/dispatch a document to the branch (uploader-tier,
                  any active branch)
    UPDATE_STATUS branch-tier transition on a document of the branch
                  (branch must be in scope)
"""

from enum import Enum
from typing import Callable, Iterable, Optional, Set

from ..domain.documents.models import BranchRecord, DocumentRecord
from ..observability.logging_config import get_logger
from .principal import Principal
from .roles import (
    BRANCH_TIER,
    Capability,
    DocFlowRole,
    REGION_SCOPED_ROLES,
    UPLOADER_TIER,
)

logger = get_logger(__name__)

_READ_CAPABILITIES = frozenset({Capability.DOCUMENTS_READ_BRANCH, Capability.DOCUMENTS_READ_ALL})


class BranchAction(str, Enum):
    READ = "read"
    UPLOAD = "upload"
    UPDATE_STATUS = "update_status"


class AuthorizationResolver:
    """Resolves branch scope and permissions for a principal.

    Args:
        branch_loader: Returns every known branch (active or not). Usually
            the cached branch list of DocumentQueries.
    """

    def __init__(self, branch_loader: Callable[[], Iterable[BranchRecord]]):
        self._branch_loader = branch_loader

    def _branches(self) -> list[BranchRecord]:
        try:
            return list(self._branch_loader())
        except Exception:
            logger.error("Failed to load branches for authorization", exc_info=True)
            return []

    def _find_branch(self, ba_code: int) -> Optional[BranchRecord]:
        for branch in self._branches():
            if branch.ba_code == ba_code:
                return branch
        return None

    def resolve_accessible_branches(self, principal: Principal) -> Set[int]:
        """BA codes of the branches the principal may see.

        Example:
            >>> resolver.resolve_accessible_branches(branch_user_of_1101)
            {1101}
        """
        if principal.has_role(DocFlowRole.ADMIN):
            return {branch.ba_code for branch in self._branches()}

        if principal.in_tier(REGION_SCOPED_ROLES):
            if not principal.region_code:
                return set()
            return {
                branch.ba_code
                for branch in self._branches()
                if branch.region_code == principal.region_code
            }

        if principal.ba_code is None or not principal.roles:
            return set()
        return {principal.ba_code}

    def can_act_on_branch(self, principal: Principal, ba_code: int, action: BranchAction) -> bool:
        """Compose role tier membership with branch scope for one action."""
        if action == BranchAction.UPLOAD:
            if not (principal.in_tier(UPLOADER_TIER) and principal.has_capability(Capability.DOCUMENTS_CREATE)):
                return False
            branch = self._find_branch(ba_code)
            return branch is not None and branch.is_active

        if action == BranchAction.UPDATE_STATUS:
            if not (principal.in_tier(BRANCH_TIER) and principal.has_capability(Capability.DOCUMENTS_UPDATE_STATUS)):
                return False
            return ba_code in self.resolve_accessible_branches(principal)

        if action == BranchAction.READ:
            may_read = (
                principal.in_tier(BRANCH_TIER)
                or principal.in_tier(UPLOADER_TIER)
                or not _READ_CAPABILITIES.isdisjoint(principal.capabilities)
            )
            return may_read and ba_code in self.resolve_accessible_branches(principal)

        return False

    def can_read_document(self, principal: Principal, document: DocumentRecord) -> bool:
        """Branch read access, or an uploader-tier principal reading its own upload."""
        if self.can_act_on_branch(principal, document.branch_ba_code, BranchAction.READ):
            return True
        return principal.in_tier(UPLOADER_TIER) and document.uploader_id == principal.user_id

    def can_verify_supplementary_file(self, principal: Principal) -> bool:
        """Only the creator tier verifies attachments; the supplying branch never does."""
        return principal.has_capability(Capability.DOCUMENTS_VERIFY_FILES)

    def can_record_receipt(self, principal: Principal) -> bool:
        """District-level receipt of sent-back paper originals and supplementary documents."""
        return principal.has_capability(Capability.DOCUMENTS_RECEIVE)

    def can_edit_metadata(self, principal: Principal, document: DocumentRecord) -> bool:
        if principal.has_role(DocFlowRole.ADMIN):
            return True
        return (
            principal.in_tier(UPLOADER_TIER)
            and self.can_act_on_branch(principal, document.branch_ba_code, BranchAction.UPLOAD)
        )

    def has_capability(self, principal: Principal, capability: Capability) -> bool:
        return principal.has_capability(capability)
