"""Unit tests for roles, capabilities and branch-scoped authorization

Tests cover:
- Capability union over multiple roles
- Role tiers
- Branch scope resolution per role
- Branch actions (read, upload, status update)
- Document read access and verification rights
"""

import pytest

from docflow.auth.authorization import AuthorizationResolver, BranchAction
from docflow.auth.principal import Principal
from docflow.auth.roles import (
    BRANCH_TIER,
    Capability,
    DocFlowRole,
    UPLOADER_TIER,
    capabilities_for,
    has_capability,
    parse_roles,
)
from docflow.domain.documents.document_status import DocumentStatus
from docflow.domain.documents.models import BranchRecord, DocumentRecord


BRANCHES = [
    BranchRecord(ba_code=1101, name="North Branch", region_code="R6", branch_code=110100),
    BranchRecord(ba_code=1102, name="South Branch", region_code="R6", branch_code=110200),
    BranchRecord(ba_code=1199, name="Closed Branch", region_code="R6", branch_code=119900, is_active=False),
    BranchRecord(ba_code=2201, name="Harbour Branch", region_code="R7", branch_code=220100),
]


@pytest.fixture
def resolver() -> AuthorizationResolver:
    return AuthorizationResolver(lambda: BRANCHES)


def _document(ba_code: int = 1101, uploader_id: int = 10) -> DocumentRecord:
    return DocumentRecord(
        id=1,
        status=DocumentStatus.SENT_TO_BRANCH,
        branch_ba_code=ba_code,
        uploader_id=uploader_id,
        mt_number="MT-1",
        subject="Subject",
        original_filename="report.pdf",
    )


class TestRoles:
    """Test the role → capability table"""

    def test_parse_roles_drops_unknown_names(self):
        assert parse_roles(["admin", "superuser", "uploader"]) == {DocFlowRole.ADMIN, DocFlowRole.UPLOADER}

    def test_admin_has_every_capability(self):
        assert capabilities_for({DocFlowRole.ADMIN}) == frozenset(Capability)

    def test_capabilities_are_the_union_of_roles(self):
        caps = capabilities_for({DocFlowRole.BRANCH_USER, DocFlowRole.UPLOADER})
        assert Capability.DOCUMENTS_UPDATE_STATUS in caps
        assert Capability.DOCUMENTS_VERIFY_FILES in caps
        assert Capability.ADMIN_SYSTEM not in caps

    def test_branch_user_cannot_verify(self):
        assert has_capability({DocFlowRole.BRANCH_USER}, Capability.DOCUMENTS_VERIFY_FILES) is False
        assert has_capability({DocFlowRole.BRANCH_MANAGER}, Capability.DOCUMENTS_VERIFY_FILES) is False

    def test_no_roles_no_capabilities(self):
        assert capabilities_for(set()) == frozenset()

    def test_tiers(self):
        assert UPLOADER_TIER == {DocFlowRole.UPLOADER, DocFlowRole.DISTRICT_MANAGER, DocFlowRole.ADMIN}
        assert BRANCH_TIER == {
            DocFlowRole.BRANCH_USER,
            DocFlowRole.BRANCH_MANAGER,
            DocFlowRole.ADMIN,
            DocFlowRole.DISTRICT_MANAGER,
        }
        assert DocFlowRole.USER not in UPLOADER_TIER | BRANCH_TIER

    def test_principal_capabilities_follow_roles(self):
        principal = Principal.from_role_names(7, ["user", "not-a-role"], ba_code=1101)
        assert principal.roles == {DocFlowRole.USER}
        assert principal.has_capability(Capability.COMMENTS_CREATE)
        assert not principal.has_capability(Capability.DOCUMENTS_UPDATE_STATUS)


class TestResolveAccessibleBranches:
    """Test branch scope per role"""

    def test_admin_sees_every_branch(self, resolver, admin):
        assert resolver.resolve_accessible_branches(admin) == {1101, 1102, 1199, 2201}

    def test_district_manager_sees_own_region(self, resolver, district_manager):
        assert resolver.resolve_accessible_branches(district_manager) == {1101, 1102, 1199}

    def test_region_scope_other_region(self, resolver):
        manager = Principal.from_role_names(30, ["branch_manager"], ba_code=2201, region_code="R7")
        assert resolver.resolve_accessible_branches(manager) == {2201}

    def test_region_scoped_role_without_region(self, resolver):
        manager = Principal.from_role_names(31, ["district_manager"], region_code=None)
        assert resolver.resolve_accessible_branches(manager) == set()

    def test_branch_user_sees_own_branch(self, resolver, branch_user):
        assert resolver.resolve_accessible_branches(branch_user) == {1101}

    def test_user_without_branch_sees_nothing(self, resolver, uploader):
        assert resolver.resolve_accessible_branches(uploader) == set()

    def test_principal_without_roles_sees_nothing(self, resolver):
        nobody = Principal.from_role_names(40, [], ba_code=1101)
        assert resolver.resolve_accessible_branches(nobody) == set()

    def test_branch_loader_failure_yields_empty_scope(self, district_manager):
        def broken_loader():
            raise RuntimeError("database down")

        resolver = AuthorizationResolver(broken_loader)
        assert resolver.resolve_accessible_branches(district_manager) == set()
        assert resolver.can_act_on_branch(district_manager, 1101, BranchAction.READ) is False


class TestCanActOnBranch:
    """Test branch actions composed with role tiers"""

    def test_uploader_may_upload_to_any_active_branch(self, resolver, uploader):
        assert resolver.can_act_on_branch(uploader, 1101, BranchAction.UPLOAD) is True
        assert resolver.can_act_on_branch(uploader, 2201, BranchAction.UPLOAD) is True

    def test_upload_to_inactive_or_unknown_branch(self, resolver, uploader):
        assert resolver.can_act_on_branch(uploader, 1199, BranchAction.UPLOAD) is False
        assert resolver.can_act_on_branch(uploader, 9999, BranchAction.UPLOAD) is False

    def test_branch_tier_may_not_upload(self, resolver, branch_user, branch_manager):
        assert resolver.can_act_on_branch(branch_user, 1101, BranchAction.UPLOAD) is False
        assert resolver.can_act_on_branch(branch_manager, 1101, BranchAction.UPLOAD) is False

    def test_branch_user_updates_own_branch_only(self, resolver, branch_user):
        assert resolver.can_act_on_branch(branch_user, 1101, BranchAction.UPDATE_STATUS) is True
        assert resolver.can_act_on_branch(branch_user, 1102, BranchAction.UPDATE_STATUS) is False

    def test_branch_manager_updates_whole_region(self, resolver, branch_manager):
        assert resolver.can_act_on_branch(branch_manager, 1102, BranchAction.UPDATE_STATUS) is True
        assert resolver.can_act_on_branch(branch_manager, 2201, BranchAction.UPDATE_STATUS) is False

    def test_uploader_may_not_update_branch_status(self, resolver, uploader):
        assert resolver.can_act_on_branch(uploader, 1101, BranchAction.UPDATE_STATUS) is False

    def test_plain_user_reads_own_branch(self, resolver, plain_user):
        assert resolver.can_act_on_branch(plain_user, 1101, BranchAction.READ) is True
        assert resolver.can_act_on_branch(plain_user, 1102, BranchAction.READ) is False
        assert resolver.can_act_on_branch(plain_user, 1101, BranchAction.UPDATE_STATUS) is False

    def test_district_manager_reads_region(self, resolver, district_manager):
        assert resolver.can_act_on_branch(district_manager, 1102, BranchAction.READ) is True
        assert resolver.can_act_on_branch(district_manager, 2201, BranchAction.READ) is False


class TestDocumentAccess:
    def test_uploader_reads_own_document_outside_scope(self, resolver, uploader, other_uploader):
        document = _document(ba_code=2201, uploader_id=uploader.user_id)
        assert resolver.can_read_document(uploader, document) is True
        assert resolver.can_read_document(other_uploader, document) is False

    def test_branch_user_reads_documents_of_own_branch(self, resolver, branch_user, other_branch_user):
        document = _document(ba_code=1101)
        assert resolver.can_read_document(branch_user, document) is True
        assert resolver.can_read_document(other_branch_user, document) is False

    def test_verification_rights(self, resolver, admin, district_manager, uploader, branch_user, branch_manager):
        assert resolver.can_verify_supplementary_file(admin) is True
        assert resolver.can_verify_supplementary_file(district_manager) is True
        assert resolver.can_verify_supplementary_file(uploader) is True
        assert resolver.can_verify_supplementary_file(branch_user) is False
        assert resolver.can_verify_supplementary_file(branch_manager) is False

    def test_edit_metadata(self, resolver, admin, uploader, branch_user):
        assert resolver.can_edit_metadata(admin, _document(ba_code=1199)) is True
        assert resolver.can_edit_metadata(uploader, _document(ba_code=1101)) is True
        assert resolver.can_edit_metadata(uploader, _document(ba_code=1199)) is False
        assert resolver.can_edit_metadata(branch_user, _document(ba_code=1101)) is False
