"""Unit tests for the DocumentStatus state machine

Covers the transition table, its per-edge rules (roles, comment, attachment
gate) and status parsing.
"""

import pytest

from docflow.auth.roles import BRANCH_TIER, UPLOADER_TIER
from docflow.domain.documents.document_status import (
    INITIAL_STATUSES,
    DocumentStatus,
    TRANSITION_RULES,
    get_transition_rule,
    parse_status,
)

S = DocumentStatus

VALID_EDGES = {
    (S.DRAFT, S.SENT_TO_BRANCH),
    (S.SENT_TO_BRANCH, S.ACKNOWLEDGED),
    (S.SENT_TO_BRANCH, S.SENT_BACK_TO_DISTRICT),
    (S.ACKNOWLEDGED, S.SENT_BACK_TO_DISTRICT),
    (S.SENT_BACK_TO_DISTRICT, S.SENT_TO_BRANCH),
}


class TestDocumentStatusStateMachine:
    """Test DocumentStatus enum and state transition validation"""

    def test_document_status_enum_values(self):
        """Test DocumentStatus enum has all required values"""
        assert S.DRAFT.value == "draft"
        assert S.SENT_TO_BRANCH.value == "sent_to_branch"
        assert S.ACKNOWLEDGED.value == "acknowledged"
        assert S.SENT_BACK_TO_DISTRICT.value == "sent_back_to_district"
        assert len(S) == 4

    def test_initial_statuses(self):
        """New documents start as draft or sent_to_branch"""
        assert INITIAL_STATUSES == frozenset({S.DRAFT, S.SENT_TO_BRANCH})

    @pytest.mark.parametrize("from_status", list(S))
    @pytest.mark.parametrize("to_status", list(S))
    def test_transition_table(self, from_status, to_status):
        """Every pair outside the table is rejected"""
        expected = (from_status, to_status) in VALID_EDGES
        assert (get_transition_rule(from_status, to_status) is not None) is expected

    def test_no_self_transitions(self):
        for status in S:
            assert get_transition_rule(status, status) is None

    def test_rule_table_edges(self):
        edges = [(rule.from_status, rule.to_status) for rule in TRANSITION_RULES]
        assert len(edges) == len(set(edges))
        assert set(edges) == VALID_EDGES


class TestTransitionRules:
    """Per-edge role tiers, comment requirement and attachment gate"""

    def test_uploader_tier_edges(self):
        assert get_transition_rule(S.DRAFT, S.SENT_TO_BRANCH).allowed_roles == UPLOADER_TIER
        assert get_transition_rule(S.SENT_BACK_TO_DISTRICT, S.SENT_TO_BRANCH).allowed_roles == UPLOADER_TIER

    def test_branch_tier_edges(self):
        assert get_transition_rule(S.SENT_TO_BRANCH, S.ACKNOWLEDGED).allowed_roles == BRANCH_TIER
        assert get_transition_rule(S.ACKNOWLEDGED, S.SENT_BACK_TO_DISTRICT).allowed_roles == BRANCH_TIER

    @pytest.mark.parametrize("edge", [
        (S.SENT_TO_BRANCH, S.SENT_BACK_TO_DISTRICT),
        (S.ACKNOWLEDGED, S.SENT_BACK_TO_DISTRICT),
        (S.SENT_BACK_TO_DISTRICT, S.SENT_TO_BRANCH),
    ])
    def test_comment_required_edges(self, edge):
        assert get_transition_rule(*edge).comment_required is True

    @pytest.mark.parametrize("edge", [
        (S.DRAFT, S.SENT_TO_BRANCH),
        (S.SENT_TO_BRANCH, S.ACKNOWLEDGED),
    ])
    def test_edges_without_comment(self, edge):
        assert get_transition_rule(*edge).comment_required is False

    def test_send_back_is_gated_on_verified_attachments(self):
        """Both send-back edges require verified attachments, nothing else does"""
        gated = {
            (rule.from_status, rule.to_status)
            for rule in TRANSITION_RULES
            if rule.requires_verified_attachments
        }
        assert gated == {
            (S.SENT_TO_BRANCH, S.SENT_BACK_TO_DISTRICT),
            (S.ACKNOWLEDGED, S.SENT_BACK_TO_DISTRICT),
        }


class TestParseStatus:
    def test_known_status(self):
        assert parse_status("acknowledged") == S.ACKNOWLEDGED

    def test_unknown_status(self):
        assert parse_status("archived") is None
