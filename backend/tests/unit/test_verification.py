"""Unit tests for the supplementary-document verification rules"""

import pytest

from docflow.domain.documents.document_status import DocumentStatus
from docflow.domain.documents.models import DocumentRecord, SupplementaryFileRecord
from docflow.domain.documents.verification import (
    VerificationState,
    all_required_slots_verified,
    is_complete,
    normalize_slot_names,
    pending_slot_indexes,
    required_slot_indexes,
    validate_slot_index,
    validate_verification_change,
)
from docflow.domain.errors import CommentRequiredError, InvalidInputError, InvalidTransitionError


def _document(names, has_docs=True, count=None, status=DocumentStatus.ACKNOWLEDGED) -> DocumentRecord:
    return DocumentRecord(
        id=7,
        status=status,
        branch_ba_code=1101,
        uploader_id=10,
        mt_number="MT-7",
        subject="Subject",
        original_filename="report.pdf",
        has_additional_docs=has_docs,
        additional_docs_count=len(names) if count is None else count,
        additional_docs=list(names),
    )


def _file(index: int, verified) -> SupplementaryFileRecord:
    return SupplementaryFileRecord(
        document_id=7,
        item_index=index,
        item_name=f"slot {index}",
        file_path=f"7/{index}.pdf",
        original_filename=f"{index}.pdf",
        uploader_id=4,
        is_verified=verified,
    )


class TestRequiredSlots:
    def test_blank_names_are_not_required(self):
        document = _document(["Cover letter", "  ", "Photos", ""])
        assert required_slot_indexes(document) == [0, 2]

    def test_flag_off_means_no_required_slots(self):
        document = _document(["Cover letter"], has_docs=False)
        assert required_slot_indexes(document) == []

    def test_zero_count_means_no_required_slots(self):
        document = _document(["Cover letter"], count=0)
        assert required_slot_indexes(document) == []

    def test_pending_slots(self):
        document = _document(["Cover letter", "Photos", "Invoice"])
        files = [_file(0, True), _file(1, False)]
        assert pending_slot_indexes(document, files) == [1, 2]

    def test_all_verified(self):
        document = _document(["Cover letter", ""])
        assert all_required_slots_verified(document, [_file(0, True)]) is True
        assert all_required_slots_verified(document, [_file(0, None)]) is False

    def test_vacuously_verified_without_slots(self):
        assert all_required_slots_verified(_document([], has_docs=False), []) is True

    def test_is_complete_requires_acknowledged(self):
        files = [_file(0, True)]
        assert is_complete(_document(["Cover letter"]), files) is True
        assert is_complete(_document(["Cover letter"], status=DocumentStatus.SENT_TO_BRANCH), files) is False
        assert is_complete(_document(["Cover letter"]), [_file(0, False)]) is False


class TestVerificationChange:
    """The tri-state moves unset → true | false, false → true; true is final"""

    @pytest.mark.parametrize("current, verified", [
        (None, True),
        (None, False),
        (False, True),
    ])
    def test_allowed_changes(self, current, verified):
        validate_verification_change(current, verified, "checked")

    @pytest.mark.parametrize("current, verified", [
        (True, True),
        (True, False),
        (False, False),
    ])
    def test_rejected_changes(self, current, verified):
        with pytest.raises(InvalidTransitionError):
            validate_verification_change(current, verified, "checked again")

    @pytest.mark.parametrize("comment", [None, "", "   "])
    def test_rejection_requires_comment(self, comment):
        with pytest.raises(CommentRequiredError):
            validate_verification_change(None, False, comment)

    def test_missing_comment_reported_before_state_check(self):
        with pytest.raises(CommentRequiredError):
            validate_verification_change(True, False, None)

    def test_state_from_flag(self):
        assert VerificationState.from_flag(None) == VerificationState.UNSET
        assert VerificationState.from_flag(True) == VerificationState.VERIFIED
        assert VerificationState.from_flag(False) == VerificationState.REJECTED


class TestSlotDeclaration:
    def test_names_are_padded_to_count(self):
        assert normalize_slot_names(3, ["Cover letter"]) == ["Cover letter", "", ""]

    def test_none_names(self):
        assert normalize_slot_names(2, None) == ["", ""]

    def test_more_names_than_slots(self):
        with pytest.raises(InvalidInputError):
            normalize_slot_names(1, ["a", "b"])

    def test_negative_count(self):
        with pytest.raises(InvalidInputError):
            normalize_slot_names(-1, [])

    def test_validate_slot_index(self):
        document = _document(["Cover letter", ""])
        assert validate_slot_index(document, 0) == "Cover letter"
        with pytest.raises(InvalidInputError):
            validate_slot_index(document, 1)
        with pytest.raises(InvalidInputError):
            validate_slot_index(document, 2)
        with pytest.raises(InvalidInputError):
            validate_slot_index(document, -1)
