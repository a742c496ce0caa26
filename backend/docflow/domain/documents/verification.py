"""Supplementary-document verification sub-workflow.

Each required slot moves through unset → true, or unset → false (with a
comment) → true. Nothing leaves true: a slot verified as correct is final,
and uploads to it are rejected. Re-uploading a file over a false slot puts
it back to unset.
"""

from enum import Enum
from typing import Iterable, Optional

from ..errors import CommentRequiredError, InvalidInputError, InvalidTransitionError
from .document_status import DocumentStatus
from .models import DocumentRecord, SupplementaryFileRecord


class VerificationState(str, Enum):
    """Verification tri-state of a supplementary slot"""
    UNSET = "unset"
    VERIFIED = "true"
    REJECTED = "false"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "VerificationState":
        if flag is None:
            return cls.UNSET
        return cls.VERIFIED if flag else cls.REJECTED


ALLOWED_VERIFICATION_CHANGES = {
    VerificationState.UNSET: [VerificationState.VERIFIED, VerificationState.REJECTED],
    VerificationState.REJECTED: [VerificationState.VERIFIED],
    VerificationState.VERIFIED: [],  # final
}


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def validate_verification_change(
    current: Optional[bool],
    verified: bool,
    comment: Optional[str],
) -> None:
    """Validate a verification decision against the tri-state rules.

    Raises:
        CommentRequiredError: verified is False and comment is blank
        InvalidTransitionError: the slot cannot move to the requested state
    """
    if not verified and is_blank(comment):
        raise CommentRequiredError("A comment is required when marking a supplementary file as incorrect")

    source = VerificationState.from_flag(current)
    target = VerificationState.from_flag(verified)
    if target not in ALLOWED_VERIFICATION_CHANGES[source]:
        raise InvalidTransitionError(
            f"Invalid verification change: {source.value} -> {target.value}"
        )


def required_slot_indexes(document: DocumentRecord) -> list[int]:
    """Indexes of the declared, non-blank supplementary slots of a document."""
    if not document.has_additional_docs or document.additional_docs_count <= 0:
        return []
    names = list(document.additional_docs or [])
    return [
        index
        for index in range(document.additional_docs_count)
        if index < len(names) and not is_blank(names[index])
    ]


def pending_slot_indexes(
    document: DocumentRecord,
    files: Iterable[SupplementaryFileRecord],
) -> list[int]:
    """Required slots that are missing a file, unverified, or marked incorrect."""
    verified = {f.item_index for f in files if f.is_verified is True}
    return [index for index in required_slot_indexes(document) if index not in verified]


def all_required_slots_verified(
    document: DocumentRecord,
    files: Iterable[SupplementaryFileRecord],
) -> bool:
    """True iff every declared, non-blank slot has verification True.

    Vacuously True for a document that declares no required slots.
    """
    return not pending_slot_indexes(document, files)


def is_complete(document: DocumentRecord, files: Iterable[SupplementaryFileRecord]) -> bool:
    """Operational completeness: acknowledged and all required slots verified."""
    return (
        document.status == DocumentStatus.ACKNOWLEDGED
        and all_required_slots_verified(document, files)
    )


def normalize_slot_names(count: int, names: Optional[list[str]]) -> list[str]:
    """Pad slot names with blanks up to count.

    Raises:
        InvalidInputError: count is negative or more names than slots were given
    """
    if count < 0:
        raise InvalidInputError("additional_docs_count must be >= 0")
    names = [name or "" for name in (names or [])]
    if len(names) > count:
        raise InvalidInputError(
            f"{len(names)} supplementary document names given for {count} slots"
        )
    return names + [""] * (count - len(names))


def validate_slot_index(document: DocumentRecord, slot_index: int) -> str:
    """Return the declared name of a slot.

    Raises:
        InvalidInputError: the slot is not declared on the document or has a blank name
    """
    if slot_index < 0 or slot_index >= document.additional_docs_count:
        raise InvalidInputError(
            f"Document {document.id} declares no supplementary slot {slot_index}"
        )
    names = document.additional_docs or []
    name = names[slot_index] if slot_index < len(names) else ""
    if is_blank(name):
        raise InvalidInputError(
            f"Supplementary slot {slot_index} of document {document.id} is not a required document"
        )
    return name
