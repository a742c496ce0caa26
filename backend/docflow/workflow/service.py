"""Document workflow: every mutation of documents and their attachments.

Each mutation follows the same sequence:
    1. validate (existence, state table, authorization, input)
    2. authoritative write, committed as one unit of work
    3. cache invalidation of every tag that may hold a stale projection
    4. activity event emission
    5. best-effort notification (status changes only)

Steps 3-5 run after the commit and never change the operation's outcome.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, TypeVar

from ..activity.events import ActivityAction, ActivityEvent
from ..activity.recorder import ActivityRecorder
from ..auth.authorization import AuthorizationResolver, BranchAction
from ..auth.principal import Principal
from ..auth.roles import BRANCH_TIER, Capability
from ..cache import tags as cache_tags
from ..cache.coordinator import CacheCoordinator
from ..domain.clock import Clock, SystemClock
from ..domain.documents.document_status import (
    INITIAL_STATUSES,
    DocumentStatus,
    get_transition_rule,
)
from ..domain.documents.models import (
    CLEARABLE_METADATA,
    CommentRecord,
    DocumentMetadataUpdate,
    DocumentRecord,
    NewDocument,
    Receipt,
    StatusChangeResult,
    StatusHistoryEntry,
    SupplementaryFileRecord,
    SupplementaryUpload,
)
from ..domain.documents.ports import DocumentStorePort, FileStorePort, NotifierPort
from ..domain.documents.verification import (
    all_required_slots_verified,
    is_blank,
    normalize_slot_names,
    pending_slot_indexes,
    required_slot_indexes,
    validate_slot_index,
    validate_verification_change,
)
from ..domain.errors import (
    AlreadyReceivedError,
    CommentRequiredError,
    DocFlowError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    SlotLockedError,
    UnverifiedAttachmentsError,
)
from ..observability.logging_config import get_logger
from ..observability.metrics import receipts_total, status_transitions_total, verifications_total

logger = get_logger(__name__)

T = TypeVar("T")

# Statuses announced through the notifier
NOTIFY_STATUSES = frozenset({DocumentStatus.SENT_TO_BRANCH, DocumentStatus.SENT_BACK_TO_DISTRICT})

RECEIPT_ACTIONS = {
    Receipt.PAPER: ActivityAction.RECEIVE_PAPER_DOCUMENT,
    Receipt.ADDITIONAL_DOCS: ActivityAction.RECEIVE_ADDITIONAL_DOCS,
}

RECEIPT_LABELS = {
    Receipt.PAPER: "paper",
    Receipt.ADDITIONAL_DOCS: "additional_docs",
}


@dataclass(frozen=True)
class UploadPolicy:
    """Limits applied to supplementary file uploads"""
    max_file_size: int = 10 * 1024 * 1024
    allowed_mime_types: frozenset = frozenset({"application/pdf"})


class DocumentWorkflow:
    """Document mutations.

    Args:
        store: Authoritative document store (one unit of work)
        cache: Cache coordinator to invalidate after each commit
        activity: Activity recorder (never raises)
        authorization: Branch-scoped authorization resolver
        clock: Time source for history entries and timestamps
        notifier: Outbound routing notifications, optional
        file_store: Storage for uploaded supplementary files, optional
        upload_policy: Size and type limits for uploads
    """

    def __init__(
        self,
        store: DocumentStorePort,
        cache: CacheCoordinator,
        activity: ActivityRecorder,
        authorization: AuthorizationResolver,
        clock: Optional[Clock] = None,
        notifier: Optional[NotifierPort] = None,
        file_store: Optional[FileStorePort] = None,
        upload_policy: Optional[UploadPolicy] = None,
    ):
        self.store = store
        self.cache = cache
        self.activity = activity
        self.authorization = authorization
        self.clock = clock or SystemClock()
        self.notifier = notifier
        self.file_store = file_store
        self.upload_policy = upload_policy or UploadPolicy()

    # Helpers

    def _require_document(self, document_id: int) -> DocumentRecord:
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def _commit(self, write: Callable[[], T]) -> T:
        """Run the authoritative write and commit it; roll back on any error."""
        try:
            result = write()
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return result

    def _after_commit(self, invalidate: Iterable[str], event: ActivityEvent) -> None:
        self.cache.invalidate_tags(*invalidate)
        self.activity.record(event)

    def _notify(
        self,
        document: DocumentRecord,
        from_status: Optional[DocumentStatus],
        to_status: DocumentStatus,
        actor: Principal,
        comment: Optional[str] = None,
    ) -> None:
        if self.notifier is None or to_status not in NOTIFY_STATUSES:
            return
        try:
            self.notifier.document_routed(document, from_status, to_status, comment)
        except Exception:
            logger.error(
                f"Notification for document {document.id} failed",
                extra={"document_id": document.id, "actor_id": actor.user_id},
                exc_info=True,
            )
            return
        self.activity.record(ActivityEvent.for_current_request(
            ActivityAction.NOTIFY_SENT,
            user_id=actor.user_id,
            occurred_at=self.clock.now(),
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            details={"status": to_status.value},
        ))

    # Status state machine

    def update_status(
        self,
        document_id: int,
        actor: Principal,
        target_status: DocumentStatus,
        comment: Optional[str] = None,
    ) -> StatusChangeResult:
        """Move a document along one edge of the status table.

        Args:
            document_id: Document to transition
            actor: Acting principal
            target_status: Requested status
            comment: Justification, mandatory on send-back and re-send edges

        Returns:
            StatusChangeResult: Updated document and the appended history entry

        Raises:
            NotFoundError: Document does not exist
            InvalidTransitionError: (current, target) is not in the status table
            ForbiddenError: Actor's roles or branch scope do not allow the edge
            CommentRequiredError: Edge needs a comment and none was given
            UnverifiedAttachmentsError: Send-back while a required slot is not verified
            ConcurrentModificationError: Another caller changed the document after it was read
        """
        target_status = DocumentStatus(target_status)
        from_label = "unknown"
        try:
            document = self._require_document(document_id)
            from_status = document.status
            from_label = from_status.value

            rule = get_transition_rule(from_status, target_status)
            if rule is None:
                raise InvalidTransitionError(
                    f"Invalid status transition: {from_status.value} -> {target_status.value}"
                )

            if not actor.in_tier(rule.allowed_roles):
                raise ForbiddenError(
                    f"Roles {sorted(r.value for r in actor.roles)} may not move a document "
                    f"from {from_status.value} to {target_status.value}"
                )
            branch_action = BranchAction.UPDATE_STATUS if rule.allowed_roles == BRANCH_TIER else BranchAction.UPLOAD
            if not self.authorization.can_act_on_branch(actor, document.branch_ba_code, branch_action):
                raise ForbiddenError(f"Not allowed to act on branch {document.branch_ba_code}")

            if rule.comment_required and is_blank(comment):
                raise CommentRequiredError(
                    f"A comment is required to move a document to {target_status.value}"
                )

            if rule.requires_verified_attachments:
                files = self.store.list_supplementary_files(document_id)
                pending = pending_slot_indexes(document, files)
                if pending:
                    raise UnverifiedAttachmentsError(
                        f"Document {document_id} has required supplementary documents "
                        f"that are missing or not verified: slots {pending}",
                        pending_slots=pending,
                    )

            now = self.clock.now()
            comment = None if is_blank(comment) else comment.strip()

            def _write() -> StatusHistoryEntry:
                self.store.update_document_status(
                    document_id, from_status, document.version, target_status, now
                )
                return self.store.append_history(StatusHistoryEntry(
                    document_id=document_id,
                    from_status=from_status,
                    to_status=target_status,
                    changed_by=actor.user_id,
                    comment=comment,
                    created_at=now,
                ))

            entry = self._commit(_write)
        except DocFlowError as exc:
            status_transitions_total.labels(
                from_status=from_label, to_status=target_status.value, result=exc.code
            ).inc()
            raise

        status_transitions_total.labels(
            from_status=from_status.value, to_status=target_status.value, result="success"
        ).inc()
        logger.info(
            f"Document {document_id} moved {from_status.value} -> {target_status.value}",
            extra={"document_id": document_id, "actor_id": actor.user_id},
        )

        updated = replace(document, status=target_status, updated_at=now, version=document.version + 1)
        self._after_commit(
            (
                cache_tags.document_tag(document_id),
                cache_tags.branch_tag(document.branch_ba_code),
                cache_tags.DOCUMENTS_TAG,
            ),
            ActivityEvent.for_current_request(
                ActivityAction.STATUS_UPDATE,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "from_status": from_status.value,
                    "to_status": target_status.value,
                    "comment": comment,
                },
            ),
        )
        self._notify(updated, from_status, target_status, actor, comment)

        return StatusChangeResult(
            document=updated,
            from_status=from_status,
            to_status=target_status,
            history_entry=entry,
        )

    # Verification sub-workflow

    def all_required_slots_verified(self, document_id: int) -> bool:
        """Read the authoritative store and evaluate the send-back gate.

        Raises:
            NotFoundError: Document does not exist
        """
        document = self._require_document(document_id)
        return all_required_slots_verified(document, self.store.list_supplementary_files(document_id))

    def set_verification(
        self,
        document_id: int,
        slot_index: int,
        actor: Principal,
        verified: bool,
        comment: Optional[str] = None,
    ) -> SupplementaryFileRecord:
        """Record the verdict on a supplementary file.

        Raises:
            ForbiddenError: Actor may not verify supplementary files
            CommentRequiredError: Marked incorrect without a comment
            NotFoundError: Document missing or no file uploaded for the slot
            InvalidTransitionError: Slot is already verified as correct
            ConcurrentModificationError: Another verdict was recorded first
        """
        try:
            if not self.authorization.can_verify_supplementary_file(actor):
                raise ForbiddenError("Not allowed to verify supplementary documents")
            if not verified and is_blank(comment):
                raise CommentRequiredError(
                    "A comment is required when marking a supplementary file as incorrect"
                )

            document = self._require_document(document_id)
            current = self.store.get_supplementary_file(document_id, slot_index)
            if current is None:
                raise NotFoundError(
                    f"No file uploaded for slot {slot_index} of document {document_id}"
                )
            if not (
                self.authorization.can_read_document(actor, document)
                or self.authorization.can_act_on_branch(actor, document.branch_ba_code, BranchAction.UPLOAD)
            ):
                raise ForbiddenError(f"Not allowed to act on document {document_id}")

            validate_verification_change(current.is_verified, verified, comment)

            now = self.clock.now()
            comment = None if is_blank(comment) else comment.strip()
            saved = self._commit(lambda: self.store.set_slot_verification(
                document_id,
                slot_index,
                expected=current.is_verified,
                verified=verified,
                verifier_id=actor.user_id,
                comment=comment,
                now=now,
            ))
        except DocFlowError as exc:
            verifications_total.labels(result=exc.code).inc()
            raise

        verifications_total.labels(result="verified" if verified else "rejected").inc()
        logger.info(
            f"Slot {slot_index} of document {document_id} marked {'correct' if verified else 'incorrect'}",
            extra={"document_id": document_id, "actor_id": actor.user_id, "slot_index": slot_index},
        )
        self._after_commit(
            (cache_tags.document_tag(document_id),),
            ActivityEvent.for_current_request(
                ActivityAction.VERIFY_SUPPLEMENTARY_FILE,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "item_index": slot_index,
                    "item_name": saved.item_name,
                    "is_verified": verified,
                    "comment": comment,
                },
            ),
        )
        return saved

    def upload_supplementary_file(
        self,
        document_id: int,
        slot_index: int,
        actor: Principal,
        upload: SupplementaryUpload,
    ) -> SupplementaryFileRecord:
        """Store the file answering a required slot.

        A re-upload over a slot marked incorrect resets its verification
        to unset.

        Raises:
            NotFoundError: Document does not exist
            ForbiddenError: Actor may not read the document
            InvalidInputError: Undeclared slot, empty/oversized file, wrong type
            SlotLockedError: Slot is already verified as correct
            ConcurrentModificationError: The slot declaration changed after it was read
        """
        document = self._require_document(document_id)
        if not self.authorization.can_read_document(actor, document):
            raise ForbiddenError(f"Not allowed to act on document {document_id}")

        item_name = validate_slot_index(document, slot_index)
        self._validate_upload(upload)

        existing = self.store.get_supplementary_file(document_id, slot_index)
        if existing is not None and existing.is_verified is True:
            raise SlotLockedError(
                f"Slot {slot_index} of document {document_id} is verified and cannot be replaced"
            )
        if self.file_store is None:
            raise RuntimeError("DocumentWorkflow has no file store configured")

        stored = self.file_store.store(document_id, slot_index, upload.original_filename, upload.content)
        now = self.clock.now()
        record = SupplementaryFileRecord(
            document_id=document_id,
            item_index=slot_index,
            item_name=item_name,
            file_path=stored.storage_ref,
            original_filename=upload.original_filename,
            file_size=stored.size_bytes,
            uploader_id=actor.user_id,
        )
        def _write() -> SupplementaryFileRecord:
            self.store.bump_document_version(document_id, document.version)
            return self.store.save_supplementary_file(record, now)

        try:
            saved = self._commit(_write)
        except Exception:
            self._discard_file(stored.storage_ref)
            raise

        if existing is not None and existing.file_path != saved.file_path:
            self._discard_file(existing.file_path)

        logger.info(
            f"Supplementary file uploaded for slot {slot_index} of document {document_id}",
            extra={"document_id": document_id, "actor_id": actor.user_id, "slot_index": slot_index},
        )
        self._after_commit(
            (cache_tags.document_tag(document_id),),
            ActivityEvent.for_current_request(
                ActivityAction.UPLOAD_SUPPLEMENTARY_FILE,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "item_index": slot_index,
                    "item_name": item_name,
                    "original_filename": upload.original_filename,
                    "file_size": stored.size_bytes,
                    "replaced": existing is not None,
                },
            ),
        )
        return saved

    def _validate_upload(self, upload: SupplementaryUpload) -> None:
        if not upload.content:
            raise InvalidInputError("Uploaded file is empty")
        if len(upload.content) > self.upload_policy.max_file_size:
            raise InvalidInputError(
                f"File exceeds the {self.upload_policy.max_file_size // (1024 * 1024)} MB limit"
            )
        if upload.mime_type not in self.upload_policy.allowed_mime_types:
            raise InvalidInputError(f"File type {upload.mime_type} is not allowed")

    def _discard_file(self, storage_ref: str) -> None:
        try:
            self.file_store.delete(storage_ref)
        except Exception:
            logger.warning(f"Could not delete stored file {storage_ref}", exc_info=True)

    # Documents

    def create_document(
        self,
        actor: Principal,
        data: NewDocument,
        initial_status: DocumentStatus = DocumentStatus.SENT_TO_BRANCH,
    ) -> DocumentRecord:
        """Create a document as draft or directly dispatched to a branch.

        Raises:
            InvalidTransitionError: initial_status is not an initial status
            ForbiddenError: Actor may not create documents for the branch
            NotFoundError: Branch does not exist or is inactive
            InvalidInputError: Missing reference number/subject, bad slot declaration
        """
        initial_status = DocumentStatus(initial_status)
        if initial_status not in INITIAL_STATUSES:
            raise InvalidTransitionError(f"Documents cannot be created as {initial_status.value}")
        if not actor.has_capability(Capability.DOCUMENTS_CREATE):
            raise ForbiddenError("Not allowed to create documents")

        branch = self.store.get_branch(data.branch_ba_code)
        if branch is None or not branch.is_active:
            raise NotFoundError(f"Branch {data.branch_ba_code} not found")
        if not self.authorization.can_act_on_branch(actor, data.branch_ba_code, BranchAction.UPLOAD):
            raise ForbiddenError(f"Not allowed to send documents to branch {data.branch_ba_code}")

        if is_blank(data.mt_number) or is_blank(data.subject):
            raise InvalidInputError("Reference number and subject are required")
        if not data.has_additional_docs and data.additional_docs_count:
            raise InvalidInputError("additional_docs_count requires has_additional_docs")
        data = replace(
            data,
            mt_number=data.mt_number.strip(),
            subject=data.subject.strip(),
            additional_docs=normalize_slot_names(data.additional_docs_count, data.additional_docs),
        )

        now = self.clock.now()

        def _write() -> DocumentRecord:
            created = self.store.create_document(data, actor.user_id, initial_status, now)
            self.store.append_history(StatusHistoryEntry(
                document_id=created.id,
                from_status=None,
                to_status=initial_status,
                changed_by=actor.user_id,
                created_at=now,
            ))
            return created

        document = self._commit(_write)
        logger.info(
            f"Document {document.id} created as {initial_status.value}",
            extra={"document_id": document.id, "actor_id": actor.user_id, "ba_code": document.branch_ba_code},
        )
        self._after_commit(
            (cache_tags.branch_tag(document.branch_ba_code), cache_tags.DOCUMENTS_TAG),
            ActivityEvent.for_current_request(
                ActivityAction.CREATE_DOCUMENT,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document.id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "mt_number": document.mt_number,
                    "status": initial_status.value,
                    "additional_docs_count": document.additional_docs_count,
                },
            ),
        )
        self._notify(document, None, initial_status, actor)
        return document

    def update_metadata(
        self,
        document_id: int,
        actor: Principal,
        changes: DocumentMetadataUpdate,
    ) -> DocumentRecord:
        """Edit document metadata, including reassignment to another branch.

        Raises:
            NotFoundError: Document or destination branch does not exist
            ForbiddenError: Actor may not edit the document or send to the destination
            InvalidInputError: Blank required fields, bad slot declaration,
                clearing a required field, or shrinking the slot list below an
                uploaded file
            ConcurrentModificationError: The document changed after it was read
        """
        document = self._require_document(document_id)
        if not self.authorization.can_edit_metadata(actor, document):
            raise ForbiddenError(f"Not allowed to edit document {document_id}")

        values = {
            name: value
            for name, value in vars(changes).items()
            if name != "clear" and value is not None
        }
        not_clearable = set(changes.clear) - CLEARABLE_METADATA
        if not_clearable:
            raise InvalidInputError(f"Fields cannot be cleared: {sorted(not_clearable)}")
        for name in changes.clear:
            if name in values:
                raise InvalidInputError(f"{name} cannot be set and cleared at once")
            values[name] = None
        for name in ("mt_number", "subject"):
            if name in values:
                if is_blank(values[name]):
                    raise InvalidInputError(f"{name} must not be blank")
                values[name] = values[name].strip()

        destination = values.get("branch_ba_code")
        if destination == document.branch_ba_code:
            values.pop("branch_ba_code")
            destination = None
        if destination is not None:
            branch = self.store.get_branch(destination)
            if branch is None or not branch.is_active:
                raise NotFoundError(f"Branch {destination} not found")
            if not self.authorization.can_act_on_branch(actor, destination, BranchAction.UPLOAD):
                raise ForbiddenError(f"Not allowed to send documents to branch {destination}")

        if {"has_additional_docs", "additional_docs_count", "additional_docs"} & set(values):
            self._apply_slot_changes(document, values)

        if not values:
            return document

        now = self.clock.now()
        updated = self._commit(
            lambda: self.store.update_document_metadata(document_id, document.version, values, now)
        )

        invalidate = [
            cache_tags.document_tag(document_id),
            cache_tags.branch_tag(document.branch_ba_code),
            cache_tags.DOCUMENTS_TAG,
        ]
        if destination is not None:
            invalidate.append(cache_tags.branch_tag(destination))

        details = dict(values)
        if details.get("mt_date") is not None:
            details["mt_date"] = details["mt_date"].isoformat()
        if destination is not None:
            details["from_branch_ba_code"] = document.branch_ba_code

        logger.info(
            f"Document {document_id} metadata updated: {sorted(values)}",
            extra={"document_id": document_id, "actor_id": actor.user_id},
        )
        self._after_commit(
            invalidate,
            ActivityEvent.for_current_request(
                ActivityAction.UPDATE_DOCUMENT,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=updated.branch_ba_code,
                details=details,
            ),
        )
        return updated

    def _apply_slot_changes(self, document: DocumentRecord, values: dict) -> None:
        has_docs = values.get("has_additional_docs", document.has_additional_docs)
        count = values.get("additional_docs_count", document.additional_docs_count)
        names = values.get("additional_docs", document.additional_docs)
        if not has_docs:
            count, names = 0, []
        elif "additional_docs" in values and "additional_docs_count" not in values:
            count = len(names)
        elif "additional_docs_count" in values and "additional_docs" not in values:
            names = list(names or [])[:count]

        names = normalize_slot_names(count, names)
        uploaded = [f.item_index for f in self.store.list_supplementary_files(document.id)]
        orphaned = [index for index in uploaded if index >= count]
        if orphaned:
            raise InvalidInputError(
                f"Cannot remove supplementary slots {orphaned}: files were already uploaded"
            )

        values["has_additional_docs"] = has_docs
        values["additional_docs_count"] = count
        values["additional_docs"] = names

    # District receipts

    def receive_paper_document(self, document_id: int, actor: Principal) -> DocumentRecord:
        """Record the day the paper original of a sent-back document arrived.

        Raises:
            ForbiddenError: Actor may not record receipts
            NotFoundError: Document does not exist
            InvalidTransitionError: Document is not sent back to the district
            AlreadyReceivedError: The paper original was already received
            ConcurrentModificationError: The document changed after it was read
        """
        return self._record_receipt(document_id, actor, Receipt.PAPER)

    def receive_additional_documents(self, document_id: int, actor: Principal) -> DocumentRecord:
        """Record the day the required supplementary documents arrived.

        Every required slot must hold a file verified as correct.

        Raises:
            ForbiddenError: Actor may not record receipts
            NotFoundError: Document does not exist
            InvalidTransitionError: Document is not sent back to the district
            AlreadyReceivedError: The supplementary documents were already received
            InvalidInputError: Document declares no required supplementary documents
            UnverifiedAttachmentsError: A required slot is missing or not verified
            ConcurrentModificationError: The document changed after it was read
        """
        return self._record_receipt(document_id, actor, Receipt.ADDITIONAL_DOCS)

    def _record_receipt(self, document_id: int, actor: Principal, receipt: Receipt) -> DocumentRecord:
        label = RECEIPT_LABELS[receipt]
        try:
            if not self.authorization.can_record_receipt(actor):
                raise ForbiddenError("Not allowed to record document receipts")

            document = self._require_document(document_id)
            if document.status != DocumentStatus.SENT_BACK_TO_DISTRICT:
                raise InvalidTransitionError(
                    f"Document {document_id} is {document.status.value}; receipts are recorded "
                    f"only in {DocumentStatus.SENT_BACK_TO_DISTRICT.value}"
                )
            if getattr(document, receipt.value) is not None:
                raise AlreadyReceivedError(
                    f"Receipt ({label}) of document {document_id} was already recorded"
                )

            if receipt == Receipt.ADDITIONAL_DOCS:
                if not required_slot_indexes(document):
                    raise InvalidInputError(
                        f"Document {document_id} declares no required supplementary documents"
                    )
                pending = pending_slot_indexes(document, self.store.list_supplementary_files(document_id))
                if pending:
                    raise UnverifiedAttachmentsError(
                        f"Document {document_id} has required supplementary documents "
                        f"that are missing or not verified: slots {pending}",
                        pending_slots=pending,
                    )

            now = self.clock.now()
            received_on = now.date()
            updated = self._commit(lambda: self.store.record_receipt(
                document_id, receipt, document.version, received_on, now
            ))
        except DocFlowError as exc:
            receipts_total.labels(receipt=label, result=exc.code).inc()
            raise

        receipts_total.labels(receipt=label, result="recorded").inc()
        logger.info(
            f"Receipt ({label}) of document {document_id} recorded for {received_on.isoformat()}",
            extra={"document_id": document_id, "actor_id": actor.user_id},
        )
        self._after_commit(
            (
                cache_tags.document_tag(document_id),
                cache_tags.branch_tag(document.branch_ba_code),
                cache_tags.DOCUMENTS_TAG,
            ),
            ActivityEvent.for_current_request(
                RECEIPT_ACTIONS[receipt],
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=document.branch_ba_code,
                details={"received_date": received_on.isoformat()},
            ),
        )
        return updated

    # Comments

    def add_comment(self, document_id: int, actor: Principal, content: str) -> CommentRecord:
        """Attach a comment to a document.

        Raises:
            ForbiddenError: Actor may not comment or read the document
            InvalidInputError: Blank comment
            NotFoundError: Document does not exist
        """
        if not actor.has_capability(Capability.COMMENTS_CREATE):
            raise ForbiddenError("Not allowed to comment")
        if is_blank(content):
            raise InvalidInputError("Comment must not be blank")

        document = self._require_document(document_id)
        if not self.authorization.can_read_document(actor, document):
            raise ForbiddenError(f"Not allowed to act on document {document_id}")

        now = self.clock.now()
        comment = self._commit(lambda: self.store.add_comment(CommentRecord(
            document_id=document_id,
            user_id=actor.user_id,
            content=content.strip(),
            created_at=now,
        )))
        self._after_commit(
            (cache_tags.document_tag(document_id),),
            ActivityEvent.for_current_request(
                ActivityAction.ADD_COMMENT,
                user_id=actor.user_id,
                occurred_at=now,
                document_id=document_id,
                branch_ba_code=document.branch_ba_code,
                details={"comment_id": comment.id},
            ),
        )
        return comment
