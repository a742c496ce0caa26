"""Documents API Router.

Status transitions, metadata edits, comments, district receipts and the
supplementary-document verification sub-workflow. Every mutation goes
through DocumentWorkflow; reads go through the cached DocumentQueries.
"""

from typing import BinaryIO, List

from fastapi import APIRouter, Depends, File, Path, UploadFile, status

from ...activity.events import ActivityAction, ActivityEvent
from ...activity.recorder import ActivityRecorder
from ...auth.dependencies import get_current_principal
from ...auth.principal import Principal
from ...dependencies import (
    get_activity_recorder,
    get_clock,
    get_document_queries,
    get_document_workflow,
    get_upload_policy,
)
from ...domain.clock import Clock
from ...domain.documents.document_status import DocumentStatus
from ...domain.documents.models import DocumentMetadataUpdate, NewDocument, SupplementaryUpload
from ...workflow.queries import DocumentQueries
from ...workflow.service import DocumentWorkflow, UploadPolicy
from .retry import run_with_single_retry
from .schemas import (
    CommentCreateRequest,
    CommentResponse,
    DocumentCreateRequest,
    DocumentDetailResponse,
    DocumentResponse,
    MetadataUpdateRequest,
    StatusChangeResponse,
    StatusUpdateRequest,
    SupplementaryFileResponse,
    VerificationRequest,
)

router = APIRouter(prefix="/documents", tags=["documents"])


def read_bounded(stream: BinaryIO, limit: int) -> bytes:
    """Read at most limit + 1 bytes, enough to tell an oversized upload apart."""
    return stream.read(limit + 1)


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
    description="""
    Create a document as `draft` or dispatch it directly (`sent_to_branch`).

    **Requirements:** uploader-tier role; destination branch must be active.
    """,
)
def create_document(
    data: DocumentCreateRequest,
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> DocumentResponse:
    document = workflow.create_document(
        principal,
        NewDocument(**data.model_dump(exclude={"status"})),
        initial_status=DocumentStatus(data.status),
    )
    return DocumentResponse.model_validate(document)


@router.get(
    "/{document_id}",
    response_model=DocumentDetailResponse,
    summary="Get a document with attachments, history and comments",
)
def get_document(
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    queries: DocumentQueries = Depends(get_document_queries),
    activity: ActivityRecorder = Depends(get_activity_recorder),
    clock: Clock = Depends(get_clock),
) -> DocumentDetailResponse:
    view = queries.get_document_for(principal, document_id)
    activity.record(ActivityEvent.for_current_request(
        ActivityAction.VIEW_DOCUMENT,
        user_id=principal.user_id,
        occurred_at=clock.now(),
        document_id=document_id,
        branch_ba_code=view.document.branch_ba_code,
    ))
    return DocumentDetailResponse.model_validate(view)


@router.patch(
    "/{document_id}/status",
    response_model=StatusChangeResponse,
    summary="Change document status",
    description="""
    Move a document along the status table:

    | From | To | Roles | Comment |
    |---|---|---|---|
    | draft | sent_to_branch | uploader-tier | no |
    | sent_to_branch | acknowledged | branch-tier | no |
    | sent_to_branch | sent_back_to_district | branch-tier | yes |
    | acknowledged | sent_back_to_district | branch-tier | yes |
    | sent_back_to_district | sent_to_branch | uploader-tier | yes |

    Sending back to the district requires every required supplementary
    document to be verified as correct. A transition that loses a race with
    a concurrent one is retried once against the new status.
    """,
)
def update_status(
    data: StatusUpdateRequest,
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> StatusChangeResponse:
    result = run_with_single_retry(
        lambda: workflow.update_status(document_id, principal, data.status, data.comment),
        description=f"status update of document {document_id}",
    )
    return StatusChangeResponse.model_validate(result)


@router.patch(
    "/{document_id}/metadata",
    response_model=DocumentResponse,
    summary="Edit document metadata or reassign its branch",
    description="""
    Fields left out stay unchanged. `mt_date` and `month_year` are cleared
    with an explicit `null`; `null` on any other field is rejected.
    """,
)
def update_metadata(
    data: MetadataUpdateRequest,
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> DocumentResponse:
    provided = data.model_dump(exclude_unset=True)
    changes = DocumentMetadataUpdate(
        **{name: value for name, value in provided.items() if value is not None},
        clear=frozenset(name for name, value in provided.items() if value is None),
    )
    return DocumentResponse.model_validate(workflow.update_metadata(document_id, principal, changes))


@router.post(
    "/{document_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a document",
)
def add_comment(
    data: CommentCreateRequest,
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> CommentResponse:
    return CommentResponse.model_validate(workflow.add_comment(document_id, principal, data.content))


@router.get(
    "/{document_id}/supplementary-files",
    response_model=List[SupplementaryFileResponse],
    summary="List uploaded supplementary documents",
)
def list_supplementary_files(
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    queries: DocumentQueries = Depends(get_document_queries),
) -> List[SupplementaryFileResponse]:
    view = queries.get_document_for(principal, document_id)
    return [SupplementaryFileResponse.model_validate(f) for f in view.supplementary_files]


@router.put(
    "/{document_id}/supplementary-files/{slot_index}",
    response_model=SupplementaryFileResponse,
    summary="Upload the file for a supplementary-document slot",
    description="""
    Upload (or replace) the PDF answering one declared slot.

    Rejected once the slot is verified as correct. Replacing a file marked
    incorrect resets the verification to unchecked.
    """,
)
def upload_supplementary_file(
    document_id: int = Path(..., ge=1),
    slot_index: int = Path(..., ge=0),
    file: UploadFile = File(...),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
    upload_policy: UploadPolicy = Depends(get_upload_policy),
) -> SupplementaryFileResponse:
    upload = SupplementaryUpload(
        original_filename=file.filename or "upload.pdf",
        content=read_bounded(file.file, upload_policy.max_file_size),
        mime_type=file.content_type or "application/octet-stream",
    )
    saved = workflow.upload_supplementary_file(document_id, slot_index, principal, upload)
    return SupplementaryFileResponse.model_validate(saved)


@router.patch(
    "/{document_id}/supplementary-files/{slot_index}/verification",
    response_model=SupplementaryFileResponse,
    summary="Verify a supplementary document",
    description="""
    Record whether the uploaded file is correct (`verified: true`) or not
    (`verified: false`, comment required). A verified slot is final.

    **Requirements:** admin, district_manager or uploader.
    """,
)
def set_verification(
    data: VerificationRequest,
    document_id: int = Path(..., ge=1),
    slot_index: int = Path(..., ge=0),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> SupplementaryFileResponse:
    saved = run_with_single_retry(
        lambda: workflow.set_verification(document_id, slot_index, principal, data.verified, data.comment),
        description=f"verification of slot {slot_index} of document {document_id}",
    )
    return SupplementaryFileResponse.model_validate(saved)


@router.patch(
    "/{document_id}/receive-paper",
    response_model=DocumentResponse,
    summary="Record receipt of the paper original",
    description="""
    Stamp today's date as the day the paper original of a sent-back document
    reached the district office. Recorded once.

    **Requirements:** admin or district_manager; status `sent_back_to_district`.
    """,
)
def receive_paper_document(
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> DocumentResponse:
    document = run_with_single_retry(
        lambda: workflow.receive_paper_document(document_id, principal),
        description=f"paper receipt of document {document_id}",
    )
    return DocumentResponse.model_validate(document)


@router.patch(
    "/{document_id}/receive-additional-docs",
    response_model=DocumentResponse,
    summary="Record receipt of the supplementary documents",
    description="""
    Stamp today's date as the day the supplementary documents of a sent-back
    document were received. Every required slot must be verified as correct.

    **Requirements:** admin or district_manager; status `sent_back_to_district`.
    """,
)
def receive_additional_documents(
    document_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    workflow: DocumentWorkflow = Depends(get_document_workflow),
) -> DocumentResponse:
    document = run_with_single_retry(
        lambda: workflow.receive_additional_documents(document_id, principal),
        description=f"supplementary documents receipt of document {document_id}",
    )
    return DocumentResponse.model_validate(document)
