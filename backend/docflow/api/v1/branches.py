"""Branches API Router: branch scope, branch document listings and counts."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from ...auth.authorization import BranchAction
from ...auth.dependencies import get_current_principal
from ...auth.principal import Principal
from ...dependencies import get_document_queries
from ...domain.documents.document_status import DocumentStatus
from ...domain.documents.models import DocumentFilters
from ...domain.errors import ForbiddenError
from ...workflow.queries import DocumentQueries
from .schemas import BranchCountsResponse, BranchResponse, DocumentPageResponse

router = APIRouter(prefix="/branches", tags=["branches"])


@router.get(
    "/accessible",
    response_model=List[BranchResponse],
    summary="Branches in the caller's scope",
)
def accessible_branches(
    principal: Principal = Depends(get_current_principal),
    queries: DocumentQueries = Depends(get_document_queries),
) -> List[BranchResponse]:
    return [BranchResponse.model_validate(b) for b in queries.get_accessible_branches(principal)]


@router.get(
    "/{ba_code}/documents",
    response_model=DocumentPageResponse,
    summary="List a branch's documents",
    description="Non-draft documents of the branch, newest first. `search` matches reference number or subject.",
)
def branch_documents(
    ba_code: int = Path(...),
    status: Optional[DocumentStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    queries: DocumentQueries = Depends(get_document_queries),
) -> DocumentPageResponse:
    filters = DocumentFilters(
        status=status,
        date_from=date_from,
        date_to=date_to,
        search=search.strip() if search and search.strip() else None,
        page=page,
        limit=limit,
    )
    page_result = queries.get_branch_documents_for(principal, ba_code, filters)
    return DocumentPageResponse.model_validate(page_result)


@router.get(
    "/{ba_code}/counts",
    response_model=BranchCountsResponse,
    summary="Document counts of a branch by status",
)
def branch_counts(
    ba_code: int = Path(...),
    principal: Principal = Depends(get_current_principal),
    queries: DocumentQueries = Depends(get_document_queries),
) -> BranchCountsResponse:
    if not queries.authorization.can_act_on_branch(principal, ba_code, BranchAction.READ):
        raise ForbiddenError(f"Not allowed to view branch {ba_code}")
    return BranchCountsResponse.model_validate(queries.get_branch_document_counts(ba_code))
