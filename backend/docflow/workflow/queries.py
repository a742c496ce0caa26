"""Cache-aside document queries.

Cached projections and their tags:
    branches:all                         → branches                     (CACHE_BRANCHES_TTL)
    document:<id>                        → documents, document:<id>, branch:<ba>  (CACHE_DOCUMENT_TTL)
    branch_docs:<ba>:<status>:<page>:... → documents, branch:<ba>       (CACHE_BRANCH_LIST_TTL)
    branch_counts:<ba>                   → documents, branch:<ba>       (CACHE_BRANCH_LIST_TTL)
"""

from typing import List, Optional

from ..auth.authorization import AuthorizationResolver, BranchAction
from ..auth.principal import Principal
from ..cache import tags as cache_tags
from ..cache.coordinator import CacheCoordinator
from ..domain.documents.models import BranchRecord, DocumentFilters, SupplementaryFileRecord
from ..domain.documents.ports import DocumentStorePort
from ..domain.documents.verification import (
    all_required_slots_verified,
    is_complete,
    pending_slot_indexes,
    required_slot_indexes,
)
from ..domain.errors import ForbiddenError, NotFoundError
from .views import BranchDocumentCounts, DocumentPage, DocumentView


class DocumentQueries:
    """Read side of the engine.

    Args:
        store: Authoritative document store
        cache: Cache coordinator
        authorization: Resolver; by default one backed by the cached branch list
    """

    def __init__(
        self,
        store: DocumentStorePort,
        cache: CacheCoordinator,
        authorization: Optional[AuthorizationResolver] = None,
    ):
        self.store = store
        self.cache = cache
        self.authorization = authorization or AuthorizationResolver(self.get_all_branches)

    def get_all_branches(self) -> List[BranchRecord]:
        """Every branch, active or not, from the long-lived branch cache."""
        return self.cache.get_or_load(
            cache_tags.BRANCHES_KEY,
            lambda: self.store.list_branches(active_only=False),
            ttl=self.cache.settings.branches_ttl,
            tags=(cache_tags.BRANCHES_TAG,),
            model=List[BranchRecord],
        )

    def get_accessible_branches(self, principal: Principal) -> List[BranchRecord]:
        """Active branches in the principal's scope, ordered by BA code."""
        accessible = self.authorization.resolve_accessible_branches(principal)
        return [
            branch
            for branch in self.get_all_branches()
            if branch.ba_code in accessible and branch.is_active
        ]

    def _load_document_view(self, document_id: int) -> DocumentView:
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")

        files = self.store.list_supplementary_files(document_id)
        return DocumentView(
            document=document,
            supplementary_files=files,
            history=self.store.list_history(document_id),
            comments=self.store.list_comments(document_id),
            required_slots=required_slot_indexes(document),
            pending_slots=pending_slot_indexes(document, files),
            all_required_slots_verified=all_required_slots_verified(document, files),
            is_complete=is_complete(document, files),
        )

    def get_or_load_document(self, document_id: int) -> DocumentView:
        """Cached document view.

        Raises:
            NotFoundError: The document does not exist (nothing is cached)
        """
        return self.cache.get_or_load(
            cache_tags.document_key(document_id),
            lambda: self._load_document_view(document_id),
            ttl=self.cache.settings.document_ttl,
            tags=lambda view: cache_tags.document_tags(document_id, view.document.branch_ba_code),
            model=DocumentView,
        )

    def get_document_for(self, principal: Principal, document_id: int) -> DocumentView:
        """Cached document view, checked against the principal's read access.

        Raises:
            NotFoundError: The document does not exist
            ForbiddenError: The principal may not read the document
        """
        view = self.get_or_load_document(document_id)
        if not self.authorization.can_read_document(principal, view.document):
            raise ForbiddenError(f"Not allowed to read document {document_id}")
        return view

    def list_supplementary_files(self, document_id: int) -> List[SupplementaryFileRecord]:
        return self.get_or_load_document(document_id).supplementary_files

    def get_or_load_branch_documents(self, ba_code: int, filters: DocumentFilters) -> DocumentPage:
        """Cached page of a branch's non-draft documents, newest first."""

        def _load() -> DocumentPage:
            items, total = self.store.list_branch_documents(ba_code, filters)
            return DocumentPage(items=items, total=total, page=filters.page, limit=filters.limit)

        return self.cache.get_or_load(
            cache_tags.branch_documents_key(ba_code, filters),
            _load,
            ttl=self.cache.settings.branch_list_ttl,
            tags=cache_tags.branch_list_tags(ba_code),
            model=DocumentPage,
        )

    def get_branch_documents_for(
        self,
        principal: Principal,
        ba_code: int,
        filters: DocumentFilters,
    ) -> DocumentPage:
        """Branch listing checked against the principal's branch scope.

        Raises:
            ForbiddenError: The branch is outside the principal's scope
        """
        if not self.authorization.can_act_on_branch(principal, ba_code, BranchAction.READ):
            raise ForbiddenError(f"Not allowed to list documents of branch {ba_code}")
        return self.get_or_load_branch_documents(ba_code, filters)

    def get_branch_document_counts(self, ba_code: int) -> BranchDocumentCounts:
        return self.cache.get_or_load(
            cache_tags.branch_counts_key(ba_code),
            lambda: BranchDocumentCounts(ba_code=ba_code, counts=self.store.count_branch_documents(ba_code)),
            ttl=self.cache.settings.branch_list_ttl,
            tags=cache_tags.branch_list_tags(ba_code),
            model=BranchDocumentCounts,
        )
