"""Document workflow (mutations) and cache-aside queries"""

from .queries import DocumentQueries
from .service import DocumentWorkflow, UploadPolicy
from .views import BranchDocumentCounts, DocumentPage, DocumentView

__all__ = [
    "DocumentQueries",
    "DocumentWorkflow",
    "UploadPolicy",
    "BranchDocumentCounts",
    "DocumentPage",
    "DocumentView",
]
