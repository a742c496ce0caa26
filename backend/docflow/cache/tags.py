"""Cache key and tag naming.

Tags form a flat namespace:
    documents           every document projection
    document:<id>       projections of one document
    branch:<ba_code>    list/count projections of one branch
    branches            the branch list
"""

import json
from typing import Optional

from ..domain.documents.models import DocumentFilters

DOCUMENTS_TAG = "documents"
BRANCHES_TAG = "branches"
BRANCHES_KEY = "branches:all"


def document_tag(document_id: int) -> str:
    return f"document:{document_id}"


def branch_tag(ba_code: int) -> str:
    return f"branch:{ba_code}"


def document_key(document_id: int) -> str:
    return f"document:{document_id}"


def branch_counts_key(ba_code: int) -> str:
    return f"branch_counts:{ba_code}"


def branch_documents_key(ba_code: int, filters: DocumentFilters) -> str:
    """Key of one page of a branch document listing.

    Example:
        >>> branch_documents_key(1101, DocumentFilters(page=2))
        'branch_docs:1101:all:2:20_{"date_from": null, "date_to": null, "search": null}'
    """
    extra = json.dumps(
        {
            "date_from": _iso(filters.date_from),
            "date_to": _iso(filters.date_to),
            "search": filters.search or None,
        },
        sort_keys=True,
    )
    status = filters.status.value if filters.status else "all"
    return f"branch_docs:{ba_code}:{status}:{filters.page}:{filters.limit}_{extra}"


def document_tags(document_id: int, ba_code: int) -> tuple[str, ...]:
    """Tags under which a single-document projection is cached."""
    return (DOCUMENTS_TAG, document_tag(document_id), branch_tag(ba_code))


def branch_list_tags(ba_code: int) -> tuple[str, ...]:
    return (DOCUMENTS_TAG, branch_tag(ba_code))


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None
