"""Unit tests for cached document queries and branch listings"""

from datetime import date

import pytest

from docflow.cache import tags as cache_tags
from docflow.domain.documents.document_status import DocumentStatus
from docflow.domain.documents.models import DocumentFilters
from docflow.domain.errors import ForbiddenError, NotFoundError
from docflow.models import Branch


class TestBranches:
    def test_accessible_branches_exclude_inactive(self, queries, admin, district_manager, branch_user):
        assert [b.ba_code for b in queries.get_accessible_branches(admin)] == [1101, 1102, 2201]
        assert [b.ba_code for b in queries.get_accessible_branches(district_manager)] == [1101, 1102]
        assert [b.ba_code for b in queries.get_accessible_branches(branch_user)] == [1101]

    def test_branch_list_is_cached(self, queries, cache, db_session):
        assert len(queries.get_all_branches()) == 4
        db_session.add(Branch(ba_code=1103, branch_code=110300, name="East Branch", region_code="R6"))
        db_session.commit()
        assert len(queries.get_all_branches()) == 4

        cache.invalidate_tags(cache_tags.BRANCHES_TAG)
        assert len(queries.get_all_branches()) == 5


class TestDocumentView:
    def test_view_contents(self, queries, document_with_slots):
        view = queries.get_or_load_document(document_with_slots.id)
        assert view.document.id == document_with_slots.id
        assert view.required_slots == [0, 1]
        assert view.pending_slots == [0, 1]
        assert view.all_required_slots_verified is False
        assert view.is_complete is False
        assert len(view.history) == 1

    def test_missing_document_is_not_cached(self, queries, cache):
        with pytest.raises(NotFoundError):
            queries.get_or_load_document(999)
        assert cache.stats()["sets"] == 0

    def test_read_access(self, queries, create_document, branch_user, other_branch_user, uploader, plain_user):
        document = create_document()
        assert queries.get_document_for(branch_user, document.id).document.id == document.id
        assert queries.get_document_for(uploader, document.id).document.id == document.id
        assert queries.get_document_for(plain_user, document.id).document.id == document.id
        with pytest.raises(ForbiddenError):
            queries.get_document_for(other_branch_user, document.id)

    def test_complete_document(self, workflow, queries, create_document, branch_user):
        document = create_document()
        workflow.update_status(document.id, branch_user, DocumentStatus.ACKNOWLEDGED)
        view = queries.get_or_load_document(document.id)
        assert view.all_required_slots_verified is True
        assert view.is_complete is True

    def test_cached_view_survives_round_trip(self, queries, document_with_slots, cache):
        first = queries.get_or_load_document(document_with_slots.id)
        hits = cache.stats()["hits"]
        second = queries.get_or_load_document(document_with_slots.id)
        assert cache.stats()["hits"] == hits + 1
        assert second.document.additional_docs == first.document.additional_docs
        assert second.document.status == DocumentStatus.SENT_TO_BRANCH


class TestBranchDocuments:
    @pytest.fixture
    def documents(self, create_document, clock):
        created = []
        for number, subject in [
            ("MT-001", "Meter readings January"),
            ("MT-002", "Staff roster"),
            ("MT-003", "Meter readings February"),
        ]:
            created.append(create_document(mt_number=number, subject=subject))
            clock.advance(86400)
        create_document(status=DocumentStatus.DRAFT, mt_number="MT-DRAFT")
        create_document(branch_ba_code=1102, mt_number="MT-OTHER")
        return created

    def test_drafts_and_other_branches_excluded(self, queries, documents):
        page = queries.get_or_load_branch_documents(1101, DocumentFilters())
        assert page.total == 3
        assert "MT-DRAFT" not in [d.mt_number for d in page.items]

    def test_newest_first(self, queries, documents):
        page = queries.get_or_load_branch_documents(1101, DocumentFilters())
        assert [d.mt_number for d in page.items] == ["MT-003", "MT-002", "MT-001"]

    def test_pagination(self, queries, documents):
        page = queries.get_or_load_branch_documents(1101, DocumentFilters(page=2, limit=2))
        assert page.total == 3
        assert page.total_pages == 2
        assert [d.mt_number for d in page.items] == ["MT-001"]

    def test_search_matches_subject_case_insensitively(self, queries, documents):
        page = queries.get_or_load_branch_documents(1101, DocumentFilters(search="meter READINGS"))
        assert sorted(d.mt_number for d in page.items) == ["MT-001", "MT-003"]

    def test_search_matches_reference_number(self, queries, documents):
        page = queries.get_or_load_branch_documents(1101, DocumentFilters(search="mt-002"))
        assert [d.mt_number for d in page.items] == ["MT-002"]

    def test_status_filter(self, workflow, queries, documents, branch_user):
        workflow.update_status(documents[0].id, branch_user, DocumentStatus.ACKNOWLEDGED)
        page = queries.get_or_load_branch_documents(1101, DocumentFilters(status=DocumentStatus.ACKNOWLEDGED))
        assert [d.mt_number for d in page.items] == ["MT-001"]

    def test_date_filter(self, queries, documents):
        page = queries.get_or_load_branch_documents(
            1101, DocumentFilters(date_from=date(2024, 1, 16), date_to=date(2024, 1, 16))
        )
        assert [d.mt_number for d in page.items] == ["MT-002"]

    def test_filters_are_cached_separately(self, queries, documents, cache):
        searched = queries.get_or_load_branch_documents(1101, DocumentFilters(search="roster"))
        all_docs = queries.get_or_load_branch_documents(1101, DocumentFilters())
        assert searched.total == 1
        assert all_docs.total == 3

    def test_listing_requires_branch_scope(self, queries, documents, other_branch_user, branch_user):
        assert queries.get_branch_documents_for(branch_user, 1101, DocumentFilters()).total == 3
        with pytest.raises(ForbiddenError):
            queries.get_branch_documents_for(other_branch_user, 1101, DocumentFilters())

    def test_counts(self, workflow, queries, documents, branch_user):
        workflow.update_status(documents[0].id, branch_user, DocumentStatus.ACKNOWLEDGED)
        counts = queries.get_branch_document_counts(1101)
        assert counts.counts == {"sent_to_branch": 2, "acknowledged": 1}
        assert counts.total == 3
