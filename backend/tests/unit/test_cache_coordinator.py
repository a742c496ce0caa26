"""Unit tests for the cache-aside coordinator"""

from dataclasses import dataclass
from typing import List
from unittest.mock import MagicMock

import pytest

from docflow.cache.backend import CacheBackendError
from docflow.cache.coordinator import (
    CacheCoordinator,
    CacheSettings,
    load_cache_settings,
    save_cache_enabled,
)
from docflow.cache.memory_backend import InMemoryCacheBackend
from docflow.config import Settings
from docflow.domain.documents.models import BranchRecord
from docflow.models import SystemSetting


@dataclass
class Projection:
    name: str
    count: int


class CountingLoader:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def backend(clock) -> InMemoryCacheBackend:
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def coordinator(backend) -> CacheCoordinator:
    return CacheCoordinator(backend, settings=CacheSettings())


class TestGetOrLoad:
    def test_miss_then_hit(self, coordinator):
        loader = CountingLoader(Projection("a", 1))
        first = coordinator.get_or_load("p:1", loader, model=Projection)
        second = coordinator.get_or_load("p:1", loader, model=Projection)

        assert first == second == Projection("a", 1)
        assert loader.calls == 1
        stats = coordinator.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["sets"] == 1
        assert stats["hit_rate"] == 0.5

    def test_typed_list_round_trip(self, coordinator):
        branches = [BranchRecord(ba_code=1101, name="North", region_code="R6", branch_code=110100)]
        coordinator.get_or_load("branches:all", lambda: branches, model=List[BranchRecord])
        cached = coordinator.get_or_load("branches:all", lambda: [], model=List[BranchRecord])
        assert cached == branches

    def test_plain_json_values(self, coordinator):
        coordinator.get_or_load("counts", lambda: {"acknowledged": 2})
        assert coordinator.get_or_load("counts", lambda: {}) == {"acknowledged": 2}

    def test_entry_expires_with_ttl(self, coordinator, clock):
        loader = CountingLoader({"v": 1})
        coordinator.get_or_load("k", loader, ttl=10)
        clock.advance(11)
        coordinator.get_or_load("k", loader, ttl=10)
        assert loader.calls == 2

    def test_tags_derived_from_value(self, coordinator, backend):
        coordinator.get_or_load(
            "p:1",
            lambda: Projection("a", 1101),
            tags=lambda value: (f"branch:{value.count}",),
            model=Projection,
        )
        assert backend.invalidate_tag("branch:1101") == 1

    def test_loader_error_propagates_and_nothing_is_cached(self, coordinator, backend):
        def failing():
            raise LookupError("not there")

        with pytest.raises(LookupError):
            coordinator.get_or_load("p:404", failing)
        assert backend.get("p:404") is None

    def test_undecodable_entry_is_discarded(self, coordinator, backend):
        backend.set("p:1", "{not json", 60)
        loader = CountingLoader(Projection("fresh", 2))
        assert coordinator.get_or_load("p:1", loader, model=Projection) == Projection("fresh", 2)
        assert loader.calls == 1
        assert coordinator.stats()["errors"] == 1

    def test_backend_errors_degrade_to_loader(self):
        broken = MagicMock()
        broken.get.side_effect = CacheBackendError("down")
        broken.set.side_effect = CacheBackendError("down")
        broken.size.return_value = None
        coordinator = CacheCoordinator(broken, settings=CacheSettings())

        assert coordinator.get_or_load("k", lambda: {"v": 1}) == {"v": 1}
        assert coordinator.stats()["errors"] == 2

    def test_disabled_cache_always_loads(self, backend):
        coordinator = CacheCoordinator(backend, settings=CacheSettings(enabled=False))
        loader = CountingLoader({"v": 1})
        coordinator.get_or_load("k", loader)
        coordinator.get_or_load("k", loader)
        assert loader.calls == 2
        assert backend.size() == 0


class TestInvalidation:
    def test_invalidate_tags_counts_removed_keys(self, coordinator):
        coordinator.get_or_load("document:1", lambda: 1, tags=("documents", "document:1"))
        coordinator.get_or_load("document:2", lambda: 2, tags=("documents", "document:2"))
        assert coordinator.invalidate_tags("document:1", "documents") == 2
        assert coordinator.stats()["deletes"] == 2

    def test_repeated_invalidation_is_harmless(self, coordinator, backend):
        coordinator.get_or_load("document:1", lambda: 1, tags=("document:1",))
        assert coordinator.invalidate_tags("document:1") == 1
        assert coordinator.invalidate_tags("document:1") == 0
        assert backend.get("document:1") is None
        assert coordinator.stats()["errors"] == 0

    def test_invalidation_runs_while_disabled(self, backend):
        backend.set("document:1", "1", 60, tags=("document:1",))
        coordinator = CacheCoordinator(backend, settings=CacheSettings(enabled=False))
        assert coordinator.invalidate_tags("document:1") == 1

    def test_invalidation_errors_are_swallowed(self):
        broken = MagicMock()
        broken.invalidate_tag.side_effect = CacheBackendError("down")
        coordinator = CacheCoordinator(broken, settings=CacheSettings())
        assert coordinator.invalidate_tags("documents") == 0

    def test_clear(self, coordinator):
        coordinator.get_or_load("a", lambda: 1)
        coordinator.get_or_load("b", lambda: 2)
        assert coordinator.clear() == 2
        assert coordinator.stats()["fallback_size"] == 0


class TestCacheSettings:
    def test_refresh_uses_loader(self, backend):
        coordinator = CacheCoordinator(
            backend,
            settings=CacheSettings(),
            settings_loader=lambda: CacheSettings(enabled=False),
        )
        assert coordinator.settings.enabled is True
        assert coordinator.refresh_settings().enabled is False
        assert coordinator.settings.enabled is False

    def test_refresh_with_explicit_settings(self, coordinator):
        coordinator.refresh_settings(CacheSettings(document_ttl=5))
        assert coordinator.settings.document_ttl == 5

    def test_from_settings(self):
        settings = Settings(CACHE_ENABLED=False, CACHE_DOCUMENT_TTL=42)
        cache_settings = CacheSettings.from_settings(settings)
        assert cache_settings.enabled is False
        assert cache_settings.document_ttl == 42

    def test_persisted_switch_overrides_environment(self, db_session):
        settings = Settings(CACHE_ENABLED=True)
        assert load_cache_settings(db_session, settings).enabled is True

        save_cache_enabled(db_session, False)
        db_session.commit()
        assert load_cache_settings(db_session, settings).enabled is False

        save_cache_enabled(db_session, True)
        db_session.commit()
        assert load_cache_settings(db_session, settings).enabled is True

    def test_invalid_persisted_value_is_ignored(self, db_session):
        db_session.add(SystemSetting(key="cache_enabled", value="maybe"))
        db_session.commit()
        assert load_cache_settings(db_session, Settings(CACHE_ENABLED=True)).enabled is True
