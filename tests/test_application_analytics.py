"""
Tests for the activity analytics of BackendHealthService.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gateway.application.backend.check_connections import BackendHealthService
from gateway.domain.backend.errors import DocumentStoreError, IdentityProviderError
from gateway.infrastructure.backend.memory import (
    InMemoryDocumentStore,
    InMemoryIdentityProvider,
    InMemoryObjectStorage,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def service(store, identity) -> BackendHealthService:
    storage = InMemoryObjectStorage()
    return BackendHealthService(
        documents=lambda: store, identity=lambda: identity, storage=lambda: storage
    )


class TestCollectionActivity:
    def test_only_collections_updated_in_window_are_active(self, store, service) -> None:
        store.create("orders", {"updatedAt": NOW - timedelta(minutes=30)}, "o1")
        store.create("orders", {"updatedAt": NOW - timedelta(minutes=5)}, "o2")
        store.create("archive", {"updatedAt": NOW - timedelta(days=3)}, "a1")
        store.create("settings", {"theme": "dark"}, "s1")

        report = service.analytics("hour", now=NOW)

        assert report["collections"]["total"] == 3
        assert report["collections"]["withRecentActivity"] == 1
        [orders] = report["collections"]["recentActivity"]
        assert orders["collection"] == "orders"
        assert orders["recentDocuments"] == 2
        assert orders["lastActivity"] == NOW - timedelta(minutes=5)

    def test_window_follows_period(self, store, service) -> None:
        store.create("archive", {"updatedAt": NOW - timedelta(days=3)}, "a1")

        assert service.analytics("day", now=NOW)["collections"]["withRecentActivity"] == 0
        assert service.analytics("week", now=NOW)["collections"]["withRecentActivity"] == 1

    def test_recent_documents_are_capped(self, store, service) -> None:
        for i in range(12):
            store.create("logs", {"updatedAt": NOW - timedelta(seconds=i)}, f"l{i}")

        [logs] = service.analytics("hour", now=NOW)["collections"]["recentActivity"]

        assert logs["recentDocuments"] == 10

    def test_time_range(self, service) -> None:
        report = service.analytics("month", now=NOW)

        assert report["period"] == "month"
        assert report["timeRange"] == {
            "start": (NOW - timedelta(days=30)).isoformat(),
            "end": NOW.isoformat(),
        }

    def test_unqueryable_collection_is_skipped(self, store, service) -> None:
        store.create("orders", {"updatedAt": NOW}, "o1")
        store.create("broken", {"updatedAt": NOW}, "b1")
        original_query = store.query

        def query(q):
            if q.collection == "broken":
                raise DocumentStoreError("index missing", source_code="failed-precondition")
            return original_query(q)

        store.query = query

        report = service.analytics("hour", now=NOW)

        assert [a["collection"] for a in report["collections"]["recentActivity"]] == ["orders"]


class TestUserActivity:
    def test_new_users_counted_inside_window(self, identity, service) -> None:
        identity.create_user(uid="u1")
        identity.create_user(uid="u2")

        recent = service.analytics("day")
        later = service.analytics("day", now=datetime.now(timezone.utc) + timedelta(days=2))

        assert recent["users"] == {"newUsers": 2, "totalUsers": 2}
        assert later["users"] == {"newUsers": 0, "totalUsers": 2}

    def test_identity_failure_reports_zero(self, store) -> None:
        class FailingIdentity(InMemoryIdentityProvider):
            def list_users(self, limit, page_token=None):
                raise IdentityProviderError("quota", source_code="quota-exceeded")

        service = BackendHealthService(
            documents=lambda: store,
            identity=FailingIdentity,
            storage=InMemoryObjectStorage,
        )

        assert service.analytics("day", now=NOW)["users"] == {"newUsers": 0, "totalUsers": 0}
