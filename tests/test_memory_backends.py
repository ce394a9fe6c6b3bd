"""
Tests for the in-memory backends and the Backends holder.
"""

import pytest

from gateway.core.config import Settings
from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    DocumentQuery,
    OrderBy,
    QueryCondition,
)
from gateway.domain.backend.errors import (
    DocumentStoreError,
    IdentityProviderError,
    StoredFileNotFoundError,
    TokenError,
)
from gateway.infrastructure.backend import Backends
from gateway.infrastructure.backend.memory import (
    InMemoryDocumentStore,
    InMemoryIdentityProvider,
    InMemoryObjectStorage,
)


class TestInMemoryDocumentStore:
    def test_returned_documents_are_copies(self) -> None:
        store = InMemoryDocumentStore()
        store.create("users", {"tags": ["a"]}, "u1")

        store.get("users", "u1").data["tags"].append("b")

        assert store.get("users", "u1").data["tags"] == ["a"]

    def test_array_operators(self) -> None:
        store = InMemoryDocumentStore()
        store.create("posts", {"tags": ["py", "web"]}, "p1")
        store.create("posts", {"tags": ["go"]}, "p2")

        contains = store.query(
            DocumentQuery("posts", conditions=(QueryCondition("tags", "array-contains", "py"),))
        )
        any_of = store.query(
            DocumentQuery(
                "posts",
                conditions=(QueryCondition("tags", "array-contains-any", ["go", "rs"]),),
            )
        )

        assert [d.id for d in contains] == ["p1"]
        assert [d.id for d in any_of] == ["p2"]

    def test_descending_order_puts_missing_fields_first(self) -> None:
        store = InMemoryDocumentStore()
        store.create("users", {"age": 10}, "a")
        store.create("users", {"age": 30}, "b")
        store.create("users", {}, "c")

        docs = store.query(DocumentQuery("users", order_by=(OrderBy("age", "desc"),)))

        assert [d.id for d in docs] == ["c", "b", "a"]

    def test_incomparable_values(self) -> None:
        store = InMemoryDocumentStore()
        store.create("users", {"age": "old"}, "a")

        with pytest.raises(DocumentStoreError) as info:
            store.query(DocumentQuery("users", conditions=(QueryCondition("age", ">", 3),)))

        assert info.value.source_code == "invalid-argument"

    def test_batch_set_keeps_create_time(self) -> None:
        store = InMemoryDocumentStore()
        created = store.create("users", {"n": 1}, "a")

        store.commit_batch([BatchOperation(BatchOperationType.SET, "users", "a", {"n": 2})])

        doc = store.get("users", "a")
        assert doc.data == {"n": 2}
        assert doc.create_time == created.create_time

    def test_count_is_capped(self) -> None:
        store = InMemoryDocumentStore()
        for i in range(5):
            store.create("users", {}, f"u{i}")

        assert store.count("users", 3) == 3
        assert store.count("empty", 3) == 0


class TestInMemoryIdentityProvider:
    def test_token_prefixes(self) -> None:
        identity = InMemoryIdentityProvider()
        user = identity.create_user(uid="u1", email="a@example.com", password="secret1")

        assert identity.verify_id_token("token:u1").uid == user.uid
        for token, code in (
            ("expired:u1", "expired"),
            ("revoked:u1", "revoked"),
            ("token:ghost", "invalid"),
            ("nonsense", "invalid"),
        ):
            with pytest.raises(TokenError) as info:
                identity.verify_id_token(token)
            assert info.value.source_code == code

    def test_duplicate_uid(self) -> None:
        identity = InMemoryIdentityProvider()
        identity.create_user(uid="u1")

        with pytest.raises(IdentityProviderError) as info:
            identity.create_user(uid="u1")

        assert info.value.source_code == "uid-already-exists"

    def test_weak_password(self) -> None:
        with pytest.raises(IdentityProviderError) as info:
            InMemoryIdentityProvider().create_user(email="a@example.com", password="123")
        assert info.value.source_code == "weak-password"


class TestInMemoryObjectStorage:
    def test_reupload_bumps_generation(self) -> None:
        storage = InMemoryObjectStorage()
        first = storage.upload("a.txt", b"1", "text/plain", {})
        second = storage.upload("a.txt", b"22", "text/plain", {})

        assert (first.generation, second.generation) == ("1", "2")
        assert second.time_created == first.time_created
        assert storage.get_bytes("a.txt") == b"22"

    def test_signed_url_requires_existing_file(self) -> None:
        with pytest.raises(StoredFileNotFoundError):
            InMemoryObjectStorage().signed_url("missing.txt", 60)

    def test_pagination(self) -> None:
        storage = InMemoryObjectStorage()
        for name in ("a", "b", "c"):
            storage.upload(name, b"x", None, {})

        first = storage.list_files("", 2)
        second = storage.list_files("", 2, first.next_page_token)

        assert [f.name for f in first.files] == ["a", "b"]
        assert [f.name for f in second.files] == ["c"]
        assert second.next_page_token is None


class TestBackends:
    def test_in_memory_settings_build_local_services(self) -> None:
        backends = Backends(
            Settings(_env_file=None, use_in_memory_backends=True, firebase_storage_bucket="demo")
        )

        assert isinstance(backends.documents, InMemoryDocumentStore)
        assert isinstance(backends.identity, InMemoryIdentityProvider)
        assert backends.storage.bucket_name() == "demo"

    def test_explicit_services_win(self) -> None:
        store = InMemoryDocumentStore()
        backends = Backends(Settings(_env_file=None, use_in_memory_backends=True), documents=store)
        assert backends.documents is store
