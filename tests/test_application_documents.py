"""
Tests for the document use cases.

Use cases are tested against the in-memory store with a mocked
publisher: events are published only after the store confirms a write.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from gateway.application.backend.commit_batch import CommitBatchUseCase
from gateway.application.backend.create_document import CreateDocumentUseCase
from gateway.application.backend.delete_document import DeleteDocumentUseCase
from gateway.application.backend.dtos import (
    CommitBatchCommand,
    CreateDocumentCommand,
    DeleteDocumentCommand,
    ReplaceDocumentCommand,
)
from gateway.application.backend.read_documents import (
    CollectionStatsUseCase,
    GetDocumentUseCase,
    QueryDocumentsUseCase,
)
from gateway.application.backend.replace_document import ReplaceDocumentUseCase
from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    DocumentQuery,
    OperationKind,
)
from gateway.domain.backend.errors import (
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
)
from gateway.infrastructure.backend.memory import InMemoryDocumentStore


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def publisher() -> MagicMock:
    return MagicMock()


def _published(publisher: MagicMock) -> list:
    return [call.args[0] for call in publisher.publish.call_args_list]


class TestCreateDocumentUseCase:
    def test_stamps_timestamps_and_publishes(self, store, publisher) -> None:
        use_case = CreateDocumentUseCase(store, publisher)

        doc = use_case.execute(CreateDocumentCommand("users", {"name": "Ada"}, "u1"))

        assert isinstance(doc.data["createdAt"], datetime)
        assert doc.data["createdAt"] == doc.data["updatedAt"]
        [event] = _published(publisher)
        assert event.topic == "users"
        assert event.operation_kind is OperationKind.CREATED
        assert event.resource_id == "u1"
        assert event.payload["name"] == "Ada"

    def test_nothing_published_when_write_fails(self, store, publisher) -> None:
        use_case = CreateDocumentUseCase(store, publisher)
        use_case.execute(CreateDocumentCommand("users", {"name": "Ada"}, "u1"))
        publisher.reset_mock()

        with pytest.raises(DocumentAlreadyExistsError):
            use_case.execute(CreateDocumentCommand("users", {"name": "Eve"}, "u1"))

        publisher.publish.assert_not_called()


class TestReplaceDocumentUseCase:
    def test_publishes_updated(self, store, publisher) -> None:
        store.create("users", {"name": "Ada"}, "u1")
        use_case = ReplaceDocumentUseCase(store, publisher)

        doc = use_case.execute(ReplaceDocumentCommand("users", "u1", {"name": "Grace"}))

        assert doc.data["name"] == "Grace"
        assert "updatedAt" in doc.data
        [event] = _published(publisher)
        assert event.operation_kind is OperationKind.UPDATED

    def test_missing_document(self, store, publisher) -> None:
        use_case = ReplaceDocumentUseCase(store, publisher)
        with pytest.raises(DocumentNotFoundError):
            use_case.execute(ReplaceDocumentCommand("users", "ghost", {}))
        publisher.publish.assert_not_called()


class TestDeleteDocumentUseCase:
    def test_publishes_deleted_with_last_data(self, store, publisher) -> None:
        store.create("users", {"name": "Ada"}, "u1")
        use_case = DeleteDocumentUseCase(store, publisher)

        doc = use_case.execute(DeleteDocumentCommand("users", "u1"))

        assert doc.data == {"name": "Ada"}
        [event] = _published(publisher)
        assert event.operation_kind is OperationKind.DELETED
        assert event.payload == {"name": "Ada"}
        assert store.get("users", "u1") is None


class TestCommitBatchUseCase:
    def test_stamps_writes_and_publishes_after_commit(self, store, publisher) -> None:
        store.create("users", {"name": "Ada"}, "ada")
        use_case = CommitBatchUseCase(store, publisher)

        result = use_case.execute(
            CommitBatchCommand(
                operations=(
                    BatchOperation(BatchOperationType.SET, "users", "bob", {"name": "Bob"}),
                    BatchOperation(BatchOperationType.DELETE, "users", "ada"),
                )
            )
        )

        assert result.count == 2
        assert [r.status for r in result.operations] == ["completed", "completed"]
        assert "updatedAt" in store.get("users", "bob").data
        kinds = [e.operation_kind for e in _published(publisher)]
        assert kinds == [OperationKind.UPDATED, OperationKind.DELETED]

    def test_failed_commit_publishes_nothing(self, store, publisher) -> None:
        use_case = CommitBatchUseCase(store, publisher)

        with pytest.raises(DocumentNotFoundError):
            use_case.execute(
                CommitBatchCommand(
                    operations=(
                        BatchOperation(BatchOperationType.SET, "users", "a", {"n": 1}),
                        BatchOperation(BatchOperationType.UPDATE, "users", "ghost", {"n": 2}),
                    )
                )
            )

        assert store.get("users", "a") is None
        publisher.publish.assert_not_called()


class TestReadUseCases:
    def test_get_missing_raises(self, store) -> None:
        with pytest.raises(DocumentNotFoundError):
            GetDocumentUseCase(store).execute("users", "ghost")

    def test_query_reports_has_more_on_full_page(self, store) -> None:
        for i in range(3):
            store.create("users", {"n": i}, f"u{i}")

        full = QueryDocumentsUseCase(store).execute(DocumentQuery("users", limit=3))
        partial = QueryDocumentsUseCase(store).execute(DocumentQuery("users", limit=5))

        assert full.has_more is True
        assert partial.has_more is False
        assert partial.count == 3

    def test_stats_report_per_collection_errors(self, store) -> None:
        store.create("users", {"n": 1}, "u1")
        store.create("posts", {"n": 1}, "p1")
        store.count = MagicMock(
            side_effect=[DocumentStoreError("denied", source_code="permission-denied"), 1]
        )

        stats = CollectionStatsUseCase(store).execute()

        assert stats[0].id == "posts"
        assert stats[0].document_count is None
        assert stats[0].error == "denied"
        assert stats[1].document_count == 1
