"""
Read-only document use cases.

Listing collections, fetching one document, running queries, and
counting documents per collection. None of them publish events.
"""

import logging

from gateway.application.backend.dtos import CollectionStat, DocumentListResult
from gateway.domain.backend.entities import CollectionRef, Document, DocumentQuery
from gateway.domain.backend.errors import BackendError, DocumentNotFoundError
from gateway.domain.backend.ports import DocumentStorePort

logger = logging.getLogger(__name__)

STATS_MAX_COLLECTIONS = 10
STATS_MAX_DOCUMENTS = 1000


class ListCollectionsUseCase:
    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store

    def execute(self) -> list[CollectionRef]:
        collections = self._store.list_collections()
        logger.info("Listed %d collections", len(collections))
        return collections


class GetDocumentUseCase:
    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store

    def execute(self, collection: str, document_id: str) -> Document:
        """Return the document.

        Raises:
            DocumentNotFoundError: If it does not exist.
        """
        document = self._store.get(collection, document_id)
        if document is None:
            raise DocumentNotFoundError(collection, document_id)
        return document


class QueryDocumentsUseCase:
    """Runs a query and reports whether another page may follow."""

    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store

    def execute(self, query: DocumentQuery) -> DocumentListResult:
        logger.info(
            "Querying %s: %d condition(s), limit=%d",
            query.collection,
            len(query.conditions),
            query.limit,
        )
        documents = self._store.query(query)
        return DocumentListResult(
            collection=query.collection,
            documents=documents,
            count=len(documents),
            has_more=len(documents) == query.limit,
        )


class CollectionStatsUseCase:
    """Counts documents in the first collections, up to a fixed cap each.

    A collection that cannot be counted is reported with its error
    instead of failing the whole request.
    """

    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store

    def execute(self) -> list[CollectionStat]:
        collections = self._store.list_collections()[:STATS_MAX_COLLECTIONS]
        stats: list[CollectionStat] = []
        for ref in collections:
            try:
                count = self._store.count(ref.id, STATS_MAX_DOCUMENTS)
                stats.append(CollectionStat(id=ref.id, document_count=count))
            except BackendError as exc:
                logger.warning("Unable to count collection %s: %s", ref.id, exc)
                stats.append(
                    CollectionStat(id=ref.id, document_count=None, error=exc.message)
                )
        return stats
