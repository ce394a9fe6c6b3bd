"""
Adapter: Cloud Firestore.

Implements DocumentStorePort on top of the firebase-admin Firestore
client. google-api-core exceptions raised by the SDK are translated to
DocumentStoreError with a Firestore status code as `source_code`.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from firebase_admin import firestore
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1.base_query import FieldFilter

from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    CollectionRef,
    Document,
    DocumentQuery,
)
from gateway.domain.backend.errors import (
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
)
from gateway.domain.backend.ports import DocumentStorePort

logger = logging.getLogger(__name__)

_STATUS_CODES: tuple[tuple[type[Exception], str], ...] = (
    (gexc.NotFound, "not-found"),
    (gexc.AlreadyExists, "already-exists"),
    (gexc.Conflict, "already-exists"),
    (gexc.FailedPrecondition, "failed-precondition"),
    (gexc.OutOfRange, "out-of-range"),
    (gexc.InvalidArgument, "invalid-argument"),
    (gexc.MethodNotImplemented, "unimplemented"),
    (gexc.ServiceUnavailable, "unavailable"),
    (gexc.DeadlineExceeded, "deadline-exceeded"),
    (gexc.Unauthenticated, "unauthenticated"),
    (gexc.PermissionDenied, "permission-denied"),
    (gexc.InternalServerError, "internal"),
)


def _source_code(exc: gexc.GoogleAPICallError) -> str:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return "internal"


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except gexc.GoogleAPICallError as exc:
        raise DocumentStoreError(
            f"Firestore {operation} failed: {exc.message}",
            source_code=_source_code(exc),
        ) from exc
    except ValueError as exc:
        raise DocumentStoreError(
            f"Firestore {operation} failed: {exc}",
            source_code="invalid-argument",
        ) from exc


def _to_document(collection: str, snapshot) -> Document:
    return Document(
        id=snapshot.id,
        collection=collection,
        data=snapshot.to_dict() or {},
        create_time=getattr(snapshot, "create_time", None),
        update_time=getattr(snapshot, "update_time", None),
    )


class FirestoreDocumentStore(DocumentStorePort):
    """Concrete DocumentStorePort backed by Cloud Firestore.

    Args:
        app: Initialized firebase_admin App. The client is created lazily.
    """

    def __init__(self, app) -> None:
        self._app = app
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = firestore.client(self._app)
        return self._client

    def list_collections(self) -> list[CollectionRef]:
        with _translate_errors("list collections"):
            return [
                CollectionRef(id=col.id, path=col.id)
                for col in self.client.collections()
            ]

    def get(self, collection: str, document_id: str) -> Document | None:
        with _translate_errors("get"):
            snapshot = self.client.collection(collection).document(document_id).get()
        if not snapshot.exists:
            return None
        return _to_document(collection, snapshot)

    def query(self, query: DocumentQuery) -> list[Document]:
        ref = self.client.collection(query.collection)
        q = ref
        with _translate_errors("query"):
            for condition in query.conditions:
                q = q.where(
                    filter=FieldFilter(condition.field, condition.operator, condition.value)
                )
            for order in query.order_by:
                direction = (
                    firestore.Query.DESCENDING
                    if order.direction == "desc"
                    else firestore.Query.ASCENDING
                )
                q = q.order_by(order.field, direction=direction)
            if query.start_after:
                cursor = ref.document(query.start_after).get()
                if cursor.exists:
                    q = q.start_after(cursor)
            q = q.limit(query.limit)
            return [_to_document(query.collection, snap) for snap in q.stream()]

    def create(
        self, collection: str, data: dict[str, Any], document_id: str | None = None
    ) -> Document:
        ref = self.client.collection(collection)
        doc_ref = ref.document(document_id) if document_id else ref.document()
        try:
            with _translate_errors("create"):
                result = doc_ref.create(data)
        except DocumentStoreError as exc:
            if exc.source_code == "already-exists":
                raise DocumentAlreadyExistsError(collection, doc_ref.id) from exc
            raise
        logger.debug("Created %s/%s", collection, doc_ref.id)
        return Document(
            id=doc_ref.id,
            collection=collection,
            data=data,
            create_time=result.update_time,
            update_time=result.update_time,
        )

    def replace(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> Document:
        doc_ref = self.client.collection(collection).document(document_id)
        with _translate_errors("replace"):
            if not doc_ref.get().exists:
                raise DocumentNotFoundError(collection, document_id)
            result = doc_ref.set(data)
        return Document(
            id=document_id,
            collection=collection,
            data=data,
            update_time=result.update_time,
        )

    def delete(self, collection: str, document_id: str) -> Document:
        doc_ref = self.client.collection(collection).document(document_id)
        with _translate_errors("delete"):
            snapshot = doc_ref.get()
            if not snapshot.exists:
                raise DocumentNotFoundError(collection, document_id)
            doc_ref.delete()
        return _to_document(collection, snapshot)

    def commit_batch(self, operations: list[BatchOperation]) -> None:
        batch = self.client.batch()
        for op in operations:
            doc_ref = self.client.collection(op.collection).document(op.document_id)
            if op.type is BatchOperationType.SET:
                batch.set(doc_ref, op.data or {})
            elif op.type is BatchOperationType.UPDATE:
                batch.update(doc_ref, op.data or {})
            else:
                batch.delete(doc_ref)
        with _translate_errors("batch commit"):
            batch.commit()
        logger.info("Committed batch of %d operation(s)", len(operations))

    def count(self, collection: str, limit: int) -> int:
        with _translate_errors("count"):
            return sum(
                1 for _ in self.client.collection(collection).limit(limit).stream()
            )
