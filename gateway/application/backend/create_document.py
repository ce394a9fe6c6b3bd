"""
Use case: Create a document and announce it to subscribers.

Input:  CreateDocumentCommand (collection, data, document_id?)
Output: Document as stored.
Side effects: Writes one document. Publishes a `created` ChangeEvent on
    the collection's topic after the store confirms the write.
Failure cases: DocumentAlreadyExistsError when the id is taken; any
    DocumentStoreError from the store. Nothing is published on failure.
"""

import logging
from datetime import datetime, timezone

from gateway.application.backend.dtos import CreateDocumentCommand
from gateway.domain.backend.entities import ChangeEvent, Document, OperationKind
from gateway.domain.backend.ports import ChangePublisherPort, DocumentStorePort

logger = logging.getLogger(__name__)


class CreateDocumentUseCase:
    """Stamps createdAt/updatedAt, writes, then publishes."""

    def __init__(
        self, store: DocumentStorePort, publisher: ChangePublisherPort
    ) -> None:
        self._store = store
        self._publisher = publisher

    def execute(self, command: CreateDocumentCommand) -> Document:
        now = datetime.now(timezone.utc)
        data = {**command.data, "createdAt": now, "updatedAt": now}

        document = self._store.create(
            command.collection, data, document_id=command.document_id
        )
        logger.info(
            "Created document %s in collection %s", document.id, command.collection
        )

        self._publisher.publish(
            ChangeEvent(
                topic=command.collection,
                operation_kind=OperationKind.CREATED,
                resource_id=document.id,
                payload=document.data,
            )
        )
        return document
