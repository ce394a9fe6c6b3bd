"""
Use case: Replace the whole body of an existing document.

Input:  ReplaceDocumentCommand (collection, document_id, data)
Output: Document as stored.
Side effects: Overwrites one document and publishes an `updated`
    ChangeEvent after the write is confirmed.
Failure cases: DocumentNotFoundError when the document does not exist.
"""

import logging
from datetime import datetime, timezone

from gateway.application.backend.dtos import ReplaceDocumentCommand
from gateway.domain.backend.entities import ChangeEvent, Document, OperationKind
from gateway.domain.backend.ports import ChangePublisherPort, DocumentStorePort

logger = logging.getLogger(__name__)


class ReplaceDocumentUseCase:
    def __init__(
        self, store: DocumentStorePort, publisher: ChangePublisherPort
    ) -> None:
        self._store = store
        self._publisher = publisher

    def execute(self, command: ReplaceDocumentCommand) -> Document:
        data = {**command.data, "updatedAt": datetime.now(timezone.utc)}

        document = self._store.replace(command.collection, command.document_id, data)
        logger.info(
            "Updated document %s in collection %s",
            command.document_id,
            command.collection,
        )

        self._publisher.publish(
            ChangeEvent(
                topic=command.collection,
                operation_kind=OperationKind.UPDATED,
                resource_id=command.document_id,
                payload=document.data,
            )
        )
        return document
