"""
Use case: Delete a document.

Input:  DeleteDocumentCommand (collection, document_id)
Output: The deleted Document (its last snapshot).
Side effects: Removes one document and publishes a `deleted`
    ChangeEvent carrying the deleted body.
Failure cases: DocumentNotFoundError when the document does not exist.
"""

import logging

from gateway.application.backend.dtos import DeleteDocumentCommand
from gateway.domain.backend.entities import ChangeEvent, Document, OperationKind
from gateway.domain.backend.ports import ChangePublisherPort, DocumentStorePort

logger = logging.getLogger(__name__)


class DeleteDocumentUseCase:
    def __init__(
        self, store: DocumentStorePort, publisher: ChangePublisherPort
    ) -> None:
        self._store = store
        self._publisher = publisher

    def execute(self, command: DeleteDocumentCommand) -> Document:
        deleted = self._store.delete(command.collection, command.document_id)
        logger.info(
            "Deleted document %s from collection %s",
            command.document_id,
            command.collection,
        )

        self._publisher.publish(
            ChangeEvent(
                topic=command.collection,
                operation_kind=OperationKind.DELETED,
                resource_id=command.document_id,
                payload=deleted.data,
            )
        )
        return deleted
