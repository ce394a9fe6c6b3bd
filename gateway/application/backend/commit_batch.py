"""
Use case: Commit an atomic batch of document writes.

Input:  CommitBatchCommand (operations)
Output: CommitBatchResult listing every operation as `completed`.
Side effects: All writes are applied in one atomic commit. After the
    commit succeeds, one ChangeEvent per operation is published
    (set and update → updated, delete → deleted).
Failure cases: Any store error aborts the whole batch; no operation is
    reported as completed and nothing is published.
"""

import logging
from datetime import datetime, timezone

from gateway.application.backend.dtos import (
    BatchOperationResult,
    CommitBatchCommand,
    CommitBatchResult,
)
from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    ChangeEvent,
    OperationKind,
)
from gateway.domain.backend.ports import ChangePublisherPort, DocumentStorePort

logger = logging.getLogger(__name__)


class CommitBatchUseCase:
    def __init__(
        self, store: DocumentStorePort, publisher: ChangePublisherPort
    ) -> None:
        self._store = store
        self._publisher = publisher

    def execute(self, command: CommitBatchCommand) -> CommitBatchResult:
        now = datetime.now(timezone.utc)
        stamped = [
            op
            if op.type is BatchOperationType.DELETE
            else BatchOperation(
                type=op.type,
                collection=op.collection,
                document_id=op.document_id,
                data={**(op.data or {}), "updatedAt": now},
            )
            for op in command.operations
        ]

        self._store.commit_batch(stamped)
        logger.info("Executed batch operation with %d operations", len(stamped))

        for op in stamped:
            self._publisher.publish(
                ChangeEvent(
                    topic=op.collection,
                    operation_kind=(
                        OperationKind.DELETED
                        if op.type is BatchOperationType.DELETE
                        else OperationKind.UPDATED
                    ),
                    resource_id=op.document_id,
                    payload=op.data or {},
                )
            )

        results = [
            BatchOperationResult(
                type=op.type.value,
                collection=op.collection,
                document_id=op.document_id,
                status="completed",
            )
            for op in stamped
        ]
        return CommitBatchResult(operations=results, count=len(results))
