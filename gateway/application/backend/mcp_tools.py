"""
MCP toolbox use case.

The named tools offered to MCP clients. Each one runs the same use case
as its REST route, so tool writes stamp timestamps and publish change
events exactly like the HTTP API.

Input:  plain arguments already validated by the interface layer.
Output: domain entities; the router serializes them.
Failure cases:
    DocumentNotFoundError     get/update/delete of a missing document
    UserNotFoundError         unknown uid or email
    StoredFileNotFoundError   unknown file path
"""

from typing import Any

from gateway.application.backend.commit_batch import CommitBatchUseCase
from gateway.application.backend.create_document import CreateDocumentUseCase
from gateway.application.backend.delete_document import DeleteDocumentUseCase
from gateway.application.backend.dtos import (
    CommitBatchCommand,
    CreateDocumentCommand,
    DeleteDocumentCommand,
    DocumentListResult,
)
from gateway.application.backend.manage_files import FileManagementService
from gateway.application.backend.manage_users import UserManagementService
from gateway.application.backend.read_documents import (
    GetDocumentUseCase,
    ListCollectionsUseCase,
    QueryDocumentsUseCase,
)
from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    CollectionRef,
    Document,
    DocumentQuery,
    FilePage,
    StoredFile,
    UserPage,
    UserRecord,
)


class McpToolbox:
    """Operations behind the MCP tools."""

    def __init__(
        self,
        list_collections: ListCollectionsUseCase,
        get_document: GetDocumentUseCase,
        create_document: CreateDocumentUseCase,
        commit_batch: CommitBatchUseCase,
        delete_document: DeleteDocumentUseCase,
        query_documents: QueryDocumentsUseCase,
        users: UserManagementService,
        files: FileManagementService,
    ) -> None:
        self._list_collections = list_collections
        self._get_document = get_document
        self._create_document = create_document
        self._commit_batch = commit_batch
        self._delete_document = delete_document
        self._query_documents = query_documents
        self._users = users
        self._files = files

    def list_collections(self) -> list[CollectionRef]:
        return self._list_collections.execute()

    def add_document(
        self, collection: str, data: dict[str, Any], document_id: str | None = None
    ) -> Document:
        return self._create_document.execute(
            CreateDocumentCommand(collection, data, document_id)
        )

    def get_document(self, collection: str, document_id: str) -> Document:
        return self._get_document.execute(collection, document_id)

    def update_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> Document:
        """Merge `data` into an existing document and return the result.

        Runs as a one-operation batch so the write is stamped and
        published like any other update.
        """
        operation = BatchOperation(BatchOperationType.UPDATE, collection, document_id, data)
        self._commit_batch.execute(CommitBatchCommand(operations=(operation,)))
        return self._get_document.execute(collection, document_id)

    def delete_document(self, collection: str, document_id: str) -> Document:
        return self._delete_document.execute(DeleteDocumentCommand(collection, document_id))

    def query_collection(self, query: DocumentQuery) -> DocumentListResult:
        return self._query_documents.execute(query)

    def list_files(self, directory: str, limit: int) -> FilePage:
        return self._files.list_files(directory, limit)

    def get_file_info(self, path: str) -> StoredFile:
        stored, _ = self._files.file_info(path)
        return stored

    def get_user(self, identifier: str) -> UserRecord:
        """Look a user up by email when the identifier contains `@`, else by uid."""
        if "@" in identifier:
            return self._users.get_user_by_email(identifier)
        return self._users.get_user(identifier)

    def list_users(self, limit: int, page_token: str | None = None) -> UserPage:
        return self._users.list_users(limit, page_token)
