"""
Dependency injection for the backend bounded context.

Provides FastAPI dependency functions that wire the backend adapters
and the change fan-out (both owned by the application instance) into
use cases via constructor injection.
These are the composition root for the backend context.
"""

from fastapi import Depends
from starlette.requests import HTTPConnection

from gateway.application.backend.check_connections import BackendHealthService
from gateway.application.backend.commit_batch import CommitBatchUseCase
from gateway.application.backend.create_document import CreateDocumentUseCase
from gateway.application.backend.delete_document import DeleteDocumentUseCase
from gateway.application.backend.manage_files import FileManagementService
from gateway.application.backend.manage_users import UserManagementService
from gateway.application.backend.mcp_tools import McpToolbox
from gateway.application.backend.read_documents import (
    CollectionStatsUseCase,
    GetDocumentUseCase,
    ListCollectionsUseCase,
    QueryDocumentsUseCase,
)
from gateway.application.backend.replace_document import ReplaceDocumentUseCase
from gateway.core.config import Settings
from gateway.domain.backend.ports import (
    DocumentStorePort,
    IdentityProviderPort,
    ObjectStoragePort,
)
from gateway.infrastructure.backend import Backends
from gateway.infrastructure.realtime.fanout import ChangeFanout


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_backends(conn: HTTPConnection) -> Backends:
    return conn.app.state.backends


def get_fanout(conn: HTTPConnection) -> ChangeFanout:
    """Return the application's fan-out. Works for HTTP and WebSocket routes."""
    return conn.app.state.fanout


def get_document_store(backends: Backends = Depends(get_backends)) -> DocumentStorePort:
    return backends.documents


def get_identity_provider(
    backends: Backends = Depends(get_backends),
) -> IdentityProviderPort:
    return backends.identity


def get_object_storage(backends: Backends = Depends(get_backends)) -> ObjectStoragePort:
    return backends.storage


# ------------------------------------------------------------------
# Firestore
# ------------------------------------------------------------------


def get_list_collections_use_case(
    store: DocumentStorePort = Depends(get_document_store),
) -> ListCollectionsUseCase:
    return ListCollectionsUseCase(store)


def get_get_document_use_case(
    store: DocumentStorePort = Depends(get_document_store),
) -> GetDocumentUseCase:
    return GetDocumentUseCase(store)


def get_query_documents_use_case(
    store: DocumentStorePort = Depends(get_document_store),
) -> QueryDocumentsUseCase:
    return QueryDocumentsUseCase(store)


def get_collection_stats_use_case(
    store: DocumentStorePort = Depends(get_document_store),
) -> CollectionStatsUseCase:
    return CollectionStatsUseCase(store)


def get_create_document_use_case(
    store: DocumentStorePort = Depends(get_document_store),
    fanout: ChangeFanout = Depends(get_fanout),
) -> CreateDocumentUseCase:
    """Build CreateDocumentUseCase publishing through the app's fan-out."""
    return CreateDocumentUseCase(store, fanout)


def get_replace_document_use_case(
    store: DocumentStorePort = Depends(get_document_store),
    fanout: ChangeFanout = Depends(get_fanout),
) -> ReplaceDocumentUseCase:
    return ReplaceDocumentUseCase(store, fanout)


def get_delete_document_use_case(
    store: DocumentStorePort = Depends(get_document_store),
    fanout: ChangeFanout = Depends(get_fanout),
) -> DeleteDocumentUseCase:
    return DeleteDocumentUseCase(store, fanout)


def get_commit_batch_use_case(
    store: DocumentStorePort = Depends(get_document_store),
    fanout: ChangeFanout = Depends(get_fanout),
) -> CommitBatchUseCase:
    return CommitBatchUseCase(store, fanout)


# ------------------------------------------------------------------
# Auth / Storage / Admin
# ------------------------------------------------------------------


def get_user_service(
    identity: IdentityProviderPort = Depends(get_identity_provider),
) -> UserManagementService:
    return UserManagementService(identity)


def get_file_service(
    storage: ObjectStoragePort = Depends(get_object_storage),
    config: Settings = Depends(get_settings),
) -> FileManagementService:
    """Build FileManagementService with the configured upload limits."""
    return FileManagementService(
        storage,
        max_file_size=config.max_upload_size_bytes,
        max_files=config.max_upload_files,
        upload_url_ttl=config.signed_url_ttl_seconds,
    )


def get_health_service(
    backends: Backends = Depends(get_backends),
) -> BackendHealthService:
    """Build BackendHealthService.

    Ports are resolved inside each probe, so an unconfigured service is
    reported as failed instead of failing the request.
    """
    return BackendHealthService(
        documents=lambda: backends.documents,
        identity=lambda: backends.identity,
        storage=lambda: backends.storage,
    )


# ------------------------------------------------------------------
# MCP
# ------------------------------------------------------------------


def get_mcp_toolbox(
    store: DocumentStorePort = Depends(get_document_store),
    fanout: ChangeFanout = Depends(get_fanout),
    users: UserManagementService = Depends(get_user_service),
    files: FileManagementService = Depends(get_file_service),
) -> McpToolbox:
    """Build McpToolbox from the same use cases the REST routes use."""
    return McpToolbox(
        list_collections=ListCollectionsUseCase(store),
        get_document=GetDocumentUseCase(store),
        create_document=CreateDocumentUseCase(store, fanout),
        commit_batch=CommitBatchUseCase(store, fanout),
        delete_document=DeleteDocumentUseCase(store, fanout),
        query_documents=QueryDocumentsUseCase(store),
        users=users,
        files=files,
    )
