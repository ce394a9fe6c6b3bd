"""
Errors raised by backend adapters.

Adapters translate SDK exceptions into these classes so the rest of
the application never inspects vendor exception types. Each class
fixes the fault kind; `source_code` carries the upstream-specific code.
These are mapped to HTTP responses by the shared error normalizer.
No framework imports allowed.
"""

from typing import Any

IDENTITY_PROVIDER_FAULT = "identity-provider-fault"
DOCUMENT_STORE_FAULT = "document-store-fault"
TOKEN_FAULT = "token-fault"
UPLOAD_FAULT = "upload-fault"
GENERIC_FAULT = "generic-fault"


class BackendError(Exception):
    """Base error for all backend failures."""

    kind = GENERIC_FAULT

    def __init__(
        self,
        message: str,
        source_code: str | None = None,
        detail: Any = None,
    ) -> None:
        self.message = message
        self.source_code = source_code
        self.detail = detail
        super().__init__(self.message)


class IdentityProviderError(BackendError):
    """Raised when a Firebase Auth user operation fails."""

    kind = IDENTITY_PROVIDER_FAULT


class DocumentStoreError(BackendError):
    """Raised when a Firestore operation fails."""

    kind = DOCUMENT_STORE_FAULT


class TokenError(BackendError):
    """Raised when an ID token cannot be verified."""

    kind = TOKEN_FAULT


class UploadError(BackendError):
    """Raised when an upload breaks a size, count or field limit."""

    kind = UPLOAD_FAULT


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document does not exist in its collection."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document {document_id} not found in collection {collection}",
            source_code="not-found",
            detail={"collection": collection, "documentId": document_id},
        )
        self.collection = collection
        self.document_id = document_id


class DocumentAlreadyExistsError(DocumentStoreError):
    """Raised when creating a document under an id that is already taken."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document {document_id} already exists in collection {collection}",
            source_code="already-exists",
            detail={"collection": collection, "documentId": document_id},
        )
        self.collection = collection
        self.document_id = document_id


class UserNotFoundError(IdentityProviderError):
    """Raised when no user matches a uid or email."""

    def __init__(self, identifier: str) -> None:
        super().__init__(
            f"No user record found for {identifier}",
            source_code="user-not-found",
        )
        self.identifier = identifier


class StoredFileNotFoundError(BackendError):
    """Raised when an object does not exist in the storage bucket."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"File not found: {path}",
            source_code="file-not-found",
            detail={"filePath": path},
        )
        self.path = path


class InvalidQueryError(BackendError):
    """Raised when a query filter cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Invalid where clause: {reason}", source_code="invalid-where-clause"
        )
        self.reason = reason


class BackendUnavailableError(BackendError):
    """Raised when a Firebase service is requested but not configured."""

    def __init__(self, service: str, reason: str) -> None:
        super().__init__(
            f"{service} is not available: {reason}",
            source_code="backend-unavailable",
        )
        self.service = service
        self.reason = reason


class ToolNotFoundError(BackendError):
    """Raised when an MCP client calls a tool that is not offered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found", source_code="tool-not-found")
        self.name = name
