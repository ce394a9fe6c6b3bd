"""
Port interfaces (ABCs) for the backend bounded context.

Ports define the contracts the application requires from the managed
backend. Infrastructure adapters (Firebase SDK, in-memory) implement
these interfaces and raise `BackendError` subclasses on failure.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from gateway.domain.backend.entities import (
    BatchOperation,
    ChangeEvent,
    CollectionRef,
    DecodedToken,
    Document,
    DocumentQuery,
    FilePage,
    StoredFile,
    UserPage,
    UserRecord,
)


class DocumentStorePort(ABC):
    """Port for the managed document database."""

    @abstractmethod
    def list_collections(self) -> list[CollectionRef]:
        """Return every root collection."""
        raise NotImplementedError

    @abstractmethod
    def get(self, collection: str, document_id: str) -> Document | None:
        """Return a document, or None when it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def query(self, query: DocumentQuery) -> list[Document]:
        """Run a filtered, ordered, paginated query on one collection."""
        raise NotImplementedError

    @abstractmethod
    def create(
        self, collection: str, data: dict[str, Any], document_id: str | None = None
    ) -> Document:
        """Create a document and return it as stored.

        Raises:
            DocumentAlreadyExistsError: If `document_id` is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    def replace(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> Document:
        """Overwrite an existing document and return it as stored.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> Document:
        """Delete a document and return its last snapshot.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def commit_batch(self, operations: list[BatchOperation]) -> None:
        """Apply every operation atomically: all succeed or none do."""
        raise NotImplementedError

    @abstractmethod
    def count(self, collection: str, limit: int) -> int:
        """Count documents in a collection, stopping at `limit`."""
        raise NotImplementedError


class IdentityProviderPort(ABC):
    """Port for the managed user directory."""

    @abstractmethod
    def verify_id_token(self, id_token: str) -> DecodedToken:
        """Verify an ID token.

        Raises:
            TokenError: If the token is invalid, expired or revoked.
        """
        raise NotImplementedError

    @abstractmethod
    def create_user(self, **fields: Any) -> UserRecord:
        raise NotImplementedError

    @abstractmethod
    def get_user(self, uid: str) -> UserRecord:
        raise NotImplementedError

    @abstractmethod
    def get_user_by_email(self, email: str) -> UserRecord:
        raise NotImplementedError

    @abstractmethod
    def update_user(self, uid: str, **fields: Any) -> UserRecord:
        raise NotImplementedError

    @abstractmethod
    def delete_user(self, uid: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_users(self, limit: int, page_token: str | None = None) -> UserPage:
        raise NotImplementedError

    @abstractmethod
    def create_custom_token(
        self, uid: str, claims: dict[str, Any] | None = None
    ) -> str:
        raise NotImplementedError


class ObjectStoragePort(ABC):
    """Port for the managed object storage bucket."""

    @abstractmethod
    def list_files(
        self, prefix: str, limit: int, page_token: str | None = None
    ) -> FilePage:
        raise NotImplementedError

    @abstractmethod
    def get_file(self, path: str) -> StoredFile:
        """Return file metadata.

        Raises:
            StoredFileNotFoundError: If no object exists at `path`.
        """
        raise NotImplementedError

    @abstractmethod
    def upload(
        self,
        path: str,
        content: bytes,
        content_type: str | None,
        metadata: dict[str, str],
    ) -> StoredFile:
        raise NotImplementedError

    @abstractmethod
    def delete_file(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def signed_url(self, path: str, expires_in: int) -> str:
        """Return a time-limited read URL for an existing object."""
        raise NotImplementedError

    @abstractmethod
    def bucket_name(self) -> str:
        raise NotImplementedError


class ChangePublisherPort(ABC):
    """Port for broadcasting committed document mutations."""

    @abstractmethod
    def publish(self, event: ChangeEvent) -> int:
        """Hand `event` to every current subscriber of `event.topic`.

        Must not block on subscriber I/O and must never raise.

        Returns:
            Number of subscribers the event was handed to.
        """
        raise NotImplementedError
