"""
Backend adapters.

Firebase implementations of the document store, identity provider and
object storage ports, plus in-memory implementations with the same
contracts for local development and tests.
"""

from gateway.core.config import Settings
from gateway.domain.backend.ports import (
    DocumentStorePort,
    IdentityProviderPort,
    ObjectStoragePort,
)
from gateway.infrastructure.backend.memory import (
    InMemoryDocumentStore,
    InMemoryIdentityProvider,
    InMemoryObjectStorage,
)


class Backends:
    """The three backend services, built lazily from settings.

    Firebase is initialized on the first request that needs it, so a
    misconfigured service only fails the routes that use it.
    """

    def __init__(
        self,
        config: Settings,
        documents: DocumentStorePort | None = None,
        identity: IdentityProviderPort | None = None,
        storage: ObjectStoragePort | None = None,
    ) -> None:
        self._config = config
        self._documents = documents
        self._identity = identity
        self._storage = storage
        if config.use_in_memory_backends:
            self._documents = self._documents or InMemoryDocumentStore()
            self._identity = self._identity or InMemoryIdentityProvider()
            self._storage = self._storage or InMemoryObjectStorage(
                bucket=config.firebase_storage_bucket or "in-memory-bucket"
            )

    @classmethod
    def in_memory(cls, config: Settings | None = None) -> "Backends":
        return cls(
            config or Settings(use_in_memory_backends=True),
            documents=InMemoryDocumentStore(),
            identity=InMemoryIdentityProvider(),
            storage=InMemoryObjectStorage(),
        )

    @property
    def documents(self) -> DocumentStorePort:
        if self._documents is None:
            from gateway.infrastructure.backend.firestore_adapter import (
                FirestoreDocumentStore,
            )

            self._documents = FirestoreDocumentStore(self._firebase_app())
        return self._documents

    @property
    def identity(self) -> IdentityProviderPort:
        if self._identity is None:
            from gateway.infrastructure.backend.firebase_auth_adapter import (
                FirebaseIdentityProvider,
            )

            self._identity = FirebaseIdentityProvider(self._firebase_app())
        return self._identity

    @property
    def storage(self) -> ObjectStoragePort:
        if self._storage is None:
            from gateway.infrastructure.backend.firebase_storage_adapter import (
                FirebaseObjectStorage,
            )

            self._storage = FirebaseObjectStorage(
                self._firebase_app(), self._config.firebase_storage_bucket
            )
        return self._storage

    def _firebase_app(self):
        from gateway.infrastructure.backend.firebase_app import initialize_firebase

        return initialize_firebase(self._config)
