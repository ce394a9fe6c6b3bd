"""
Tests for the Firebase adapters' SDK error translation.

The SDK clients are replaced with mocks; no network access.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import auth
from google.api_core import exceptions as gexc

from gateway.core.config import Settings
from gateway.domain.backend.entities import BatchOperation, BatchOperationType
from gateway.domain.backend.errors import (
    BackendError,
    BackendUnavailableError,
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
    IdentityProviderError,
    StoredFileNotFoundError,
    TokenError,
    UserNotFoundError,
)
from gateway.infrastructure.backend.firebase_app import initialize_firebase
from gateway.infrastructure.backend.firebase_auth_adapter import FirebaseIdentityProvider
from gateway.infrastructure.backend.firebase_storage_adapter import FirebaseObjectStorage
from gateway.infrastructure.backend.firestore_adapter import FirestoreDocumentStore
from gateway.shared.errors.faults import capture
from gateway.shared.errors.normalizer import normalize

AUTH = "gateway.infrastructure.backend.firebase_auth_adapter.auth"


def _firestore(client: MagicMock) -> FirestoreDocumentStore:
    store = FirestoreDocumentStore(app=MagicMock())
    store._client = client
    return store


# =====================================================================
# Firestore
# =====================================================================

class TestFirestoreDocumentStore:
    def test_unavailable_is_translated(self) -> None:
        client = MagicMock()
        client.collections.side_effect = gexc.ServiceUnavailable("backend down")

        with pytest.raises(DocumentStoreError) as info:
            _firestore(client).list_collections()

        assert info.value.source_code == "unavailable"
        assert normalize(capture(info.value)).http_status == 503

    def test_permission_denied_is_translated(self) -> None:
        client = MagicMock()
        client.collection.return_value.document.return_value.get.side_effect = (
            gexc.PermissionDenied("rules")
        )

        with pytest.raises(DocumentStoreError) as info:
            _firestore(client).get("users", "u1")

        assert normalize(capture(info.value)).code == "permission-denied"

    def test_missing_document_is_none(self) -> None:
        client = MagicMock()
        client.collection.return_value.document.return_value.get.return_value = (
            SimpleNamespace(exists=False)
        )
        assert _firestore(client).get("users", "u1") is None

    def test_create_conflict(self) -> None:
        client = MagicMock()
        doc_ref = client.collection.return_value.document.return_value
        doc_ref.id = "u1"
        doc_ref.create.side_effect = gexc.Conflict("exists")

        with pytest.raises(DocumentAlreadyExistsError):
            _firestore(client).create("users", {"name": "Ada"}, "u1")

    def test_delete_missing(self) -> None:
        client = MagicMock()
        client.collection.return_value.document.return_value.get.return_value = (
            SimpleNamespace(exists=False)
        )

        with pytest.raises(DocumentNotFoundError):
            _firestore(client).delete("users", "u1")

    def test_batch_is_committed_once(self) -> None:
        client = MagicMock()
        _firestore(client).commit_batch(
            [
                BatchOperation(BatchOperationType.SET, "users", "a", {"n": 1}),
                BatchOperation(BatchOperationType.UPDATE, "users", "b", {"n": 2}),
                BatchOperation(BatchOperationType.DELETE, "users", "c"),
            ]
        )

        batch = client.batch.return_value
        batch.set.assert_called_once()
        batch.update.assert_called_once()
        batch.delete.assert_called_once()
        batch.commit.assert_called_once_with()

    def test_batch_commit_failure(self) -> None:
        client = MagicMock()
        client.batch.return_value.commit.side_effect = gexc.NotFound("no doc")

        with pytest.raises(DocumentStoreError) as info:
            _firestore(client).commit_batch(
                [BatchOperation(BatchOperationType.UPDATE, "users", "x", {"n": 1})]
            )

        assert normalize(capture(info.value)).code == "document-not-found"


# =====================================================================
# Firebase Auth
# =====================================================================

class TestFirebaseIdentityProvider:
    def test_user_not_found(self) -> None:
        with patch(f"{AUTH}.get_user", side_effect=auth.UserNotFoundError("none")):
            with pytest.raises(UserNotFoundError):
                FirebaseIdentityProvider(app=None).get_user("u1")

    def test_email_already_exists(self) -> None:
        error = auth.EmailAlreadyExistsError("taken", None, None)
        with patch(f"{AUTH}.create_user", side_effect=error):
            with pytest.raises(IdentityProviderError) as info:
                FirebaseIdentityProvider(app=None).create_user(
                    email="a@example.com", password="secret1"
                )

        assert info.value.source_code == "email-already-exists"
        assert normalize(capture(info.value)).http_status == 409

    def test_client_side_argument_error(self) -> None:
        error = ValueError('Invalid password string. Password must be at least 6 characters.')
        with patch(f"{AUTH}.create_user", side_effect=error):
            with pytest.raises(IdentityProviderError) as info:
                FirebaseIdentityProvider(app=None).create_user(password="x")

        assert normalize(capture(info.value)).code == "weak-password"

    def test_only_sdk_fields_are_forwarded(self) -> None:
        record = MagicMock(uid="u1", provider_data=[], user_metadata=None)
        with patch(f"{AUTH}.create_user", return_value=record) as create:
            FirebaseIdentityProvider(app=None).create_user(
                email="a@example.com", display_name=None, unknown="x"
            )

        assert create.call_args.kwargs == {"app": None, "email": "a@example.com"}

    def test_expired_token(self) -> None:
        error = auth.ExpiredIdTokenError("expired", None)
        with patch(f"{AUTH}.verify_id_token", side_effect=error):
            with pytest.raises(TokenError) as info:
                FirebaseIdentityProvider(app=None).verify_id_token("t")

        assert normalize(capture(info.value)).message == "Token expired"

    def test_malformed_token(self) -> None:
        with patch(f"{AUTH}.verify_id_token", side_effect=ValueError("bad")):
            with pytest.raises(TokenError) as info:
                FirebaseIdentityProvider(app=None).verify_id_token("t")

        assert info.value.source_code == "invalid"

    def test_verified_claims(self) -> None:
        claims = {
            "uid": "u1",
            "email": "a@example.com",
            "firebase": {"sign_in_provider": "password", "identities": {}},
        }
        with patch(f"{AUTH}.verify_id_token", return_value=claims):
            decoded = FirebaseIdentityProvider(app=None).verify_id_token("t")

        assert decoded.uid == "u1"
        assert decoded.provider == "password"


# =====================================================================
# Cloud Storage
# =====================================================================

class TestFirebaseObjectStorage:
    def _storage(self, bucket: MagicMock) -> FirebaseObjectStorage:
        storage = FirebaseObjectStorage(app=None, bucket_name="b")
        storage._bucket = bucket
        return storage

    def test_missing_blob(self) -> None:
        bucket = MagicMock()
        bucket.get_blob.return_value = None

        with pytest.raises(StoredFileNotFoundError):
            self._storage(bucket).get_file("a.txt")

    def test_not_found_on_delete(self) -> None:
        bucket = MagicMock()
        bucket.blob.return_value.delete.side_effect = gexc.NotFound("gone")

        with pytest.raises(StoredFileNotFoundError) as info:
            self._storage(bucket).delete_file("a.txt")

        assert normalize(capture(info.value)).code == "file-not-found"

    def test_other_failures_keep_status(self) -> None:
        bucket = MagicMock()
        bucket.list_blobs.side_effect = gexc.Forbidden("no access")

        with pytest.raises(BackendError) as info:
            self._storage(bucket).list_files("", 10)

        assert info.value.source_code == "storage-403"

    def test_missing_bucket_configuration(self) -> None:
        storage = FirebaseObjectStorage(app=None)
        with patch(
            "gateway.infrastructure.backend.firebase_storage_adapter.storage.bucket",
            side_effect=ValueError("Storage bucket name not specified."),
        ):
            with pytest.raises(BackendUnavailableError):
                storage.bucket_name()


# =====================================================================
# Firebase app bootstrap
# =====================================================================

class TestInitializeFirebase:
    def test_missing_credentials(self) -> None:
        config = Settings(_env_file=None)
        with patch(
            "gateway.infrastructure.backend.firebase_app.firebase_admin.get_app",
            side_effect=ValueError("no app"),
        ):
            with pytest.raises(BackendUnavailableError) as info:
                initialize_firebase(config)

        assert "FIREBASE_PROJECT_ID" in info.value.message
        assert normalize(capture(info.value)).http_status == 503
