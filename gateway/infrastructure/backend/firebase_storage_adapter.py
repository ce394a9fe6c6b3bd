"""
Adapter: Cloud Storage for Firebase.

Implements ObjectStoragePort with the default bucket of the Firebase
app (`firebase_admin.storage.bucket`). Missing objects raise
StoredFileNotFoundError; other google-api-core failures raise a
generic BackendError carrying the HTTP status as source code.
"""

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator

from firebase_admin import storage
from google.api_core import exceptions as gexc

from gateway.domain.backend.entities import FilePage, StoredFile
from gateway.domain.backend.errors import (
    BackendError,
    BackendUnavailableError,
    StoredFileNotFoundError,
)
from gateway.domain.backend.ports import ObjectStoragePort

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(operation: str, path: str | None = None) -> Iterator[None]:
    try:
        yield
    except gexc.NotFound as exc:
        raise StoredFileNotFoundError(path or "") from exc
    except gexc.GoogleAPICallError as exc:
        raise BackendError(
            f"Storage {operation} failed: {exc.message}",
            source_code=f"storage-{exc.code}" if exc.code else None,
        ) from exc


def _to_file(blob) -> StoredFile:
    return StoredFile(
        name=blob.name,
        size=int(blob.size or 0),
        content_type=blob.content_type,
        bucket=blob.bucket.name if blob.bucket else None,
        generation=str(blob.generation) if blob.generation else None,
        time_created=blob.time_created,
        updated=blob.updated,
        md5_hash=blob.md5_hash,
        etag=blob.etag,
        custom_metadata=dict(blob.metadata or {}),
    )


class FirebaseObjectStorage(ObjectStoragePort):
    """Concrete ObjectStoragePort backed by the app's default bucket."""

    def __init__(self, app, bucket_name: str | None = None) -> None:
        self._app = app
        self._bucket_name = bucket_name
        self._bucket = None

    @property
    def bucket(self):
        if self._bucket is None:
            try:
                self._bucket = storage.bucket(self._bucket_name, app=self._app)
            except ValueError as exc:
                raise BackendUnavailableError("Cloud Storage", str(exc)) from exc
        return self._bucket

    def list_files(
        self, prefix: str, limit: int, page_token: str | None = None
    ) -> FilePage:
        with _translate_errors("list"):
            iterator = self.bucket.list_blobs(
                prefix=prefix or None, max_results=limit, page_token=page_token
            )
            page = next(iterator.pages, None)
            blobs = list(page) if page is not None else []
        return FilePage(
            files=[_to_file(b) for b in blobs],
            next_page_token=iterator.next_page_token,
        )

    def get_file(self, path: str) -> StoredFile:
        with _translate_errors("get", path):
            blob = self.bucket.get_blob(path)
        if blob is None:
            raise StoredFileNotFoundError(path)
        return _to_file(blob)

    def upload(
        self,
        path: str,
        content: bytes,
        content_type: str | None,
        metadata: dict[str, str],
    ) -> StoredFile:
        blob = self.bucket.blob(path)
        blob.metadata = metadata
        with _translate_errors("upload", path):
            blob.upload_from_string(content, content_type=content_type)
        logger.info("File uploaded: %s (%d bytes)", path, len(content))
        return _to_file(blob)

    def delete_file(self, path: str) -> None:
        with _translate_errors("delete", path):
            self.bucket.blob(path).delete()
        logger.info("File deleted: %s", path)

    def signed_url(self, path: str, expires_in: int) -> str:
        with _translate_errors("sign", path):
            blob = self.bucket.get_blob(path)
            if blob is None:
                raise StoredFileNotFoundError(path)
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=expires_in),
                method="GET",
            )

    def bucket_name(self) -> str:
        return self.bucket.name
