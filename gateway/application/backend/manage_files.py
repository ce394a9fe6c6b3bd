"""
Storage use cases.

Listing, inspecting, uploading, signing and deleting objects in the
configured bucket. Upload limits are enforced here, before any byte is
sent to the backend: the file count is checked before any content is
read, and no file is read past `max_file_size + 1` bytes.

Input:  UploadFilesCommand for uploads; paths for everything else.
Failure cases:
    UploadError(no-file)      no file in the request
    UploadError(count-limit)  more files than `max_files`
    UploadError(size-limit)   a file larger than `max_file_size`
    StoredFileNotFoundError   the object does not exist
"""

import logging
import posixpath
import time
from datetime import datetime, timezone

from gateway.application.backend.dtos import (
    UploadedContent,
    UploadedFileResult,
    UploadFilesCommand,
)
from gateway.domain.backend.entities import FilePage, StoredFile
from gateway.domain.backend.errors import UploadError
from gateway.domain.backend.ports import ObjectStoragePort

logger = logging.getLogger(__name__)

INFO_URL_TTL_SECONDS = 15 * 60


class FileManagementService:
    """Operations on the storage bucket.

    Args:
        storage: Object storage port.
        max_file_size: Largest accepted file, in bytes.
        max_files: Most files accepted by one upload request.
        upload_url_ttl: Lifetime of the download URL returned after upload.
    """

    def __init__(
        self,
        storage: ObjectStoragePort,
        max_file_size: int,
        max_files: int,
        upload_url_ttl: int,
    ) -> None:
        self._storage = storage
        self._max_file_size = max_file_size
        self._max_files = max_files
        self._upload_url_ttl = upload_url_ttl

    def list_files(
        self, directory: str, limit: int, page_token: str | None = None
    ) -> FilePage:
        return self._storage.list_files(directory, limit, page_token)

    def file_info(self, path: str) -> tuple[StoredFile, str]:
        """Return the file's metadata and a short-lived download URL."""
        stored = self._storage.get_file(path)
        url = self._storage.signed_url(path, INFO_URL_TTL_SECONDS)
        return stored, url

    def download_url(self, path: str, expires_in: int) -> str:
        url = self._storage.signed_url(path, expires_in)
        logger.info("Download URL generated for %s (%ds)", path, expires_in)
        return url

    def delete(self, path: str) -> None:
        self._storage.delete_file(path)
        logger.info("File deleted: %s", path)

    def upload(self, command: UploadFilesCommand) -> list[UploadedFileResult]:
        self._check_count(command.files)
        contents = [self._read_bounded(upload) for upload in command.files]

        results = []
        for upload, content in zip(command.files, contents):
            if command.path and len(command.files) == 1:
                path = command.path
            else:
                path = self._generated_path(command.directory, upload.filename)
            metadata = {
                "originalName": upload.filename,
                "uploadedAt": datetime.now(timezone.utc).isoformat(),
                **command.metadata,
            }
            stored = self._storage.upload(
                path, content, upload.content_type, metadata
            )
            url = self._storage.signed_url(path, self._upload_url_ttl)
            logger.info("File uploaded: %s (%d bytes)", path, stored.size)
            results.append(
                UploadedFileResult(
                    name=stored.name,
                    original_name=upload.filename,
                    size=stored.size,
                    content_type=stored.content_type,
                    bucket=stored.bucket,
                    download_url=url,
                    time_created=stored.time_created,
                    md5_hash=stored.md5_hash,
                )
            )
        return results

    def _check_count(self, files: tuple[UploadedContent, ...]) -> None:
        if not files:
            raise UploadError("No file uploaded", source_code="no-file")
        if len(files) > self._max_files:
            raise UploadError(
                f"Too many files: {len(files)} (max {self._max_files})",
                source_code="count-limit",
                detail={"maxFiles": self._max_files},
            )

    def _read_bounded(self, upload: UploadedContent) -> bytes:
        # One byte past the limit is enough to tell an oversized file.
        content = upload.stream.read(self._max_file_size + 1)
        if len(content) > self._max_file_size:
            raise UploadError(
                f"File {upload.filename} exceeds {self._max_file_size} bytes",
                source_code="size-limit",
                detail={"maxFileSize": self._max_file_size},
            )
        return content

    @staticmethod
    def _generated_path(directory: str, filename: str) -> str:
        name = posixpath.basename(filename) or "file"
        stamp = int(time.time() * 1000)
        return posixpath.join(directory.strip("/") or "uploads", f"{stamp}_{name}")
