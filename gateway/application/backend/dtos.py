"""
Data Transfer Objects for the backend application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO

from gateway.domain.backend.entities import BatchOperation, Document


@dataclass(frozen=True)
class CreateDocumentCommand:
    """Input DTO for creating a document.

    Attributes:
        collection: Target collection.
        data: Document body supplied by the caller.
        document_id: Optional explicit id; generated when omitted.
    """

    collection: str
    data: dict[str, Any]
    document_id: str | None = None


@dataclass(frozen=True)
class ReplaceDocumentCommand:
    """Input DTO for overwriting an existing document."""

    collection: str
    document_id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class DeleteDocumentCommand:
    collection: str
    document_id: str


@dataclass(frozen=True)
class CommitBatchCommand:
    """Input DTO for an atomic batch of writes."""

    operations: tuple[BatchOperation, ...]


@dataclass(frozen=True)
class BatchOperationResult:
    """Outcome of one operation inside a committed batch."""

    type: str
    collection: str
    document_id: str
    status: str


@dataclass(frozen=True)
class CommitBatchResult:
    operations: list[BatchOperationResult]
    count: int
    message: str = "Batch operation completed successfully"


@dataclass(frozen=True)
class DocumentListResult:
    """Output DTO for a page of documents.

    Attributes:
        documents: Documents in query order.
        has_more: True when the page is full, so another page may exist.
    """

    collection: str
    documents: list[Document]
    count: int
    has_more: bool


@dataclass(frozen=True)
class CollectionStat:
    id: str
    document_count: int | None
    error: str | None = None


@dataclass(frozen=True)
class UploadedContent:
    """A file received from the caller, not yet read.

    Attributes:
        filename: Name reported by the client.
        stream: Binary file object positioned at the start of the content.
        content_type: MIME type reported by the client.
    """

    filename: str
    stream: BinaryIO
    content_type: str | None = None


@dataclass(frozen=True)
class UploadFilesCommand:
    """Input DTO for single and multiple uploads.

    Attributes:
        files: Received files.
        path: Explicit object path (single upload only).
        directory: Directory the generated names are placed in.
        metadata: Extra custom metadata stored with each object.
    """

    files: tuple[UploadedContent, ...]
    path: str | None = None
    directory: str = "uploads"
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadedFileResult:
    name: str
    original_name: str
    size: int
    content_type: str | None
    bucket: str | None
    download_url: str
    time_created: Any = None
    md5_hash: str | None = None


@dataclass(frozen=True)
class ServiceStatus:
    """Probe result of one backend service."""

    status: str
    error: str | None = None


@dataclass(frozen=True)
class ConnectionReport:
    services: dict[str, ServiceStatus]

    @property
    def all_connected(self) -> bool:
        return all(s.status == "connected" for s in self.services.values())
