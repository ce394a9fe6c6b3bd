"""
Domain entities for the backend bounded context.

Entities mirror the records the managed backend returns, reduced to
the fields the gateway exposes. They contain no framework imports and
no IO operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class OperationKind(Enum):
    """Kind of document mutation carried by a ChangeEvent."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"

    @property
    def event_name(self) -> str:
        """Name of the event as delivered on a subscriber's channel."""
        return f"document-{self.value}"


class BatchOperationType(Enum):
    """Write kinds accepted by a batch commit."""

    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Document:
    """A Firestore document snapshot."""

    id: str
    collection: str
    data: dict[str, Any]
    create_time: datetime | None = None
    update_time: datetime | None = None


@dataclass(frozen=True)
class CollectionRef:
    """A root collection."""

    id: str
    path: str


@dataclass(frozen=True)
class QueryCondition:
    """One `field op value` filter."""

    field: str
    operator: str
    value: Any


@dataclass(frozen=True)
class OrderBy:
    """One ordering clause."""

    field: str
    direction: str = "asc"


@dataclass(frozen=True)
class DocumentQuery:
    """Everything needed to run a filtered, ordered, paginated query."""

    collection: str
    conditions: tuple[QueryCondition, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int = 50
    start_after: str | None = None


@dataclass(frozen=True)
class BatchOperation:
    """A single write inside an atomic batch."""

    type: BatchOperationType
    collection: str
    document_id: str
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class UserRecord:
    """A Firebase Auth user."""

    uid: str
    email: str | None = None
    display_name: str | None = None
    phone_number: str | None = None
    photo_url: str | None = None
    disabled: bool = False
    email_verified: bool = False
    creation_time: datetime | None = None
    last_sign_in_time: datetime | None = None
    custom_claims: dict[str, Any] | None = None
    provider_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class UserPage:
    """One page of users plus the token for the next page."""

    users: list[UserRecord]
    next_page_token: str | None = None


@dataclass(frozen=True)
class DecodedToken:
    """Claims of a verified ID token."""

    uid: str
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    picture: str | None = None
    provider: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredFile:
    """Metadata of an object in the storage bucket."""

    name: str
    size: int
    content_type: str | None = None
    bucket: str | None = None
    generation: str | None = None
    time_created: datetime | None = None
    updated: datetime | None = None
    md5_hash: str | None = None
    etag: str | None = None
    custom_metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FilePage:
    """One page of stored files."""

    files: list[StoredFile]
    next_page_token: str | None = None


@dataclass(frozen=True)
class ChangeEvent:
    """Notification describing one committed document mutation.

    Attributes:
        topic: Collection name the event is broadcast on.
        operation_kind: created, updated or deleted.
        resource_id: Id of the mutated document.
        payload: Resulting document body, or the deleted body.
    """

    topic: str
    operation_kind: OperationKind
    resource_id: str
    payload: dict[str, Any]
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "operationKind": self.operation_kind.value,
            "resourceId": self.resource_id,
            "payload": self.payload,
        }
