"""
Pydantic schemas for the gateway API.

Request schemas enforce input validation; response schemas define the
JSON contract. Every model serializes with camelCase aliases and also
accepts snake_case names on input.
No business logic belongs here.
"""

from datetime import datetime
from typing import Any, Generic, Literal, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

Operator = Literal[
    "<",
    "<=",
    "==",
    "!=",
    ">=",
    ">",
    "array-contains",
    "array-contains-any",
    "in",
    "not-in",
]
SUPPORTED_OPERATORS = get_args(Operator)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"
MAX_QUERY_LIMIT = 1000
MAX_BATCH_OPERATIONS = 500


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, attribute access from dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: `{"success": true, "data": ...}`."""

    success: bool = True
    data: T


class ErrorBody(CamelModel):
    message: str
    code: str
    status_code: int
    timestamp: str
    path: str
    method: str
    details: Any = None


class ErrorResponse(CamelModel):
    """Failure envelope written by the shared error handlers."""

    success: bool = False
    error: ErrorBody


# ------------------------------------------------------------------
# Firestore
# ------------------------------------------------------------------


class CreateDocumentRequest(CamelModel):
    """Request schema for creating a document.

    Attributes:
        data: Document body.
        id: Optional explicit document id.
    """

    data: dict[str, Any]
    id: str | None = Field(default=None, min_length=1, max_length=1500)


class ReplaceDocumentRequest(CamelModel):
    data: dict[str, Any]


class QueryConditionSchema(CamelModel):
    field: str = Field(..., min_length=1)
    operator: Operator
    value: Any = None


class OrderBySchema(CamelModel):
    field: str = Field(..., min_length=1)
    direction: Literal["asc", "desc"] = "asc"


class QueryRequest(CamelModel):
    """Request schema for a structured collection query."""

    conditions: list[QueryConditionSchema] = Field(default_factory=list)
    order_by: list[OrderBySchema] = Field(default_factory=list)
    limit: int = Field(default=50, ge=1, le=MAX_QUERY_LIMIT)
    start_after: str | None = None
    include_metadata: bool = False


class BatchOperationSchema(CamelModel):
    """One write inside a batch. `set` and `update` require `data`."""

    type: Literal["set", "update", "delete"]
    collection: str = Field(..., min_length=1)
    document_id: str = Field(..., min_length=1)
    data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _data_required_for_writes(self) -> "BatchOperationSchema":
        if self.type != "delete" and self.data is None:
            raise ValueError(f"Data is required for {self.type} operation")
        return self


class BatchRequest(CamelModel):
    operations: list[BatchOperationSchema] = Field(
        ..., min_length=1, max_length=MAX_BATCH_OPERATIONS
    )


class DocumentSchema(CamelModel):
    id: str
    collection: str
    data: dict[str, Any]
    create_time: datetime | None = None
    update_time: datetime | None = None


class CollectionSchema(CamelModel):
    id: str
    path: str


class CollectionListData(CamelModel):
    collections: list[CollectionSchema]
    count: int


class DocumentListData(CamelModel):
    collection: str
    documents: list[DocumentSchema]
    count: int
    has_more: bool


class BatchOperationResultSchema(CamelModel):
    type: str
    collection: str
    document_id: str
    status: str


class BatchResultData(CamelModel):
    message: str
    operations: list[BatchOperationResultSchema]
    count: int


class CollectionStatSchema(CamelModel):
    id: str
    document_count: int | None
    error: str | None = None


class StatsData(CamelModel):
    collections: list[CollectionStatSchema]
    total_collections: int
    timestamp: datetime


# ------------------------------------------------------------------
# Auth
# ------------------------------------------------------------------


class VerifyTokenRequest(CamelModel):
    id_token: str = Field(..., min_length=1)


class CreateUserRequest(CamelModel):
    """Request schema for creating a user.

    Attributes:
        email: Valid email address.
        password: At least 6 characters.
        phone_number: E.164 formatted number.
    """

    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    display_name: str | None = None
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    photo_url: str | None = None
    disabled: bool = False
    email_verified: bool = False


class UpdateUserRequest(CamelModel):
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=6)
    display_name: str | None = None
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    photo_url: str | None = None
    disabled: bool | None = None
    email_verified: bool | None = None


class CustomClaimsRequest(CamelModel):
    claims: dict[str, Any]


class GenerateTokenRequest(CamelModel):
    uid: str = Field(..., min_length=1, max_length=128)
    claims: dict[str, Any] | None = None


class UserSchema(CamelModel):
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
    provider_ids: list[str] = Field(default_factory=list)


class UserListData(CamelModel):
    users: list[UserSchema]
    count: int
    next_page_token: str | None = None


class DecodedTokenSchema(CamelModel):
    uid: str
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    picture: str | None = None
    provider: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)


class CustomTokenData(CamelModel):
    custom_token: str
    uid: str


class MessageData(CamelModel):
    message: str
    id: str | None = None


# ------------------------------------------------------------------
# Storage
# ------------------------------------------------------------------


class FileSchema(CamelModel):
    name: str
    size: int
    content_type: str | None = None
    bucket: str | None = None
    generation: str | None = None
    time_created: datetime | None = None
    updated: datetime | None = None
    md5_hash: str | None = None
    etag: str | None = None
    custom_metadata: dict[str, str] = Field(default_factory=dict)
    download_url: str | None = None


class FileListData(CamelModel):
    files: list[FileSchema]
    count: int
    next_page_token: str | None = None


class UploadedFileSchema(CamelModel):
    name: str
    original_name: str
    size: int
    content_type: str | None = None
    bucket: str | None = None
    download_url: str
    time_created: datetime | None = None
    md5_hash: str | None = None


class UploadedFilesData(CamelModel):
    files: list[UploadedFileSchema]
    count: int


class DownloadUrlData(CamelModel):
    download_url: str
    file_path: str
    expires_in: str


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------


class HealthResponse(CamelModel):
    """Response schema for the liveness endpoint."""

    status: str
    version: str
    environment: str
    timestamp: datetime
