"""
FastAPI router for the MCP tool bridge.

`GET /mcp/info` lists the tools with a JSON schema of their arguments;
`POST /mcp/tools/{tool_name}` runs one with `{"arguments": {...}}`.
Arguments are validated per tool, and failures go through the shared
error handlers like any other request.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from fastapi import APIRouter, Depends
from pydantic import Field

from gateway.application.backend.mcp_tools import McpToolbox
from gateway.core.config import Settings
from gateway.domain.backend.entities import DocumentQuery, OrderBy, QueryCondition
from gateway.domain.backend.errors import ToolNotFoundError
from gateway.interfaces.backend.dependencies import get_mcp_toolbox, get_settings
from gateway.interfaces.backend.schemas import (
    MAX_QUERY_LIMIT,
    ApiResponse,
    CamelModel,
    CollectionListData,
    CollectionSchema,
    DocumentListData,
    DocumentSchema,
    ErrorResponse,
    FileListData,
    FileSchema,
    Operator,
    UserListData,
    UserSchema,
)
from gateway.shared.security.rate_limiting import enforce_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/mcp",
    tags=["mcp"],
    dependencies=[Depends(enforce_rate_limit)],
)

MCP_PROTOCOL_VERSION = "0.5.0"


# ------------------------------------------------------------------
# Tool arguments
# ------------------------------------------------------------------


class NoArguments(CamelModel):
    pass


class CollectionArguments(CamelModel):
    collection: str = Field(..., min_length=1, description="Collection name")


class DocumentArguments(CollectionArguments):
    id: str = Field(..., min_length=1, description="Document ID")


class AddDocumentArguments(CollectionArguments):
    data: dict[str, Any] = Field(..., description="Document data")
    id: str | None = Field(default=None, min_length=1, description="Optional document ID")


class UpdateDocumentArguments(DocumentArguments):
    data: dict[str, Any] = Field(..., description="Fields to merge")


class QueryCollectionArguments(CollectionArguments):
    conditions: list[tuple[str, Operator, Any]] = Field(
        default_factory=list, description="[field, operator, value] triples"
    )
    order_by: list[tuple[str, Literal["asc", "desc"]]] = Field(
        default_factory=list, description="[field, direction] pairs"
    )
    limit: int = Field(default=50, ge=1, le=MAX_QUERY_LIMIT)


class ListFilesArguments(CamelModel):
    directory: str = Field(default="", description="Directory path")
    limit: int = Field(default=100, ge=1, le=1000)


class FileInfoArguments(CamelModel):
    file_path: str = Field(..., min_length=1, description="File path")


class GetUserArguments(CamelModel):
    identifier: str = Field(..., min_length=1, description="User ID or email")


class ListUsersArguments(CamelModel):
    max_results: int = Field(default=100, ge=1, le=1000)
    page_token: str | None = None


class ToolCallRequest(CamelModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResultData(CamelModel):
    tool: str
    result: dict[str, Any]
    timestamp: datetime


# ------------------------------------------------------------------
# Tool registry
# ------------------------------------------------------------------


def _dump(model: CamelModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _document(doc) -> dict[str, Any]:
    return _dump(DocumentSchema.model_validate(doc))


def _list_collections(box: McpToolbox, _: NoArguments) -> dict[str, Any]:
    collections = box.list_collections()
    return _dump(
        CollectionListData(
            collections=[CollectionSchema.model_validate(c) for c in collections],
            count=len(collections),
        )
    )


def _query_collection(box: McpToolbox, args: QueryCollectionArguments) -> dict[str, Any]:
    result = box.query_collection(
        DocumentQuery(
            collection=args.collection,
            conditions=tuple(QueryCondition(f, op, v) for f, op, v in args.conditions),
            order_by=tuple(OrderBy(f, d) for f, d in args.order_by),
            limit=args.limit,
        )
    )
    return _dump(
        DocumentListData(
            collection=result.collection,
            documents=[DocumentSchema.model_validate(d) for d in result.documents],
            count=result.count,
            has_more=result.has_more,
        )
    )


def _list_files(box: McpToolbox, args: ListFilesArguments) -> dict[str, Any]:
    page = box.list_files(args.directory, args.limit)
    return _dump(
        FileListData(
            files=[FileSchema.model_validate(f) for f in page.files],
            count=len(page.files),
            next_page_token=page.next_page_token,
        )
    )


def _list_users(box: McpToolbox, args: ListUsersArguments) -> dict[str, Any]:
    page = box.list_users(args.max_results, args.page_token)
    return _dump(
        UserListData(
            users=[UserSchema.model_validate(u) for u in page.users],
            count=len(page.users),
            next_page_token=page.next_page_token,
        )
    )


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    arguments: type[CamelModel]
    run: Callable[[McpToolbox, Any], dict[str, Any]]

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "schema": self.arguments.model_json_schema(by_alias=True),
        }


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            "firestore_list_collections",
            "List all Firestore collections",
            NoArguments,
            _list_collections,
        ),
        Tool(
            "firestore_add_document",
            "Add a document to a Firestore collection",
            AddDocumentArguments,
            lambda box, a: _document(box.add_document(a.collection, a.data, a.id)),
        ),
        Tool(
            "firestore_get_document",
            "Get a document from Firestore",
            DocumentArguments,
            lambda box, a: _document(box.get_document(a.collection, a.id)),
        ),
        Tool(
            "firestore_update_document",
            "Merge fields into a Firestore document",
            UpdateDocumentArguments,
            lambda box, a: _document(box.update_document(a.collection, a.id, a.data)),
        ),
        Tool(
            "firestore_delete_document",
            "Delete a document from Firestore",
            DocumentArguments,
            lambda box, a: _document(box.delete_document(a.collection, a.id)),
        ),
        Tool(
            "firestore_query_collection",
            "Query documents in a collection",
            QueryCollectionArguments,
            _query_collection,
        ),
        Tool(
            "storage_list_files",
            "List files in Firebase Storage",
            ListFilesArguments,
            _list_files,
        ),
        Tool(
            "storage_get_file_info",
            "Get file information from Firebase Storage",
            FileInfoArguments,
            lambda box, a: _dump(FileSchema.model_validate(box.get_file_info(a.file_path))),
        ),
        Tool(
            "auth_get_user",
            "Get a user by uid or email",
            GetUserArguments,
            lambda box, a: _dump(UserSchema.model_validate(box.get_user(a.identifier))),
        ),
        Tool(
            "auth_list_users",
            "List users",
            ListUsersArguments,
            _list_users,
        ),
    )
}


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@router.get(
    "/info",
    response_model=ApiResponse[dict],
    summary="MCP server information",
    description="Protocol version and the tools this gateway offers.",
)
def mcp_info(config: Settings = Depends(get_settings)) -> ApiResponse[dict]:
    return ApiResponse(
        data={
            "name": f"{config.project_name} MCP bridge",
            "version": config.version,
            "protocol": {"version": MCP_PROTOCOL_VERSION, "transport": "http"},
            "capabilities": {"tools": [tool.describe() for tool in TOOLS.values()]},
            "endpoints": {"tools": f"{config.api_prefix}{router.prefix}/tools"},
        }
    )


@router.post(
    "/tools/{tool_name}",
    response_model=ApiResponse[ToolResultData],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Run an MCP tool",
)
def run_tool(
    tool_name: str,
    request: ToolCallRequest | None = None,
    toolbox: McpToolbox = Depends(get_mcp_toolbox),
) -> ApiResponse[ToolResultData]:
    tool = TOOLS.get(tool_name)
    if tool is None:
        raise ToolNotFoundError(tool_name)

    raw = request.arguments if request is not None else {}
    arguments = tool.arguments.model_validate(raw)
    logger.info("Executing MCP tool: %s", tool_name)
    return ApiResponse(
        data=ToolResultData(
            tool=tool_name,
            result=tool.run(toolbox, arguments),
            timestamp=datetime.now(timezone.utc),
        )
    )
