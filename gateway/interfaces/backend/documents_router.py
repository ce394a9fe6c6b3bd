"""
FastAPI router for Firestore documents.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

import json
from datetime import datetime, timezone
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status

from gateway.application.backend.commit_batch import CommitBatchUseCase
from gateway.application.backend.create_document import CreateDocumentUseCase
from gateway.application.backend.delete_document import DeleteDocumentUseCase
from gateway.application.backend.dtos import (
    CommitBatchCommand,
    CreateDocumentCommand,
    DeleteDocumentCommand,
    DocumentListResult,
    ReplaceDocumentCommand,
)
from gateway.application.backend.read_documents import (
    CollectionStatsUseCase,
    GetDocumentUseCase,
    ListCollectionsUseCase,
    QueryDocumentsUseCase,
)
from gateway.application.backend.replace_document import ReplaceDocumentUseCase
from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    Document,
    DocumentQuery,
    OrderBy,
    QueryCondition,
)
from gateway.domain.backend.errors import InvalidQueryError
from gateway.interfaces.backend.dependencies import (
    get_collection_stats_use_case,
    get_commit_batch_use_case,
    get_create_document_use_case,
    get_delete_document_use_case,
    get_get_document_use_case,
    get_list_collections_use_case,
    get_query_documents_use_case,
    get_replace_document_use_case,
)
from gateway.interfaces.backend.schemas import (
    MAX_QUERY_LIMIT,
    SUPPORTED_OPERATORS,
    ApiResponse,
    BatchOperationResultSchema,
    BatchRequest,
    BatchResultData,
    CollectionListData,
    CollectionSchema,
    CollectionStatSchema,
    CreateDocumentRequest,
    DocumentListData,
    DocumentSchema,
    ErrorResponse,
    QueryRequest,
    ReplaceDocumentRequest,
    StatsData,
)
from gateway.shared.security.rate_limiting import enforce_rate_limit

router = APIRouter(
    prefix="/firestore",
    tags=["firestore"],
    dependencies=[Depends(enforce_rate_limit)],
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def parse_where(raw: str | None) -> tuple[QueryCondition, ...]:
    """Parse a `where` query parameter: a JSON array of [field, op, value].

    Raises:
        InvalidQueryError: If the value is not such an array.
    """
    if not raw:
        return ()
    try:
        clauses = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidQueryError("not valid JSON") from exc
    if not isinstance(clauses, list):
        raise InvalidQueryError("expected an array of [field, operator, value]")

    conditions = []
    for clause in clauses:
        if not (
            isinstance(clause, list)
            and len(clause) == 3
            and isinstance(clause[0], str)
            and clause[0]
        ):
            raise InvalidQueryError(f"malformed condition {clause!r}")
        field, operator, value = clause
        if operator not in SUPPORTED_OPERATORS:
            raise InvalidQueryError(f"unsupported operator {operator!r}")
        conditions.append(QueryCondition(field=field, operator=operator, value=value))
    return tuple(conditions)


def _document(doc: Document, include_metadata: bool = True) -> DocumentSchema:
    return DocumentSchema(
        id=doc.id,
        collection=doc.collection,
        data=doc.data,
        create_time=doc.create_time if include_metadata else None,
        update_time=doc.update_time if include_metadata else None,
    )


def _document_list(
    result: DocumentListResult, include_metadata: bool
) -> ApiResponse[DocumentListData]:
    return ApiResponse(
        data=DocumentListData(
            collection=result.collection,
            documents=[_document(d, include_metadata) for d in result.documents],
            count=result.count,
            has_more=result.has_more,
        )
    )


@router.get(
    "/collections",
    response_model=ApiResponse[CollectionListData],
    summary="List collections",
    description="List every root collection of the Firestore database.",
)
def list_collections(
    use_case: ListCollectionsUseCase = Depends(get_list_collections_use_case),
) -> ApiResponse[CollectionListData]:
    collections = use_case.execute()
    return ApiResponse(
        data=CollectionListData(
            collections=[CollectionSchema(id=c.id, path=c.path) for c in collections],
            count=len(collections),
        )
    )


@router.get(
    "/collections/{collection}/documents",
    response_model=ApiResponse[DocumentListData],
    responses=ERROR_RESPONSES,
    summary="List documents",
    description=(
        "List documents of a collection with optional filtering, ordering and "
        "cursor pagination. `where` is a JSON array of [field, operator, value]."
    ),
)
def list_documents(
    collection: str,
    use_case: QueryDocumentsUseCase = Depends(get_query_documents_use_case),
    limit: Annotated[int, Query(ge=1, le=MAX_QUERY_LIMIT)] = 50,
    order_by: Annotated[str | None, Query(alias="orderBy")] = None,
    order_direction: Annotated[
        Literal["asc", "desc"], Query(alias="orderDirection")
    ] = "asc",
    start_after: Annotated[str | None, Query(alias="startAfter")] = None,
    where: str | None = None,
    include_metadata: Annotated[bool, Query(alias="includeMetadata")] = False,
) -> ApiResponse[DocumentListData]:
    """List documents in a collection."""
    query = DocumentQuery(
        collection=collection,
        conditions=parse_where(where),
        order_by=(OrderBy(order_by, order_direction),) if order_by else (),
        limit=limit,
        start_after=start_after,
    )
    return _document_list(use_case.execute(query), include_metadata)


@router.get(
    "/collections/{collection}/documents/{document_id}",
    response_model=ApiResponse[DocumentSchema],
    responses=ERROR_RESPONSES,
    summary="Get a document",
)
def get_document(
    collection: str,
    document_id: str,
    use_case: GetDocumentUseCase = Depends(get_get_document_use_case),
) -> ApiResponse[DocumentSchema]:
    return ApiResponse(data=_document(use_case.execute(collection, document_id)))


@router.post(
    "/collections/{collection}/documents",
    response_model=ApiResponse[DocumentSchema],
    status_code=status.HTTP_201_CREATED,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
    summary="Create a document",
    description="Create a document and notify subscribers of the collection.",
)
def create_document(
    collection: str,
    request: CreateDocumentRequest,
    use_case: CreateDocumentUseCase = Depends(get_create_document_use_case),
) -> ApiResponse[DocumentSchema]:
    """Create a document, generating an id when none is given."""
    command = CreateDocumentCommand(
        collection=collection, data=request.data, document_id=request.id
    )
    return ApiResponse(data=_document(use_case.execute(command)))


@router.put(
    "/collections/{collection}/documents/{document_id}",
    response_model=ApiResponse[DocumentSchema],
    responses=ERROR_RESPONSES,
    summary="Replace a document",
    description="Overwrite an existing document and notify subscribers.",
)
def replace_document(
    collection: str,
    document_id: str,
    request: ReplaceDocumentRequest,
    use_case: ReplaceDocumentUseCase = Depends(get_replace_document_use_case),
) -> ApiResponse[DocumentSchema]:
    command = ReplaceDocumentCommand(
        collection=collection, document_id=document_id, data=request.data
    )
    return ApiResponse(data=_document(use_case.execute(command)))


@router.delete(
    "/collections/{collection}/documents/{document_id}",
    response_model=ApiResponse[DocumentSchema],
    responses=ERROR_RESPONSES,
    summary="Delete a document",
    description="Delete a document, returning its last data, and notify subscribers.",
)
def delete_document(
    collection: str,
    document_id: str,
    use_case: DeleteDocumentUseCase = Depends(get_delete_document_use_case),
) -> ApiResponse[DocumentSchema]:
    command = DeleteDocumentCommand(collection=collection, document_id=document_id)
    return ApiResponse(data=_document(use_case.execute(command)))


@router.post(
    "/collections/{collection}/query",
    response_model=ApiResponse[DocumentListData],
    responses=ERROR_RESPONSES,
    summary="Query a collection",
    description="Run a structured query with conditions, ordering and a cursor.",
)
def query_documents(
    collection: str,
    request: QueryRequest,
    use_case: QueryDocumentsUseCase = Depends(get_query_documents_use_case),
) -> ApiResponse[DocumentListData]:
    query = DocumentQuery(
        collection=collection,
        conditions=tuple(
            QueryCondition(field=c.field, operator=c.operator, value=c.value)
            for c in request.conditions
        ),
        order_by=tuple(OrderBy(o.field, o.direction) for o in request.order_by),
        limit=request.limit,
        start_after=request.start_after,
    )
    return _document_list(use_case.execute(query), request.include_metadata)


@router.post(
    "/batch",
    response_model=ApiResponse[BatchResultData],
    responses=ERROR_RESPONSES,
    summary="Commit a batch",
    description=(
        "Apply set, update and delete operations in one atomic commit. "
        "Either every operation is applied or none is."
    ),
)
def commit_batch(
    request: BatchRequest,
    use_case: CommitBatchUseCase = Depends(get_commit_batch_use_case),
) -> ApiResponse[BatchResultData]:
    command = CommitBatchCommand(
        operations=tuple(
            BatchOperation(
                type=BatchOperationType(op.type),
                collection=op.collection,
                document_id=op.document_id,
                data=op.data,
            )
            for op in request.operations
        )
    )
    result = use_case.execute(command)
    return ApiResponse(
        data=BatchResultData(
            message=result.message,
            operations=[
                BatchOperationResultSchema(
                    type=r.type,
                    collection=r.collection,
                    document_id=r.document_id,
                    status=r.status,
                )
                for r in result.operations
            ],
            count=result.count,
        )
    )


@router.get(
    "/stats",
    response_model=ApiResponse[StatsData],
    summary="Collection statistics",
    description="Document counts for the first collections, capped per collection.",
)
def collection_stats(
    use_case: CollectionStatsUseCase = Depends(get_collection_stats_use_case),
) -> ApiResponse[StatsData]:
    stats = use_case.execute()
    return ApiResponse(
        data=StatsData(
            collections=[
                CollectionStatSchema(
                    id=s.id, document_count=s.document_count, error=s.error
                )
                for s in stats
            ],
            total_collections=len(stats),
            timestamp=datetime.now(timezone.utc),
        )
    )
