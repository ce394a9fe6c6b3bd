"""
FastAPI router for Cloud Storage files.

Object paths may contain slashes, so they are captured with the `path`
converter. Upload limits are enforced by FileManagementService and
reported as upload faults.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import TypeAdapter

from gateway.application.backend.dtos import UploadedContent, UploadFilesCommand
from gateway.application.backend.manage_files import FileManagementService
from gateway.domain.backend.entities import StoredFile
from gateway.interfaces.backend.dependencies import get_file_service
from gateway.interfaces.backend.schemas import (
    ApiResponse,
    DownloadUrlData,
    ErrorResponse,
    FileListData,
    FileSchema,
    MessageData,
    UploadedFileSchema,
    UploadedFilesData,
)
from gateway.shared.security.rate_limiting import enforce_rate_limit

router = APIRouter(
    prefix="/storage",
    tags=["storage"],
    dependencies=[Depends(enforce_rate_limit)],
)

FILE_ERRORS = {404: {"model": ErrorResponse}}
UPLOAD_ERRORS = {400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}}

_metadata_adapter = TypeAdapter(dict[str, str])


def _file(stored: StoredFile, download_url: str | None = None) -> FileSchema:
    schema = FileSchema.model_validate(stored)
    schema.download_url = download_url
    return schema


def _parse_metadata(raw: str | None) -> dict[str, str]:
    """Decode the optional `metadata` form field (a JSON object of strings)."""
    if not raw:
        return {}
    return _metadata_adapter.validate_json(raw)


def _received(upload: UploadFile) -> UploadedContent:
    return UploadedContent(
        filename=upload.filename or "file",
        stream=upload.file,
        content_type=upload.content_type,
    )


@router.get(
    "/files",
    response_model=ApiResponse[FileListData],
    summary="List files",
)
def list_files(
    service: FileManagementService = Depends(get_file_service),
    directory: str = "",
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    page_token: Annotated[str | None, Query(alias="pageToken")] = None,
) -> ApiResponse[FileListData]:
    page = service.list_files(directory, limit, page_token)
    return ApiResponse(
        data=FileListData(
            files=[_file(f) for f in page.files],
            count=len(page.files),
            next_page_token=page.next_page_token,
        )
    )


@router.get(
    "/files/{file_path:path}/info",
    response_model=ApiResponse[FileSchema],
    responses=FILE_ERRORS,
    summary="Get file metadata",
    description="File metadata plus a download URL valid for 15 minutes.",
)
def file_info(
    file_path: str,
    service: FileManagementService = Depends(get_file_service),
) -> ApiResponse[FileSchema]:
    stored, url = service.file_info(file_path)
    return ApiResponse(data=_file(stored, url))


@router.get(
    "/files/{file_path:path}/download",
    response_model=ApiResponse[DownloadUrlData],
    responses=FILE_ERRORS,
    summary="Get a download URL",
)
def download_url(
    file_path: str,
    service: FileManagementService = Depends(get_file_service),
    expires: Annotated[int, Query(ge=1, le=7 * 24 * 3600)] = 3600,
) -> ApiResponse[DownloadUrlData]:
    url = service.download_url(file_path, expires)
    return ApiResponse(
        data=DownloadUrlData(
            download_url=url, file_path=file_path, expires_in=f"{expires} seconds"
        )
    )


@router.post(
    "/upload",
    response_model=ApiResponse[UploadedFileSchema],
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload a file",
    description=(
        "Multipart upload of one `file`. `path` overrides the generated "
        "object name; `metadata` is a JSON object stored with the file."
    ),
)
def upload_file(
    service: FileManagementService = Depends(get_file_service),
    file: UploadFile | None = File(default=None),
    path: str | None = Form(default=None),
    metadata: str | None = Form(default=None),
) -> ApiResponse[UploadedFileSchema]:
    command = UploadFilesCommand(
        files=(_received(file),) if file is not None else (),
        path=path,
        metadata=_parse_metadata(metadata),
    )
    [result] = service.upload(command)
    return ApiResponse(data=UploadedFileSchema.model_validate(result))


@router.post(
    "/upload-multiple",
    response_model=ApiResponse[UploadedFilesData],
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload several files",
)
def upload_files(
    service: FileManagementService = Depends(get_file_service),
    files: list[UploadFile] | None = File(default=None),
    directory: str = Form(default="uploads"),
    metadata: str | None = Form(default=None),
) -> ApiResponse[UploadedFilesData]:
    command = UploadFilesCommand(
        files=tuple(_received(f) for f in files or ()),
        directory=directory,
        metadata=_parse_metadata(metadata),
    )
    results = service.upload(command)
    return ApiResponse(
        data=UploadedFilesData(
            files=[UploadedFileSchema.model_validate(r) for r in results],
            count=len(results),
        )
    )


@router.delete(
    "/files/{file_path:path}",
    response_model=ApiResponse[MessageData],
    responses=FILE_ERRORS,
    summary="Delete a file",
)
def delete_file(
    file_path: str,
    service: FileManagementService = Depends(get_file_service),
) -> ApiResponse[MessageData]:
    service.delete(file_path)
    return ApiResponse(data=MessageData(message="File deleted successfully", id=file_path))
