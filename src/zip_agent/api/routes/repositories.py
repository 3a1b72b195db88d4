"""Upload and delete routes for project repositories."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from zip_agent.api.dependencies import get_settings, get_upload_service, require_api_key
from zip_agent.api.schemas.repositories import DeleteResponse, ErrorResponse, UploadResponse
from zip_agent.config import Settings
from zip_agent.errors import InvalidRequestError
from zip_agent.services.upload import UploadService

router = APIRouter(tags=["repositories"], dependencies=[Depends(require_api_key)])

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or invalid field"},
    401: {"model": ErrorResponse, "description": "Missing or wrong bearer secret"},
    500: {"model": ErrorResponse, "description": "Extraction, provisioning or publish failed"},
}


def _read_capped(file: UploadFile, limit: int) -> bytes:
    data = file.file.read(limit + 1)
    if len(data) > limit:
        raise InvalidRequestError(f"file exceeds {limit} bytes")
    return data


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Publish an archive",
    description="Extract a ZIP archive and force-push it to the project's repository.",
    responses=_ERRORS,
)
def upload_archive(
    service: Annotated[UploadService, Depends(get_upload_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    project_id: Annotated[str | None, Form(description="Project identifier")] = None,
    file: Annotated[UploadFile | None, File(description="ZIP archive")] = None,
) -> UploadResponse:
    if not project_id:
        raise InvalidRequestError("project_id required")
    if file is None:
        raise InvalidRequestError("file required")

    data = _read_capped(file, settings.max_upload_bytes)
    git_url = service.process_upload(project_id, data)
    return UploadResponse(success=True, git_url=git_url)


@router.api_route(
    "/delete",
    methods=["DELETE", "POST"],
    response_model=DeleteResponse,
    summary="Delete a project repository",
    description="Remove the project's repository. Succeeds when it is already absent.",
    responses=_ERRORS,
)
def delete_repository(
    service: Annotated[UploadService, Depends(get_upload_service)],
    project_id: Annotated[str | None, Query(description="Project identifier")] = None,
) -> DeleteResponse:
    if not project_id:
        raise InvalidRequestError("project_id required")
    service.delete_project(project_id)
    return DeleteResponse()
