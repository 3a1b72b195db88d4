"""Pydantic schemas for upload and delete responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Returned after an archive has been published."""

    success: bool = True
    git_url: str = Field(description="Public clone URL of the project repository")


class DeleteResponse(BaseModel):
    """Returned after a project repository has been removed (or was absent)."""

    success: str = "true"


class ErrorResponse(BaseModel):
    """Error envelope shared by every route."""

    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
