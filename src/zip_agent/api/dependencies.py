"""Shared dependencies for API routes."""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Header, Request

from zip_agent.config import Settings
from zip_agent.errors import AuthenticationError
from zip_agent.services.upload import UploadService


def get_settings(request: Request) -> Settings:
    """Return the settings the application was started with."""
    return request.app.state.settings


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def require_api_key(
    request: Request,
    authorization: Annotated[
        str | None,
        Header(description="Bearer token matching ZIP_AGENT_API_KEY, when one is set."),
    ] = None,
) -> None:
    """Reject the request unless it carries the configured shared secret.

    Authentication is disabled when no secret is configured.

    Raises:
        AuthenticationError: If the header is missing or does not match (401).
    """
    settings = get_settings(request)
    if not settings.auth_enabled:
        return
    expected = f"Bearer {settings.api_key}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise AuthenticationError("Unauthorized")
