"""FastAPI application entry point for the Zip Agent API."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from zip_agent import __version__
from zip_agent.api.routes import health, repositories
from zip_agent.config import Settings
from zip_agent.errors import ConfigurationError, ZipAgentError
from zip_agent.services.upload import UploadService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load settings on startup when none were injected, and release clients on shutdown."""
    if getattr(app.state, "settings", None) is None:
        settings = Settings.from_env()
        app.state.settings = settings
        app.state.upload_service = UploadService(settings)

    settings = app.state.settings
    settings.work_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Zip Agent ready: owner=%s gitea=%s auth=%s",
        settings.gitea_owner,
        settings.gitea_url,
        "on" if settings.auth_enabled else "off",
    )
    yield
    app.state.upload_service.close()


async def _handle_agent_error(request: Request, exc: ZipAgentError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(str(error.get("msg", "")) for error in exc.errors())
    return JSONResponse(status_code=400, content={"error": messages or "invalid request"})


def create_app(settings: Settings | None = None, service: UploadService | None = None) -> FastAPI:
    """Build the application.

    Without ``settings`` the configuration is read from the environment when
    the application starts.
    """
    app = FastAPI(
        title="Zip Agent API",
        description="Publish uploaded ZIP archives as Gitea repositories",
        version=__version__,
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings
        app.state.upload_service = service or UploadService(settings)

    app.add_exception_handler(ZipAgentError, _handle_agent_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    app.include_router(health.router)
    app.include_router(repositories.router)
    return app


app = create_app()


def main() -> None:
    """Start the server."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    logger.info("Zip Agent starting on port %d", settings.port)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
