"""Exception hierarchy shared by the upload pipeline and the API."""

from __future__ import annotations


class ZipAgentError(Exception):
    """Base class for errors surfaced to API callers.

    ``step`` names the pipeline stage that failed. The orchestrator fills it
    in as the error propagates, so lower layers only describe what went wrong.
    """

    status_code: int = 500

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.step} failed: {self.message}"
        return self.message


class InvalidRequestError(ZipAgentError):
    """Raised when a required request field is missing or malformed."""

    status_code = 400


class AuthenticationError(ZipAgentError):
    """Raised when the shared secret does not match."""

    status_code = 401


class CorruptArchiveError(ZipAgentError):
    """Raised when the uploaded bytes are not a readable ZIP archive."""


class SandboxIOError(ZipAgentError):
    """Raised when the sandbox directory cannot be written."""


class ProvisioningError(ZipAgentError):
    """Raised when the hosting API rejects or cannot serve a request."""


class PublishError(ZipAgentError):
    """Raised when a git step fails while publishing the sandbox."""


class ConfigurationError(Exception):
    """Raised at startup when the environment is incomplete or invalid."""
