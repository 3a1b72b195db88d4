"""Process-wide settings, read once from the environment at startup."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zip_agent.errors import ConfigurationError

DEFAULT_PORT = 8080
DEFAULT_WORK_DIR = "/tmp/zip-agent"
DEFAULT_MAX_UPLOAD_BYTES = 100 * 1024 * 1024
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_GIT_TIMEOUT = 300.0
DEFAULT_COMMITTER_NAME = "Zip Agent"
DEFAULT_COMMITTER_EMAIL = "zip-agent@localhost"

_REQUIRED = ("GITEA_URL", "GITEA_TOKEN", "GITEA_OWNER")


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable configuration passed explicitly into every component."""

    gitea_url: str
    gitea_token: str
    gitea_owner: str
    gitea_public_url: str = ""
    api_key: str | None = None
    port: int = DEFAULT_PORT
    work_dir: Path = Path(DEFAULT_WORK_DIR)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    git_timeout: float = DEFAULT_GIT_TIMEOUT
    committer_name: str = DEFAULT_COMMITTER_NAME
    committer_email: str = DEFAULT_COMMITTER_EMAIL

    def __post_init__(self) -> None:
        # Frozen, so normalise through object.__setattr__.
        internal = self.gitea_url.rstrip("/")
        object.__setattr__(self, "gitea_url", internal)
        object.__setattr__(self, "gitea_public_url", self.gitea_public_url.rstrip("/") or internal)
        object.__setattr__(self, "work_dir", Path(self.work_dir))

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: if a required variable is missing or a numeric
                variable cannot be parsed.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in _REQUIRED if not env.get(name)]
        if missing:
            raise ConfigurationError(f"Missing required env: {', '.join(missing)}")

        return cls(
            gitea_url=env["GITEA_URL"],
            gitea_token=env["GITEA_TOKEN"],
            gitea_owner=env["GITEA_OWNER"],
            gitea_public_url=env.get("GITEA_PUBLIC_URL", ""),
            api_key=env.get("ZIP_AGENT_API_KEY") or None,
            port=_parse_number(env, "PORT", DEFAULT_PORT, int),
            work_dir=Path(env.get("ZIP_AGENT_WORK_DIR") or DEFAULT_WORK_DIR).expanduser(),
            max_upload_bytes=_parse_number(
                env, "ZIP_AGENT_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, int
            ),
            http_timeout=_parse_number(env, "ZIP_AGENT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float),
            git_timeout=_parse_number(env, "ZIP_AGENT_GIT_TIMEOUT", DEFAULT_GIT_TIMEOUT, float),
            committer_name=env.get("ZIP_AGENT_COMMITTER_NAME") or DEFAULT_COMMITTER_NAME,
            committer_email=env.get("ZIP_AGENT_COMMITTER_EMAIL") or DEFAULT_COMMITTER_EMAIL,
        )


def _parse_number(
    env: Mapping[str, str], name: str, default: int | float, kind: type[int] | type[float]
) -> Any:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value
