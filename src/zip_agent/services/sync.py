"""Commit a sandbox directory and force-push it over a remote's history."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from zip_agent.errors import PublishError
from zip_agent.utils.git import GitCommandError, run_git

logger = logging.getLogger(__name__)

PRIMARY_BRANCH = "main"
REMOTE_NAME = "origin"


class SyncBackend(Protocol):
    """Version-control operations needed to publish a directory."""

    def init(self) -> None: ...

    def configure_identity(self, name: str, email: str) -> None: ...

    def stage_all(self) -> None: ...

    def commit(self, message: str) -> None: ...

    def set_primary_branch(self, branch: str) -> None: ...

    def register_remote(self, url: str) -> None: ...

    def force_push(self, branch: str) -> None: ...


class GitCliBackend:
    """``SyncBackend`` that shells out to the ``git`` executable."""

    def __init__(self, directory: Path | str, *, timeout: float | None = None) -> None:
        self.directory = Path(directory)
        self.timeout = timeout

    def _git(self, *args: str) -> str:
        return run_git(self.directory, *args, timeout=self.timeout)

    def init(self) -> None:
        self._git("init", "--quiet")

    def configure_identity(self, name: str, email: str) -> None:
        self._git("config", "user.email", email)
        self._git("config", "user.name", name)

    def stage_all(self) -> None:
        self._git("add", "--all", ".")

    def commit(self, message: str) -> None:
        self._git("commit", "--quiet", "--allow-empty", "-m", message)

    def set_primary_branch(self, branch: str) -> None:
        self._git("branch", "-M", branch)

    def has_remote(self) -> bool:
        try:
            self._git("remote", "get-url", REMOTE_NAME)
        except GitCommandError:
            return False
        return True

    def register_remote(self, url: str) -> None:
        if self.has_remote():
            self._git("remote", "set-url", REMOTE_NAME, url)
            return
        try:
            self._git("remote", "add", REMOTE_NAME, url)
        except GitCommandError as exc:
            # Known fragility: relies on git's English wording. Only reached
            # when the remote appears between the check above and the add.
            if "already exists" not in exc.output:
                raise
            logger.info("Remote %s already registered in %s", REMOTE_NAME, self.directory)

    def force_push(self, branch: str) -> None:
        self._git("push", "--force", "--quiet", REMOTE_NAME, branch)


def commit_message(now: datetime | None = None) -> str:
    """Return the upload commit message stamped with an RFC 3339 UTC time."""
    stamp = (now or datetime.now(UTC)).astimezone(UTC).isoformat(timespec="seconds")
    return f"Upload at {stamp.replace('+00:00', 'Z')}"


def _run_step(step: str, action: Callable[[], None]) -> None:
    try:
        action()
    except GitCommandError as exc:
        raise PublishError(f"{step}: {exc.output or exc}") from exc


def publish(
    backend: SyncBackend,
    remote_url: str,
    *,
    committer_name: str,
    committer_email: str,
    now: datetime | None = None,
) -> None:
    """Turn the backend's directory into one commit and force it onto ``remote_url``.

    Steps run strictly in order and the first failure aborts the publish.
    Whatever history the remote had is replaced.

    Raises:
        PublishError: naming the failed step and carrying git's output.
    """
    message = commit_message(now)
    steps: list[tuple[str, Callable[[], None]]] = [
        ("init", backend.init),
        ("configure identity", lambda: backend.configure_identity(committer_name, committer_email)),
        ("stage", backend.stage_all),
        ("commit", lambda: backend.commit(message)),
        ("set branch", lambda: backend.set_primary_branch(PRIMARY_BRANCH)),
        ("register remote", lambda: backend.register_remote(remote_url)),
        ("push", lambda: backend.force_push(PRIMARY_BRANCH)),
    ]
    for step, action in steps:
        _run_step(step, action)
    logger.info("Published %s", message)
