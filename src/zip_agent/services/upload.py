"""Sequence extraction, provisioning and publishing for one upload."""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from zip_agent.config import Settings
from zip_agent.errors import InvalidRequestError, SandboxIOError, ZipAgentError
from zip_agent.services.extractor import extract
from zip_agent.services.hosting import HostingClient, repository_name
from zip_agent.services.sync import GitCliBackend, SyncBackend, publish
from zip_agent.utils.locks import KeyedLock

logger = logging.getLogger(__name__)

_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_project_id(project_id: str | None) -> str:
    """Return ``project_id`` if it can safely name a repository and a directory.

    Raises:
        InvalidRequestError: if it is missing or contains unsupported characters.
    """
    if not project_id:
        raise InvalidRequestError("project_id required")
    if project_id in {".", ".."} or not _PROJECT_ID_RE.match(project_id):
        raise InvalidRequestError(
            "project_id may only contain letters, digits, '.', '_' and '-'"
        )
    return project_id


@contextmanager
def _step(name: str) -> Iterator[None]:
    try:
        yield
    except ZipAgentError as exc:
        if exc.step is None:
            exc.step = name
        raise


@contextmanager
def sandbox_directory(root: Path, name: str) -> Iterator[Path]:
    """Yield a fresh ``root/name`` directory and remove it on every exit path."""
    path = root / name
    try:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as exc:
        raise SandboxIOError(f"cannot prepare {path}: {exc}") from exc
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError:
            logger.warning("Failed to remove sandbox %s", path, exc_info=True)


class UploadService:
    """Publish uploaded archives to per-project repositories.

    Work for the same derived repository name is serialized; different
    projects never share a sandbox path or a remote, so they run in parallel.
    """

    def __init__(
        self,
        settings: Settings,
        hosting: HostingClient | None = None,
        backend_factory: Callable[[Path], SyncBackend] | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._settings = settings
        self._hosting = hosting or HostingClient(settings)
        self._backend_factory = backend_factory or self._git_backend
        self._locks = locks or KeyedLock()

    def _git_backend(self, directory: Path) -> SyncBackend:
        return GitCliBackend(directory, timeout=self._settings.git_timeout)

    def process_upload(self, project_id: str | None, data: bytes) -> str:
        """Mirror ``data`` into the project's repository and return its clone URL.

        Raises:
            ZipAgentError: subclass describing the failing step.
        """
        name = repository_name(validate_project_id(project_id))

        with self._locks.hold(name):
            logger.info("Processing upload for %s (%d bytes)", name, len(data))
            try:
                with (
                    _step("prepare sandbox"),
                    sandbox_directory(self._settings.work_dir, name) as directory,
                ):
                    self._sync(name, directory, data)
            except ZipAgentError:
                logger.exception("Upload failed for %s", name)
                raise

        url = self._hosting.clone_url(name)
        logger.info("Upload for %s published to %s", name, url)
        return url

    def _sync(self, name: str, directory: Path, data: bytes) -> None:
        with _step("unzip"):
            result = extract(data, directory)
        logger.info(
            "Extracted %d files and %d directories for %s (%d skipped)",
            result.files,
            result.directories,
            name,
            result.skipped,
        )

        with _step("check repo"):
            self._hosting.ensure_repository(name)

        with _step("publish"):
            publish(
                self._backend_factory(directory),
                self._hosting.push_url(name),
                committer_name=self._settings.committer_name,
                committer_email=self._settings.committer_email,
            )

    def delete_project(self, project_id: str | None) -> None:
        """Remove the project's repository; absent repositories are not an error."""
        name = repository_name(validate_project_id(project_id))
        with self._locks.hold(name), _step("delete repo"):
            self._hosting.delete_repository(name)

    def close(self) -> None:
        self._hosting.close()
