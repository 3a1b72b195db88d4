from __future__ import annotations

import io
import shutil
import subprocess
from collections.abc import Callable, Iterable
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

import pytest

from zip_agent.config import Settings

ZipEntry = tuple[str | ZipInfo, bytes | str]


def _git(*args: str, cwd: Path | None = None) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        check=True,
        capture_output=True,
        text=True,
    )
    return proc.stdout


class FakeHosting:
    """Stand-in for ``HostingClient`` backed by local bare repositories."""

    def __init__(self, root: Path, *, public_url: str, owner: str) -> None:
        self.root = root
        self.public_url = public_url
        self.owner = owner
        self.created: list[str] = []
        self.deleted: list[str] = []

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}.git"

    def repository_exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def ensure_repository(self, name: str) -> None:
        if self.repository_exists(name):
            return
        self.root.mkdir(parents=True, exist_ok=True)
        _git("init", "--bare", "--quiet", str(self.path_for(name)))
        self.created.append(name)

    def push_url(self, name: str) -> str:
        return str(self.path_for(name))

    def clone_url(self, name: str) -> str:
        return f"{self.public_url}/{self.owner}/{name}.git"

    def delete_repository(self, name: str) -> None:
        shutil.rmtree(self.path_for(name), ignore_errors=True)
        self.deleted.append(name)

    def close(self) -> None:
        pass


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        gitea_url="http://gitea.internal:3000/",
        gitea_token="secret-token",
        gitea_owner="deploy",
        gitea_public_url="https://git.example.com",
        work_dir=tmp_path / "work",
        http_timeout=5.0,
        git_timeout=60.0,
    )


@pytest.fixture
def fake_hosting(tmp_path: Path, settings: Settings) -> FakeHosting:
    return FakeHosting(
        tmp_path / "remotes",
        public_url=settings.gitea_public_url,
        owner=settings.gitea_owner,
    )


@pytest.fixture
def make_zip() -> Callable[[Iterable[ZipEntry]], bytes]:
    """Return a helper that builds an in-memory ZIP from ``(name, data)`` pairs."""

    def _make(entries: Iterable[ZipEntry]) -> bytes:
        buffer = io.BytesIO()
        with ZipFile(buffer, mode="w", compression=ZIP_DEFLATED) as archive:
            for name, data in entries:
                archive.writestr(name, data)
        return buffer.getvalue()

    return _make


@pytest.fixture
def remote_files() -> Callable[[Path], set[str]]:
    """Return a helper listing every path on ``main`` in a bare repository."""

    def _list(repo: Path) -> set[str]:
        output = _git("ls-tree", "-r", "--name-only", "main", cwd=repo)
        return set(output.splitlines())

    return _list


@pytest.fixture
def remote_commit_count() -> Callable[[Path], int]:
    def _count(repo: Path) -> int:
        return int(_git("rev-list", "--count", "main", cwd=repo).strip())

    return _count
