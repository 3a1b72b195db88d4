"""Extract an untrusted ZIP archive into a sandbox directory."""

from __future__ import annotations

import io
import logging
import os
import shutil
import stat
import zlib
from dataclasses import dataclass
from pathlib import Path
from zipfile import BadZipFile, ZipFile, ZipInfo

from zip_agent.errors import CorruptArchiveError, SandboxIOError
from zip_agent.services.junk_filter import is_junk

logger = logging.getLogger(__name__)

_STREAM_CHUNK_SIZE = 1024 * 1024
_DEFAULT_DIR_MODE = 0o755
_DEFAULT_FILE_MODE = 0o644
_REPOSITORY_METADATA_DIR = ".git"

# Errors zipfile raises while reading a damaged member. RuntimeError covers
# encrypted members, which cannot be read without a password.
_MEMBER_READ_ERRORS = (BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError)


@dataclass(slots=True)
class ExtractionResult:
    files: int = 0
    directories: int = 0
    skipped: int = 0


def common_root_prefix(names: list[str]) -> str:
    """Return the top-level folder wrapping the archive, judged by its first entry.

    The prefix includes the trailing slash, or is empty when the first entry
    sits at the archive root.
    """
    if not names:
        return ""
    first = names[0]
    if "/" not in first:
        return ""
    return first.split("/", 1)[0] + "/"


def contained_path(root: Path, relative: str) -> Path | None:
    """Resolve ``relative`` under ``root``, or None if it would escape.

    ``root`` must already be canonical. The candidate is canonicalised too, so
    ``..`` segments, absolute names and existing symlinks are all judged by
    where they really land.
    """
    candidate = (root / relative).resolve()
    if root not in candidate.parents:
        return None
    return candidate


def is_repository_metadata(path: str) -> bool:
    """Return True if any segment of ``path`` is the ``.git`` directory name."""
    return _REPOSITORY_METADATA_DIR in path.rstrip("/").split("/")


def _entry_mode(info: ZipInfo) -> int:
    return info.external_attr >> 16


def _is_symlink(info: ZipInfo) -> bool:
    return stat.S_ISLNK(_entry_mode(info))


def _permission_bits(info: ZipInfo, default: int) -> int:
    bits = stat.S_IMODE(_entry_mode(info)) & ~(stat.S_ISUID | stat.S_ISGID)
    return bits or default


def _write_directory(target: Path, info: ZipInfo) -> None:
    # Owner rwx is kept so later entries can still be written inside.
    mode = _permission_bits(info, _DEFAULT_DIR_MODE) | stat.S_IRWXU
    target.mkdir(mode=mode, parents=True, exist_ok=True)


def _write_file(archive: ZipFile, target: Path, info: ZipInfo) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        with archive.open(info) as source, target.open("wb") as destination:
            shutil.copyfileobj(source, destination, _STREAM_CHUNK_SIZE)
    except _MEMBER_READ_ERRORS as exc:
        raise CorruptArchiveError(f"cannot read {info.filename!r}: {exc}") from exc
    os.chmod(target, _permission_bits(info, _DEFAULT_FILE_MODE))


def extract(data: bytes, dest_dir: Path | str) -> ExtractionResult:
    """Extract ``data`` into ``dest_dir``.

    A single wrapping top-level folder is stripped. Platform debris and
    anything under a ``.git`` directory are dropped, and any entry that
    would land outside ``dest_dir`` is discarded without being written.

    Raises:
        CorruptArchiveError: if ``data`` is not a valid ZIP archive or a
            member cannot be decompressed.
        SandboxIOError: if writing into ``dest_dir`` fails.
    """
    try:
        archive = ZipFile(io.BytesIO(data))
    except (BadZipFile, OSError) as exc:
        raise CorruptArchiveError(f"not a valid zip archive: {exc}") from exc

    result = ExtractionResult()
    with archive:
        entries = archive.infolist()
        prefix = common_root_prefix([entry.filename for entry in entries])
        root = Path(dest_dir).resolve()

        for info in entries:
            name = info.filename
            if prefix and name.startswith(prefix):
                name = name[len(prefix) :]
            if is_repository_metadata(info.filename):
                logger.warning("Discarding repository metadata entry: %r", info.filename)
                result.skipped += 1
                continue
            if not name:
                continue
            if is_junk(name) or _is_symlink(info):
                result.skipped += 1
                continue

            target = contained_path(root, name)
            if target is None:
                logger.warning("Discarding archive entry outside sandbox: %r", info.filename)
                result.skipped += 1
                continue

            try:
                if info.is_dir():
                    _write_directory(target, info)
                    result.directories += 1
                else:
                    _write_file(archive, target, info)
                    result.files += 1
            except OSError as exc:
                raise SandboxIOError(f"cannot write {name!r}: {exc}") from exc

    return result
