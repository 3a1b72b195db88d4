"""Recognise platform debris that must never reach a published tree."""

from __future__ import annotations

import posixpath

RESOURCE_FORK_PREFIX = "._"
DEBRIS_DIRECTORY = "__MACOSX"
DEBRIS_FILENAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})


def _base_name(path: str) -> str:
    return posixpath.basename(path.rstrip("/"))


def is_junk(path: str) -> bool:
    """Return True when ``path`` is macOS or Windows debris.

    Matching is case-sensitive and works on slash-separated archive paths.
    """
    base = _base_name(path)
    if base.startswith(RESOURCE_FORK_PREFIX):
        return True
    if path == DEBRIS_DIRECTORY or path.startswith(DEBRIS_DIRECTORY + "/"):
        return True
    return base in DEBRIS_FILENAMES
