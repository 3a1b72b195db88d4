"""Git related utilities."""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path

_CREDENTIAL_RE = re.compile(r"(://)[^/@\s]+@")


class GitCommandError(Exception):
    """A git invocation exited non-zero, timed out, or could not start."""

    def __init__(self, args: tuple[str, ...], output: str) -> None:
        shown = " ".join(redact_credentials(arg) for arg in args)
        super().__init__(f"git {shown}: {output}")
        self.git_args = args
        self.output = output


def redact_credentials(text: str) -> str:
    """Replace ``user:token@`` in any URL inside ``text`` with ``***@``."""
    return _CREDENTIAL_RE.sub(r"\1***@", text)


def _git_env() -> dict[str, str]:
    env = os.environ.copy()
    # Never block on a credential prompt; keep messages in English so callers
    # can match on them.
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["LC_ALL"] = "C"
    return env


def run_git(repo: Path | str, *args: str, timeout: float | None = None) -> str:
    """Run a git command inside ``repo`` and return its combined output.

    Raises:
        GitCommandError: if the command exits with a non-zero status, exceeds
            ``timeout`` seconds, or git cannot be executed.
    """
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(repo),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=_git_env(),
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        # The expired command line may embed a credential, so it is not chained.
        raise GitCommandError(args, f"timed out after {exc.timeout:g}s") from None
    except OSError as exc:
        raise GitCommandError(args, str(exc)) from exc

    output = redact_credentials(proc.stdout or "").strip()
    if proc.returncode != 0:
        raise GitCommandError(args, output)
    return output
