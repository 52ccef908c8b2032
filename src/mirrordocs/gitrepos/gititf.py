"""Thin interface to the git command line.

Only the handful of operations the build needs are provided. Every command
runs with the repository root as working directory and with GIT_DIR and
GIT_WORK_TREE removed from the environment, so an inherited git context can
not redirect it to another repository.
"""

from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime
from pathlib import Path

from mirrordocs.errors import ExternalToolUnavailable, RevisionSyncError, StructuralError
from mirrordocs.node_data import LogEntry

_log = logging.getLogger(__name__)

# Field and record separators used in the ``git log`` format
_FS = "\x1f"
_RS = "\x1e"
_LOG_FORMAT = f"--format=%H{_FS}%an{_FS}%ad{_FS}%B{_RS}"


def _clean_git_env() -> dict[str, str]:
    """Return environment with GIT_DIR/GIT_WORK_TREE removed."""
    env = os.environ.copy()
    env.pop("GIT_DIR", None)
    env.pop("GIT_WORK_TREE", None)
    return env


def find_gitrepo_root(dirpath: Path | str) -> Path | None:
    """Find the root directory of the git repo containing ``dirpath``.

    Returns:
        The repo root, or None if ``dirpath`` is not inside a git repo.
    """
    start = Path(dirpath).resolve()
    for p in (start, *start.parents):
        if (p / ".git").exists():
            return p
    return None


def parse_log_output(output: str) -> list[LogEntry]:
    """Parse ``git log`` output produced with the module's log format."""
    entries = []
    for record in output.split(_RS):
        record = record.strip("\n")
        if not record:
            continue
        sha, author, date, message = record.split(_FS, 3)
        date = date.strip()
        if date.endswith("Z"):
            date = date[:-1] + "+00:00"
        entries.append(
            LogEntry(
                date=datetime.fromisoformat(date),
                author=author.strip(),
                message=message.strip(),
                sha=sha.strip(),
            )
        )
    return entries


class GitItf:
    """Runs git commands against the repository containing ``path``.

    Args:
        path: Any path inside the repository.
        logger: Logger for the executed commands.

    Raises:
        StructuralError: If ``path`` is not inside a git repository.
    """

    def __init__(self, path: Path | str, logger: logging.Logger | None = None) -> None:
        root = find_gitrepo_root(path)
        if root is None:
            raise StructuralError(f"The path: {path} is not within a git repo!")
        self.repo_root = root
        self.logger = logger or _log

    def _run(self, *args: str) -> str:
        cmd = ["git", *args]
        self.logger.debug("running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_root,
                env=_clean_git_env(),
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExternalToolUnavailable("git") from e

        if result.returncode != 0:
            raise RevisionSyncError(f"'{' '.join(cmd)}' failed", stderr=result.stderr)
        return result.stdout

    def current_branch(self) -> str:
        """Name of the checked out branch, or the commit sha for a detached HEAD."""
        name = self._run("rev-parse", "--abbrev-ref", "HEAD").strip()
        if name == "HEAD":
            return self._run("rev-parse", "HEAD").strip()
        return name

    def checkout(self, ref: str) -> None:
        try:
            self._run("checkout", "--quiet", ref)
        except RevisionSyncError as e:
            raise RevisionSyncError(f"Could not check out '{ref}': {e}", ref=ref) from e

    def merge(self, ref: str) -> None:
        try:
            self._run("merge", "--quiet", ref)
        except RevisionSyncError as e:
            raise RevisionSyncError(f"Could not merge '{ref}': {e}", ref=ref) from e

    def fetch(self) -> None:
        try:
            self._run("fetch", "--quiet", "--tags")
        except RevisionSyncError as e:
            raise RevisionSyncError(
                f"Could not fetch from origin (do you need '--local-only'?): {e}"
            ) from e

    def file_log(self, filename: Path | str) -> list[LogEntry]:
        """Commit history of ``filename`` (following renames), newest first."""
        try:
            output = self._run("log", "--follow", "--date=iso-strict", _LOG_FORMAT, "--", str(filename))
        except RevisionSyncError as e:
            raise RevisionSyncError(f"Failed to get git log for {filename}: {e}") from e
        return parse_log_output(output)

    def branches(self, remote: bool = False) -> list[str]:
        """Local branch names, or remote branches as ``<remote>/<name>``.

        Symbolic ``HEAD`` entries are left out.
        """
        prefix = "refs/remotes/" if remote else "refs/heads/"
        names = self._refnames(prefix)
        return [n for n in names if n != "HEAD" and not n.endswith("/HEAD")]

    def tags(self) -> list[str]:
        return self._refnames("refs/tags/")

    def _refnames(self, prefix: str) -> list[str]:
        output = self._run("for-each-ref", "--format=%(refname)", prefix)
        return [
            line[len(prefix) :]
            for line in output.splitlines()
            if line.startswith(prefix)
        ]


__all__ = ["GitItf", "find_gitrepo_root", "parse_log_output"]
