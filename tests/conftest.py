"""Shared fixtures for mirrordocs tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from mirrordocs.errors import RenderError
from mirrordocs.rendering.base import RenderContext, RenderResult
from mirrordocs.utilities.docheader import parse_header


class FakeRenderer:
    """Renderer echoing the (preprocessed) source.

    Documents with a line reading ``FAIL`` raise RenderError, documents
    containing ``WARN`` get a warning. Every call is recorded in ``calls``
    as (src pathname, source).
    """

    out_suffix = ".out"

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def render(self, source: str, context: RenderContext) -> RenderResult:
        self.calls.append((str(context.src_node.pathname), source))
        if "FAIL" in source.splitlines():
            raise RenderError("fake failure", context.src_node.pathname)
        header = parse_header(source)
        warnings = ["fake warning"] if "WARN" in source else []
        return RenderResult(content=source.encode("utf-8"), title=header.title, warnings=warnings)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


def write_docs(root: Path, docs: dict[str, str]) -> Path:
    """Write ``{relative path: content}`` below ``root``."""
    for rel, content in docs.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_docs():
    """Return the write_docs helper."""
    return write_docs


@pytest.fixture
def doc_tree(tmp_path: Path) -> Path:
    """A small source tree with two documents referencing each other."""
    return write_docs(
        tmp_path / "src",
        {
            "file1.md": "# Doc 1\n:docid: D-1\n\nSee <<:docid:D-2>>.\n",
            "sub/file2.md": "# Doc 2\n:docid: D-2\n\nBack to <<:docid:D-1#intro,the first>>.\n",
            "sub/notes.txt": "not a document\n",
        },
    )


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A throwaway git repository with a main and a feature branch."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo, "config", "user.name", "Test Author")
    _git(repo, "config", "user.email", "author@example.com")
    _git(repo, "config", "commit.gpgsign", "false")

    write_docs(repo / "docs", {"a.md": "# Doc A\n:docid: A-1\n\nOn main.\n"})
    _git(repo, "add", ".")
    _git(repo, "commit", "--quiet", "-m", "Add doc A")

    _git(repo, "checkout", "--quiet", "-b", "feature/x")
    write_docs(repo / "docs", {"b.md": "# Doc B\n\nOn feature.\n"})
    _git(repo, "add", ".")
    _git(repo, "commit", "--quiet", "-m", "Add doc B")

    _git(repo, "checkout", "--quiet", "main")
    _git(repo, "tag", "v1.0")
    return repo
