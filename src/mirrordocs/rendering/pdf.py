"""Pandoc PDF renderer.

Invokes pandoc as a subprocess to convert a Markdown document to PDF.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from mirrordocs.errors import ExternalToolUnavailable, RenderError
from mirrordocs.rendering.base import RenderContext, RenderResult
from mirrordocs.utilities.docheader import parse_header


def _check_tool(name: str) -> str | None:
    """Return the path to an executable, or None if not found."""
    return shutil.which(name)


class PdfRenderer:
    """Renders Markdown documents to PDF via pandoc.

    Args:
        engine: LaTeX engine (xelatex, lualatex, pdflatex).
        template: Custom LaTeX template, or None for pandoc's default.
        timeout: Seconds to wait for pandoc per document.
    """

    out_suffix = ".pdf"

    def __init__(
        self,
        engine: str = "xelatex",
        template: Path | None = None,
        timeout: float = 300.0,
    ) -> None:
        self.engine = engine
        self.template = template
        self.timeout = timeout

    def check_tools(self) -> None:
        """Raise ExternalToolUnavailable unless pandoc and the engine are on PATH."""
        if _check_tool("pandoc") is None:
            raise ExternalToolUnavailable("pandoc", "Install from https://pandoc.org/installing.html")
        if _check_tool(self.engine) is None:
            raise ExternalToolUnavailable(self.engine, "Install a TeX distribution (e.g. TeX Live).")

    def render(self, source: str, context: RenderContext) -> RenderResult:
        self.check_tools()

        header = parse_header(source)
        body = "\n".join(source.splitlines()[header.body_start :])
        title = header.title or context.attributes.get("title") or context.src_node.pathname.stem

        with tempfile.TemporaryDirectory(prefix="mirrordocs-") as tmp:
            src_file = Path(tmp) / "document.md"
            out_file = Path(tmp) / "document.pdf"
            src_file.write_text(body, encoding="utf-8")

            cmd = [
                "pandoc",
                str(src_file),
                f"--pdf-engine={self.engine}",
                "--from=markdown",
                "-M",
                f"title={title}",
                "-o",
                str(out_file),
            ]
            if self.template is not None:
                cmd.append(f"--template={self.template}")
            for key in ("author", "date"):
                if context.attributes.get(key):
                    cmd.extend(["-M", f"{key}={context.attributes[key]}"])

            # Set SOURCE_DATE_EPOCH for deterministic output
            env = os.environ.copy()
            env.setdefault("SOURCE_DATE_EPOCH", "0")

            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    env=env,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                raise RenderError(f"pandoc timed out after {self.timeout}s", context.src_node.pathname) from e

            if result.returncode != 0:
                raise RenderError(
                    f"pandoc failed: {result.stderr.strip()}", context.src_node.pathname
                )

            content = out_file.read_bytes()

        return RenderResult(content=content, title=header.title)


__all__ = ["PdfRenderer"]
