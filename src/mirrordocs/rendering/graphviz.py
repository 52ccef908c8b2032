"""Access to the graphviz ``dot`` tool."""

from __future__ import annotations

import re
import shutil
import subprocess

from mirrordocs.errors import ExternalToolUnavailable, RenderError

_XML_PROLOG = re.compile(r"^\s*<\?xml[^>]*>\s*(<!DOCTYPE[^>]*>\s*)?(<!--.*?-->\s*)*", re.DOTALL)


def _check_tool(name: str) -> str | None:
    """Return the path to an executable, or None if not found."""
    return shutil.which(name)


def dot_supported() -> bool:
    """True if the graphviz ``dot`` executable is on PATH."""
    return _check_tool("dot") is not None


def render_svg(dot_source: str, timeout: float = 60.0) -> str:
    """Render graphviz source to an inline SVG element.

    Raises:
        ExternalToolUnavailable: If ``dot`` is not installed.
        RenderError: If ``dot`` rejects the source.
    """
    dot = _check_tool("dot")
    if dot is None:
        raise ExternalToolUnavailable("dot", "Install graphviz to render graphs.")

    try:
        result = subprocess.run(
            [dot, "-Tsvg"],
            input=dot_source,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise RenderError(f"dot timed out after {timeout:.0f}s") from e
    if result.returncode != 0:
        raise RenderError(f"dot failed: {result.stderr.strip()}")

    return _XML_PROLOG.sub("", result.stdout, count=1)


__all__ = ["dot_supported", "render_svg"]
