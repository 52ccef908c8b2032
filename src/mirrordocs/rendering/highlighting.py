"""Syntax highlighting of fenced code blocks with Pygments."""

from __future__ import annotations

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound


def highlight_code(code: str, language: str | None = None, linenos: bool = False) -> str:
    """Highlight a code snippet as an HTML ``div.highlight`` block.

    Unknown or missing languages are rendered as plain text.

    Args:
        code: The code to highlight.
        language: Pygments lexer alias (e.g. ``"python"``).
        linenos: Emit line numbers in a table.

    Returns:
        HTML string.
    """
    try:
        lexer = get_lexer_by_name(language) if language else TextLexer()
    except ClassNotFound:
        lexer = TextLexer()

    formatter = HtmlFormatter(linenos="table" if linenos else False)
    return pygments_highlight(code, lexer, formatter)


def get_pygments_css(style: str = "default", scope: str = ".highlight") -> str:
    """Generate scoped Pygments CSS for syntax highlighting.

    Args:
        style: Pygments style name (e.g., ``"default"``, ``"monokai"``).
        scope: CSS selector to scope the rules under.

    Returns:
        CSS rules as a string.
    """
    formatter = HtmlFormatter(style=style)
    return formatter.get_style_defs(scope)
