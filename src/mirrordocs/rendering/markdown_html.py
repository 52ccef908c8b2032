"""Markdown-to-HTML renderer.

Renders the mirrordocs Markdown dialect into a standalone HTML page using a
Jinja2 template. Supports headings (with anchor ids), paragraphs, nested
bullet and numbered lists, pipe tables, horizontal rules, fenced code
blocks (highlighted with Pygments), ``dot`` blocks (inline SVG via
graphviz), bold, italic, inline code and links. Lines starting with ``//``
are comments.
"""

from __future__ import annotations

import html
import re

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from mirrordocs import __version__
from mirrordocs.errors import ExternalToolUnavailable, RenderError
from mirrordocs.rendering.base import RenderContext, RenderResult
from mirrordocs.rendering.graphviz import render_svg
from mirrordocs.rendering.highlighting import get_pygments_css, highlight_code
from mirrordocs.utilities.docheader import parse_header

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
ANCHOR_RE = re.compile(r"\s*\{#([\w-]+)\}$")
LIST_ITEM_RE = re.compile(r"^\s*([*-]|\d+\.)\s+(.*)$")
TABLE_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")
HR_LINES = ("---", "***", "'''")

LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
ITALIC_RE = re.compile(r"(?<!\*)\*([^*\s][^*]*)\*(?!\*)")
CODE_SPAN_RE = re.compile(r"(`[^`]+`)")
PASS_RE = re.compile(r"pass:\[(.*?)\]")


def slugify(text: str) -> str:
    """Create an anchor id from heading text."""
    slug = re.sub(r"[^\w]+", "-", text.lower()).strip("-")
    return slug or "section"


class HtmlRenderer:
    """Renders Markdown documents to standalone HTML pages.

    Args:
        stylesheet: Href of an external stylesheet. When None, a default
            stylesheet and the Pygments CSS are embedded in each page.
        pygments_style: Pygments style for code blocks.
        linenos: Show line numbers in code blocks.
        template: Name of the page template in ``rendering/templates``.
    """

    out_suffix = ".html"

    def __init__(
        self,
        stylesheet: str | None = None,
        pygments_style: str = "default",
        linenos: bool = False,
        template: str = "page.html.j2",
    ) -> None:
        self.stylesheet = stylesheet
        self.pygments_style = pygments_style
        self.linenos = linenos
        self.template = template
        self._env = Environment(
            loader=PackageLoader("mirrordocs.rendering", "templates"),
            autoescape=select_autoescape(["html", "xml", "html.j2"]),
        )

    def render(self, source: str, context: RenderContext) -> RenderResult:
        header = parse_header(source)
        lines = source.splitlines()[header.body_start :]
        warnings: list[str] = []
        body = self.render_body(lines, warnings)

        title = header.title or context.attributes.get("title") or context.src_node.pathname.stem
        try:
            template = self._env.get_template(self.template)
            page = template.render(
                title=title,
                body=body,
                attributes=context.attributes,
                stylesheet=self.stylesheet,
                css=None if self.stylesheet else get_pygments_css(self.pygments_style),
                version=__version__,
            )
        except TemplateError as e:
            raise RenderError(f"Template error: {e}", context.src_node.pathname) from e

        return RenderResult(content=page.encode("utf-8"), title=header.title, warnings=warnings)

    # ------------------------------------------------------------------
    # Block level
    # ------------------------------------------------------------------

    def render_body(self, lines: list[str], warnings: list[str]) -> str:
        """Render body lines to an HTML fragment."""
        out: list[str] = []
        paragraph: list[str] = []
        items: list[list] = []

        def flush() -> None:
            if paragraph:
                out.append(f"<p>{self._render_inline(' '.join(paragraph))}</p>")
                paragraph.clear()
            if items:
                out.append(self._render_list(items))
                items.clear()

        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()

            if stripped.startswith("```"):
                flush()
                language = stripped[3:].strip() or None
                code_lines: list[str] = []
                i += 1
                while i < len(lines) and not lines[i].strip().startswith("```"):
                    code_lines.append(lines[i])
                    i += 1
                if i >= len(lines):
                    warnings.append("Unclosed code block")
                i += 1
                out.append(self._render_code_block("\n".join(code_lines), language, warnings))
                continue

            if line.startswith("//"):
                i += 1
                continue

            if not stripped:
                flush()
                i += 1
                continue

            heading = HEADING_RE.match(stripped)
            if heading:
                flush()
                out.append(self._render_heading(len(heading.group(1)), heading.group(2)))
                i += 1
                continue

            if stripped in HR_LINES:
                flush()
                out.append("<hr>")
                i += 1
                continue

            if stripped.startswith("|"):
                flush()
                rows: list[str] = []
                while i < len(lines) and lines[i].strip().startswith("|"):
                    rows.append(lines[i].strip())
                    i += 1
                out.append(self._render_table(rows))
                continue

            item = LIST_ITEM_RE.match(line)
            if item:
                if paragraph:
                    flush()
                indent = len(line) - len(line.lstrip())
                kind = "ul" if item.group(1) in ("*", "-") else "ol"
                items.append([indent, kind, item.group(2)])
            elif items and line[:1].isspace():
                items[-1][2] = f"{items[-1][2]} {stripped}"
            else:
                if items:
                    flush()
                paragraph.append(stripped)
            i += 1

        flush()
        return "\n".join(out)

    def _render_list(self, items: list[list]) -> str:
        """Render (indent, kind, text) items as nested lists."""
        out: list[str] = []
        stack: list[tuple[int, str]] = []
        for indent, kind, text in items:
            while stack and indent < stack[-1][0]:
                out.append(f"</li></{stack.pop()[1]}>")
            if stack and indent == stack[-1][0] and kind == stack[-1][1]:
                out.append("</li><li>")
            else:
                if stack and indent == stack[-1][0]:
                    out.append(f"</li></{stack.pop()[1]}>")
                out.append(f"<{kind}><li>")
                stack.append((indent, kind))
            out.append(self._render_inline(text))
        while stack:
            out.append(f"</li></{stack.pop()[1]}>")
        return "".join(out)

    def _render_heading(self, level: int, text: str) -> str:
        anchor = ANCHOR_RE.search(text)
        if anchor:
            anchor_id = anchor.group(1)
            text = text[: anchor.start()]
        else:
            anchor_id = slugify(text)
        return f'<h{level} id="{html.escape(anchor_id)}">{self._render_inline(text)}</h{level}>'

    def _render_code_block(self, code: str, language: str | None, warnings: list[str]) -> str:
        if language == "dot":
            try:
                return f'<div class="graph">{render_svg(code)}</div>'
            except ExternalToolUnavailable as e:
                warnings.append(f"{e} Showing the graph source instead.")
            except RenderError as e:
                warnings.append(str(e))
        return highlight_code(code, language, linenos=self.linenos)

    def _render_table(self, rows: list[str]) -> str:
        def cells(row: str) -> list[str]:
            return [c.strip() for c in row.strip().strip("|").split("|")]

        head: list[str] = []
        if len(rows) > 1 and TABLE_SEPARATOR_RE.match(rows[1]):
            head = cells(rows[0])
            rows = rows[2:]

        parts = ["<table>"]
        if head:
            parts.append(
                "<thead><tr>"
                + "".join(f"<th>{self._render_inline(c)}</th>" for c in head)
                + "</tr></thead>"
            )
        parts.append("<tbody>")
        for row in rows:
            parts.append(
                "<tr>" + "".join(f"<td>{self._render_inline(c)}</td>" for c in cells(row)) + "</tr>"
            )
        parts.append("</tbody></table>")
        return "".join(parts)

    # ------------------------------------------------------------------
    # Inline
    # ------------------------------------------------------------------

    def _render_inline(self, text: str) -> str:
        """Apply inline formatting.

        Handles:
        - `code` -> <code>
        - pass:[text] -> text, escaped but otherwise untouched
        - [text](href) -> <a>
        - **bold** -> <strong>, *italic* -> <em>
        """
        result: list[str] = []
        for part in CODE_SPAN_RE.split(text):
            if len(part) > 1 and part.startswith("`") and part.endswith("`"):
                result.append(f"<code>{html.escape(part[1:-1])}</code>")
                continue

            last = 0
            for m in PASS_RE.finditer(part):
                result.append(self._format_text(part[last : m.start()]))
                result.append(html.escape(m.group(1)))
                last = m.end()
            result.append(self._format_text(part[last:]))
        return "".join(result)

    @staticmethod
    def _format_text(text: str) -> str:
        text = html.escape(text)
        text = LINK_RE.sub(r'<a href="\2">\1</a>', text)
        text = BOLD_RE.sub(r"<strong>\1</strong>", text)
        text = ITALIC_RE.sub(r"<em>\1</em>", text)
        return text


__all__ = ["HtmlRenderer", "slugify"]
