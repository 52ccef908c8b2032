"""Index pages for each directory of the destination tree.

Every directory gets an index document listing the files and directories
below it, with a details section per document (title, doc id, source file,
conversion issues and, when the history post-builder ran first, the git
history). Index documents are generated as Markdown and converted like any
other document.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, PackageLoader, select_autoescape

from mirrordocs.node_data import NodeData, SrcFromString
from mirrordocs.pathtree import PathTree
from mirrordocs.rendering.markdown_html import slugify

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter
    from mirrordocs.node_data import FileHistory

_log = logging.getLogger(__name__)

DEFAULT_BASENAME = "index"


def _cell(text: str) -> str:
    """Make ``text`` safe for a table cell."""
    return text.replace("|", "/").replace("\n", " ").strip()


class SubtreeIndexBuilder:
    """Post-builder generating one index page per destination directory.

    Directories are visited in post-order so that nested indices exist
    before the index of their parent directory links to them.

    Args:
        basename: File name (without suffix) of the index pages.
        doc_attributes: Extra document attributes for the index pages.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        basename: str = DEFAULT_BASENAME,
        doc_attributes: dict[str, Any] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.basename = basename
        self.doc_attributes = dict(doc_attributes or {})
        self.logger = logger or _log
        self._generated: set[PathTree] = set()
        self._env = Environment(
            loader=PackageLoader("mirrordocs.indexbuilders", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def on_postbuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        self._generated.clear()
        index_name = f"{self.basename}{converter.out_suffix}"

        # Collect first, the tree gets new leaves while indices are added
        directories = [n for _, n in dst_tree.traverse_postorder() if not n.is_leaf]
        for dir_node in directories:
            existing = dir_node.find(index_name)
            if existing is not None and existing.data is not None:
                self.logger.warning(
                    "%s already exists, no index generated for %s",
                    existing.pathname,
                    dir_node.pathname,
                )
                continue

            self.logger.info("Generating index for %s...", dir_node.pathname)
            source = self.index_source(dir_node, converter.out_suffix)

            v_path = PurePosixPath("/virtual") / f"{self.basename}.md"
            src_node = PathTree(v_path, SrcFromString(source, self.doc_attributes)).node(
                v_path, from_root=True
            )
            dst_node = dir_node.add_descendants(index_name)
            self._generated.add(dst_node)
            converter.convert(src_node, dst_node)

    def index_source(self, dir_node: PathTree, out_suffix: str) -> str:
        """Markdown source of the index page for ``dir_node``."""
        entries: list[dict[str, Any]] = []
        details: list[dict[str, Any]] = []

        # Sort a detached view so the destination tree keeps its order
        for level, node in self._sorted_children(dir_node):
            rel = node.relative_path_from(dir_node)
            if not node.is_leaf:
                entries.append(
                    {
                        "level": level,
                        "kind": "dir",
                        "label": node.segment,
                        "href": str(rel / f"{self.basename}{out_suffix}"),
                    }
                )
                continue

            data = node.data
            if not isinstance(data, NodeData) or data.conversion is None:
                continue

            anchor = slugify(str(rel))
            conv = data.conversion
            if data.converted:
                title = conv.title or conv.src_basename
                label = f"{conv.docid} - {title}" if conv.docid else title
                entries.append(
                    {
                        "level": level,
                        "kind": "doc",
                        "label": label,
                        "href": str(rel),
                        "anchor": anchor,
                        "issues": bool(conv.warnings),
                    }
                )
            else:
                title = conv.src_basename
                entries.append(
                    {"level": level, "kind": "fail", "label": title, "anchor": anchor}
                )

            details.append(
                {
                    "anchor": anchor,
                    "title": title,
                    "docid": conv.docid,
                    "source": str(conv.src_rel_path),
                    "error": getattr(conv, "error_msg", ""),
                    "warnings": list(getattr(conv, "warnings", [])),
                    "history": self._history_rows(data.history),
                }
            )

        dir_data = dir_node.data
        branch = dir_data.branch if isinstance(dir_data, NodeData) else None
        template = self._env.get_template("index.md.j2")
        return template.render(
            title=dir_node.segment or "Index",
            branch=branch,
            entries=entries,
            details=details,
        )

    def _sorted_children(self, dir_node: PathTree) -> list[tuple[int, PathTree]]:
        """(level, node) below ``dir_node``, leaves first then directories."""
        result: list[tuple[int, PathTree]] = []

        def visit(node: PathTree, level: int) -> None:
            children = sorted(
                (c for c in node.children if c not in self._generated),
                key=lambda c: (not c.is_leaf, c.segment or ""),
            )
            for c in children:
                result.append((level, c))
                if not c.is_leaf:
                    visit(c, level + 1)

        visit(dir_node, 1)
        return result

    @staticmethod
    def _history_rows(history: FileHistory | None) -> list[dict[str, str]] | None:
        if history is None:
            return None
        return [
            {
                "date": e.date.strftime("%Y-%m-%d"),
                "author": _cell(e.author),
                "message": _cell(e.message.splitlines()[0] if e.message else ""),
                "sha": e.sha[:8],
            }
            for e in history.entries
        ]


__all__ = ["SubtreeIndexBuilder", "DEFAULT_BASENAME"]
