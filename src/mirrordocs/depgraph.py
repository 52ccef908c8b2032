"""Document dependency graph.

After the build, the references collected by the doc id resolver are turned
into a graphviz digraph with one node per converted document and one edge
per doc id reference. The graph is wrapped in a generated Markdown page
that is converted like any other document, so the rendering engine needs
no special handling for it.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from mirrordocs.node_data import NodeData, SrcFromString
from mirrordocs.pathtree import PathTree
from mirrordocs.rendering.graphviz import dot_supported

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter

_log = logging.getLogger(__name__)

DEFAULT_BASENAME = "gibgraph"

# Words of this length or shorter are never hyphenated
_TOO_SHORT = 4


def break_line(line: str, max_length: int) -> list[str]:
    """Break ``line`` into rows of at most ``max_length`` characters.

    Words are moved to the next row when they do not fit. Long words that
    would leave a large gap are split with a trailing ``-``.

    Raises:
        ValueError: If ``max_length`` is shorter than 4.
    """
    if len(line) <= _TOO_SHORT:
        return [line]
    if max_length < _TOO_SHORT:
        raise ValueError(f"max_length must be larger than {_TOO_SHORT - 1}")

    rows: list[str] = []
    row = ""
    words = line.split()
    while words:
        word = words[0]
        row_space = max_length - len(row)
        sep = " " if row else ""

        if row_space - (len(word) + len(sep)) >= 0:
            row = f"{row}{sep}{word}"
            words.pop(0)
            continue

        split_word = not (
            len(word) <= _TOO_SHORT
            or row_space <= _TOO_SHORT
            or len(word) / row_space < 0.5
        )
        if split_word:
            first_part = word[: row_space - (1 + len(sep))]
            row = f"{row}{sep}{first_part}-"
            words[0] = word[len(first_part) :]
        elif not row:
            # A word longer than a whole row gets a row of its own
            row = word
            words.pop(0)

        rows.append(row)
        row = ""

    if row:
        rows.append(row)
    return rows


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _quote(text: str) -> str:
    return f'"{_escape(text)}"'


class DotDigraph:
    """Graphviz source for a {destination node: [referenced doc ids]} map.

    Each destination node's data must be a NodeData with a conversion.
    Documents without a doc id get a generated id (``_generated_id_0001``,
    ...). Nodes of HTML documents link to the document.

    Args:
        info_2_ids: Referenced doc ids per destination node.
        title_width: Row width used when wrapping titles in node labels.
    """

    def __init__(self, info_2_ids: dict[PathTree, list[str]], title_width: int = 15) -> None:
        self.info_2_ids = info_2_ids
        self.title_width = title_width
        self._noid_docs: dict[PathTree, str] = {}
        self._next_id = 0

    def source(self) -> str:
        self._noid_docs.clear()
        self._next_id = 0
        return "\n".join(
            [self._graph_header(), self._generate_labels(), self._generate_deps(), "}"]
        )

    def _graph_header(self) -> str:
        return (
            "digraph document_deps {\n"
            '  bgcolor="#33333310"\n'
            "  labeljust=l\n"
            '  node [shape=note, fillcolor="#ebf26680", style="filled,solid"]\n'
            '  rankdir="LR"\n'
        )

    def _next_fake_id(self) -> str:
        self._next_id += 1
        return f"_generated_id_{self._next_id:04d}"

    def _node_id(self, dst_node: PathTree) -> str:
        data: NodeData = dst_node.data
        if data.docid:
            return data.docid
        return self._noid_docs[dst_node]

    def _make_entry(self, dst_node: PathTree) -> tuple[str, str]:
        data: NodeData = dst_node.data
        title = (
            "\\n".join(_escape(row) for row in break_line(data.title, self.title_width))
            if data.title
            else ""
        )

        if data.docid:
            doc_id = data.docid
            label = f"{_escape(doc_id)}\\n{title}"
        else:
            doc_id = self._next_fake_id()
            self._noid_docs[dst_node] = doc_id
            label = f"-\\n{title}"

        entry = f'{_quote(doc_id)}[label="{label}"'
        rel_path = data.conversion.dst_rel_path
        # Clickable nodes are only supported for html output
        if rel_path.suffix == ".html":
            entry += f", URL={_quote(str(rel_path))}"
        return doc_id, entry + " ]"

    def _generate_labels(self) -> str:
        entries = dict(self._make_entry(n) for n in self.info_2_ids)
        # Reverse doc id order displays them in ascending order in the graph
        return "\n".join(entries[k] for k in sorted(entries, reverse=True))

    def _generate_deps(self) -> str:
        lines = []
        for dst_node, targets in self.info_2_ids.items():
            src_part = _quote(self._node_id(dst_node))
            if not targets:
                lines.append(src_part)
                continue
            lines.append(f"{src_part} -> {{ {' '.join(_quote(t) for t in targets)} }}")
        return "\n".join(lines)


def graph_page_source(info_2_ids: dict[PathTree, list[str]], title: str = "Dependency graph") -> str:
    """Markdown source of the page embedding the dependency graph."""
    return f"# {title}\n\n```dot\n{DotDigraph(info_2_ids).source()}\n```\n"


class DependencyGraphPostBuilder:
    """Post-builder adding a dependency graph page to the destination root.

    Does nothing (apart from a warning) if graphviz is not installed.

    Args:
        node_2_ids: {source node: [referenced doc ids]}, typically
            ``DocIdResolver.node_2_ids``. Read during post-build, so it must
            be populated by the end of the build phase.
        basename: File name (without suffix) of the graph page.
        doc_attributes: Extra document attributes for the graph page.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        node_2_ids: dict[PathTree, list[str]],
        basename: str = DEFAULT_BASENAME,
        doc_attributes: dict[str, Any] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.node_2_ids = node_2_ids
        self.basename = basename
        self.doc_attributes = dict(doc_attributes or {})
        self.logger = logger or _log

    def collect(self, dst_tree: PathTree) -> dict[PathTree, list[str]]:
        """Re-key the source node map by converted destination leaves."""
        info_2_ids: dict[PathTree, list[str]] = {}
        for _, dst_node in dst_tree.traverse_preorder():
            if not dst_node.is_leaf or not isinstance(dst_node.data, NodeData):
                continue
            if not dst_node.data.converted:
                continue
            src_node = dst_node.data.src_node
            if src_node in self.node_2_ids:
                info_2_ids[dst_node] = self.node_2_ids[src_node]
        return info_2_ids

    def on_postbuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        if not dot_supported():
            self.logger.warning(
                "Could not find the 'dot' tool needed to generate a dependency graph, skipping it."
            )
            return

        page_name = f"{self.basename}{converter.out_suffix}"
        existing = dst_tree.find(page_name)
        if existing is not None and existing.data is not None:
            self.logger.warning(
                "%s already exists, no dependency graph generated", existing.pathname
            )
            return

        self.logger.info("Generating the document dependency graph...")
        source = graph_page_source(self.collect(dst_tree))

        v_path = PurePosixPath("/virtual") / f"{self.basename}.md"
        src_node = PathTree(v_path, SrcFromString(source, self.doc_attributes)).node(
            v_path, from_root=True
        )
        dst_node = dst_tree.add_descendants(page_name)
        converter.convert(src_node, dst_node)


__all__ = [
    "DEFAULT_BASENAME",
    "DependencyGraphPostBuilder",
    "DotDigraph",
    "break_line",
    "graph_page_source",
]
