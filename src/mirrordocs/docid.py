"""Doc id cross references.

Two cooperating extensions:

- DocIdPreBuilder scans the header of every source leaf for a
  ``:docid: <ID>`` attribute and fills a DocIdCache {doc id -> source node}.
- DocIdResolver is a preprocessor that rewrites references of the form
  ``<<:docid:ID#section,Display text>>`` into Markdown links pointing at the
  referenced document's rendered output. While doing so it records, per
  source node, which doc ids the node references (``node_2_ids``), which
  the dependency graph consumes after the build.

The cache is written during pre-build and only read during build. The
resolver refuses to run against a cache that has not been completed.
"""

from __future__ import annotations

import logging
import posixpath
import re
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from mirrordocs.errors import DuplicateIdentifierError, StructuralError
from mirrordocs.pathtree import PathTree
from mirrordocs.utilities.docheader import parse_header

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter
    from mirrordocs.rendering.base import RenderContext

_log = logging.getLogger(__name__)

# The minimum and maximum number of characters of a valid doc id
ID_MIN_LENGTH = 2
ID_MAX_LENGTH = 10

DOCID_REF_REGEX = re.compile(r"<<\s*:docid:\s*(.*?)>>")

# Text inside pass:[...] is left untouched.
PASS_MACRO_REGEX = re.compile(r"pass:\[.*?\]")

UNKNOWN_DOC = "UNKNOWN_DOC"


class DuplicatePolicy(Enum):
    """How to handle a doc id declared by more than one document."""

    FATAL = "fatal"
    FIRST_WINS = "first"
    LAST_WINS = "last"


def doc_id_ok(doc_id: str) -> bool:
    """Check length limits and that the id does not contain '#'."""
    return ID_MIN_LENGTH <= len(doc_id) <= ID_MAX_LENGTH and "#" not in doc_id


class DocIdCache:
    """Write-once mapping of doc id to the source node declaring it."""

    def __init__(self) -> None:
        self._id_2_node: dict[str, PathTree] = {}
        self._complete = False

    @property
    def complete(self) -> bool:
        return self._complete

    def add(self, doc_id: str, node: PathTree) -> None:
        if self._complete:
            raise StructuralError(f"Doc id cache is already complete, can not add '{doc_id}'")
        self._id_2_node[doc_id] = node

    def mark_complete(self) -> None:
        self._complete = True

    def reset(self) -> None:
        self._id_2_node.clear()
        self._complete = False

    def lookup(self, doc_id: str) -> PathTree | None:
        if not self._complete:
            raise StructuralError(
                f"Doc id '{doc_id}' looked up before the doc id cache was complete"
            )
        return self._id_2_node.get(doc_id)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._id_2_node

    def __len__(self) -> int:
        return len(self._id_2_node)

    def get(self, doc_id: str) -> PathTree | None:
        return self._id_2_node.get(doc_id)

    def items(self):
        return self._id_2_node.items()


class DocIdPreBuilder:
    """Pre-builder that fills a DocIdCache from the source tree.

    Args:
        cache: The cache to populate (a new one is created if omitted).
        duplicate_policy: What to do when a doc id is declared twice.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        cache: DocIdCache | None = None,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.FATAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache if cache is not None else DocIdCache()
        self.duplicate_policy = duplicate_policy
        self.logger = logger or _log

    def on_prebuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        self.scan(src_tree)

    def scan(self, src_tree: PathTree) -> DocIdCache:
        """Scan all leaves below ``src_tree`` and complete the cache."""
        self.cache.reset()
        for _, node in src_tree.traverse_preorder():
            if node.is_leaf and node.data is not None:
                self._parse_node(node)
        self.cache.mark_complete()
        return self.cache

    def _parse_node(self, node: PathTree) -> None:
        self.logger.debug("parsing %s for docid...", node.pathname)
        try:
            source = node.data.source(node)
        except (OSError, ValueError) as e:
            # The build phase reports unreadable documents.
            self.logger.warning("Could not read %s: %s", node.pathname, e)
            return

        doc_id = parse_header(source).attributes.get("docid")
        if doc_id is None:
            return

        doc_id = doc_id.strip()
        if not doc_id_ok(doc_id):
            self.logger.error("Invalid docid: %s in file %s, this will be ignored!", doc_id, node.pathname)
            return

        previous = self.cache.get(doc_id)
        if previous is not None:
            if self.duplicate_policy is DuplicatePolicy.FATAL:
                raise DuplicateIdentifierError(doc_id, previous.pathname, node.pathname)
            if self.duplicate_policy is DuplicatePolicy.FIRST_WINS:
                self.logger.warning(
                    "Found same doc id twice: (%s). Keeping '%s', ignoring '%s'.",
                    doc_id,
                    previous.pathname,
                    node.pathname,
                )
                return
            self.logger.warning(
                "Found same doc id twice: (%s). Using '%s' instead of '%s'.",
                doc_id,
                node.pathname,
                previous.pathname,
            )

        self.cache.add(doc_id, node)


def parse_doc_id_ref(input_str: str) -> tuple[str, str, str]:
    """Split ``ID[#section][,display]`` into (id, section, display).

    The display text defaults to the id.
    """
    ref, _, display = input_str.partition(",")
    doc_id, _, section = ref.strip().partition("#")
    doc_id = doc_id.strip()
    display = display.strip() or doc_id
    return doc_id, section.strip(), display


class DocIdResolver:
    """Preprocessor that resolves doc id references.

    Args:
        cache: A DocIdCache populated by DocIdPreBuilder.
        logger: Logger for unresolved references.
    """

    def __init__(self, cache: DocIdCache, logger: logging.Logger | None = None) -> None:
        self.cache = cache
        self.logger = logger or _log
        # {src_node => [referenced doc ids]}, unique, first-seen order
        self.node_2_ids: dict[PathTree, list[str]] = {}

    def process(self, src_node: PathTree, source: str, context: RenderContext) -> str:
        refs = self.node_2_ids.setdefault(src_node, [])
        lines = source.split("\n")
        for i, line in enumerate(lines):
            if line.startswith("//"):
                continue
            lines[i] = self._resolve_line(line, src_node, context, refs)
        return "\n".join(lines)

    def _resolve_line(
        self,
        line: str,
        src_node: PathTree,
        context: RenderContext,
        refs: list[str],
    ) -> str:
        protected: list[str] = []

        def _protect(m: re.Match[str]) -> str:
            protected.append(m.group(0))
            return f"\x00{len(protected) - 1}\x00"

        line = PASS_MACRO_REGEX.sub(_protect, line)

        def _replace(m: re.Match[str]) -> str:
            target_id, section, display = parse_doc_id_ref(m.group(1))
            self.logger.debug("Found docid ref to %s in file: %s...", target_id, src_node.pathname)

            target = self.cache.lookup(target_id)
            if target is None:
                self.logger.warning(
                    "Could not resolve ref to %s from file: %s", target_id, src_node.pathname
                )
                return f"{UNKNOWN_DOC} ({target_id})"

            if target_id not in refs:
                refs.append(target_id)
            href = self.link_target(src_node, target, context.out_suffix)
            if section:
                href = f"{href}#{section}"
            return f"[{display}]({href})"

        line = DOCID_REF_REGEX.sub(_replace, line)

        for idx, text in enumerate(protected):
            line = line.replace(f"\x00{idx}\x00", text)
        return line

    @staticmethod
    def link_target(src_node: PathTree, target: PathTree, out_suffix: str) -> str:
        """Relative path from ``src_node``'s directory to ``target``'s output."""
        rel = posixpath.relpath(str(target.pathname), str(src_node.pathname.parent))
        return PurePosixPath(rel).with_suffix(out_suffix).as_posix()


__all__ = [
    "DocIdCache",
    "DocIdPreBuilder",
    "DocIdResolver",
    "DuplicatePolicy",
    "doc_id_ok",
    "parse_doc_id_ref",
    "ID_MIN_LENGTH",
    "ID_MAX_LENGTH",
]
