"""Extension points of the three-phase build.

- PreBuilder: runs once before any document is converted.
- Preprocessor: runs on each document's source before rendering.
- PostBuilder: runs once after all documents have been converted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter
    from mirrordocs.pathtree import PathTree
    from mirrordocs.rendering.base import RenderContext


@runtime_checkable
class PreBuilder(Protocol):
    """Populates shared state from the source tree before the build."""

    def on_prebuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None: ...


@runtime_checkable
class Preprocessor(Protocol):
    """Transforms a document's source text before rendering."""

    def process(self, src_node: PathTree, source: str, context: RenderContext) -> str: ...


@runtime_checkable
class PostBuilder(Protocol):
    """Inspects or extends the destination tree after the build."""

    def on_postbuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None: ...


__all__ = ["PreBuilder", "Preprocessor", "PostBuilder"]
