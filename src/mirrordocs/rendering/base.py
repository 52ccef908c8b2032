"""Rendering delegate interface.

The converter hands each document's (preprocessed) source and attribute
mapping to a Renderer and writes the returned bytes to the destination.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mirrordocs.pathtree import PathTree


@dataclass
class RenderContext:
    """Per-document information available to preprocessors and renderers.

    Attributes:
        src_node: The source leaf being converted.
        dst_node: The destination leaf receiving the output.
        dst_top: Top of the destination tree.
        out_suffix: File suffix of the rendered output (e.g. ".html").
        attributes: Document attributes (header attributes merged with
            attributes supplied by the source provider).
    """

    src_node: PathTree
    dst_node: PathTree
    dst_top: PathTree
    out_suffix: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class RenderResult:
    """Output of one rendering call."""

    content: bytes
    title: str | None = None
    warnings: list[str] = field(default_factory=list)


@runtime_checkable
class Renderer(Protocol):
    """Protocol for rendering engines.

    Implementations raise mirrordocs.errors.RenderError on failure.
    """

    out_suffix: str

    def render(self, source: str, context: RenderContext) -> RenderResult:
        """Render ``source`` to the output format.

        Args:
            source: Document source after preprocessing.
            context: Document attributes and tree position.

        Returns:
            The rendered document.
        """
        ...


__all__ = ["RenderContext", "RenderResult", "Renderer"]
