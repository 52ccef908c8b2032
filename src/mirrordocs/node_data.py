"""Payloads attached to source and destination tree nodes.

Source leaves carry a SourceProvider that knows how to produce the markup
for the document. Destination nodes carry a NodeData holding named, optional
parts: the conversion result and the git history. Builders fill in their
own part and leave the others alone.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mirrordocs.pathtree import PathTree


@runtime_checkable
class SourceProvider(Protocol):
    """Produces the markup source for a source tree leaf."""

    def source(self, src_node: PathTree) -> str:
        """Return the document source text."""
        ...

    def document_attributes(self, src_node: PathTree) -> dict[str, Any]:
        """Return extra document attributes for this node."""
        ...


class SrcFromFile:
    """Reads the source from the file the node's pathname points at."""

    def __init__(self, attributes: dict[str, Any] | None = None) -> None:
        self.attributes = dict(attributes or {})

    def source(self, src_node: PathTree) -> str:
        return Path(src_node.pathname).read_text(encoding="utf-8")

    def document_attributes(self, src_node: PathTree) -> dict[str, Any]:
        return dict(self.attributes)


class SrcFromString:
    """Serves a fixed source string, e.g. for generated documents."""

    def __init__(self, text: str, attributes: dict[str, Any] | None = None) -> None:
        self.text = text
        self.attributes = dict(attributes or {})

    def source(self, src_node: PathTree) -> str:
        return self.text

    def document_attributes(self, src_node: PathTree) -> dict[str, Any]:
        return dict(self.attributes)


@dataclass
class ConversionInfo(ABC):
    """Outcome of converting one source node into one destination node.

    Attributes:
        src_node: The source leaf (non-owning back reference).
        dst_node: The destination leaf receiving the output.
        dst_top: Top of the destination tree for this build.
    """

    src_node: PathTree
    dst_node: PathTree
    dst_top: PathTree

    @property
    @abstractmethod
    def converted(self) -> bool: ...

    @property
    def src_basename(self) -> str:
        return self.src_node.pathname.name

    @property
    def src_rel_path(self) -> PurePosixPath:
        """Source file name placed at the destination's relative location."""
        return self.dst_node.relative_path_from(self.dst_top).parent / self.src_basename

    @property
    def dst_rel_path(self) -> PurePosixPath:
        """Path of the destination file relative to the destination top."""
        return self.dst_node.relative_path_from(self.dst_top)

    @property
    def title(self) -> str | None:
        return None

    @property
    def docid(self) -> str | None:
        return None

    def __str__(self) -> str:
        state = "succeeded" if self.converted else "failed"
        return (
            f"Conversion {state} - src: {self.src_node.pathname} "
            f"dst: {self.dst_node.pathname}"
        )


@dataclass
class SuccessfulConversion(ConversionInfo):
    """Data available after a document converted successfully."""

    attributes: dict[str, Any] = field(default_factory=dict)
    doc_title: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def converted(self) -> bool:
        return True

    @property
    def title(self) -> str | None:
        return self.doc_title

    @property
    def docid(self) -> str | None:
        return self.attributes.get("docid")


@dataclass
class FailedConversion(ConversionInfo):
    """Data available after a document failed to convert."""

    error_msg: str = ""

    @property
    def converted(self) -> bool:
        return False


@dataclass
class LogEntry:
    """One commit touching a file."""

    date: datetime
    author: str
    message: str
    sha: str


@dataclass
class FileHistory:
    """Commit history of a file, newest first, on a given branch."""

    branch: str
    entries: list[LogEntry] = field(default_factory=list)


@dataclass
class NodeData:
    """Payload of a destination tree node.

    Each field is owned by one builder: the converter sets ``conversion``,
    the history post-builder sets ``history``. Setting one never clears
    the other.
    """

    conversion: ConversionInfo | None = None
    history: FileHistory | None = None

    def attach_history(self, history: FileHistory) -> None:
        self.history = history

    @property
    def converted(self) -> bool:
        return self.conversion is not None and self.conversion.converted

    @property
    def src_node(self) -> PathTree | None:
        return self.conversion.src_node if self.conversion else None

    @property
    def title(self) -> str | None:
        return self.conversion.title if self.conversion else None

    @property
    def docid(self) -> str | None:
        return self.conversion.docid if self.conversion else None

    @property
    def branch(self) -> str | None:
        return self.history.branch if self.history else None


__all__ = [
    "SourceProvider",
    "SrcFromFile",
    "SrcFromString",
    "ConversionInfo",
    "SuccessfulConversion",
    "FailedConversion",
    "LogEntry",
    "FileHistory",
    "NodeData",
]
