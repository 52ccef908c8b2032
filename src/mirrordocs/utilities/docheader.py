"""Document header parsing.

A document header is the optional ``# Title`` line followed by attribute
lines of the form ``:name: value``. The header ends at the first blank line
or the first line that is neither. Example::

    # Design of the frobnicator
    :docid: D-001
    :author: A. Person

    Body text starts here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator

TITLE_RE = re.compile(r"^#\s+(.+?)\s*#*\s*$")
ATTRIBUTE_RE = re.compile(r"^:([A-Za-z0-9_][A-Za-z0-9_-]*):(?:\s+(.*))?$")


@dataclass
class DocHeader:
    """Parsed document header.

    Attributes:
        title: The document title, or None if the document has no title line.
        attributes: Header attributes in declaration order.
        body_start: Index of the first body line.
    """

    title: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    body_start: int = 0


def iter_header_lines(lines: list[str]) -> Iterator[tuple[int, str]]:
    """Yield (index, line) for each line belonging to the header."""
    i = 0
    while i < len(lines) and not lines[i].strip():
        i += 1

    first = True
    while i < len(lines):
        line = lines[i].rstrip("\n")
        if not line.strip():
            return
        is_title = first and TITLE_RE.match(line) is not None
        if not is_title and not ATTRIBUTE_RE.match(line):
            return
        yield i, line
        first = False
        i += 1


def parse_header(text: str) -> DocHeader:
    """Parse the header of a document given as text."""
    lines = text.splitlines()
    header = DocHeader()
    last = -1
    for i, line in iter_header_lines(lines):
        last = i
        title = TITLE_RE.match(line)
        if title and header.title is None and not header.attributes:
            header.title = title.group(1)
            continue
        attr = ATTRIBUTE_RE.match(line)
        if attr:
            header.attributes[attr.group(1)] = (attr.group(2) or "").strip()

    header.body_start = last + 1
    return header


__all__ = ["DocHeader", "parse_header", "iter_header_lines"]
