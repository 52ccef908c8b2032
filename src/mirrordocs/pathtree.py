"""PathTree - a hierarchical container addressed by path segments.

The tree turns a set of paths such as::

    basedir/file_1
    basedir/dir1/file_3
    basedir/dir1/file_4

into::

    basedir
      file_1
      dir1
        file_3
        file_4

Every node is identified by its path from the tree root. Looking up a path
always yields the same node object, and adding a path creates all missing
intermediate nodes. Each node carries an optional, opaque ``data`` payload
that is owned by whichever builder assigned it.
"""

from __future__ import annotations

import os
import posixpath
import re
from collections import deque
from pathlib import Path, PurePath, PurePosixPath
from typing import Any, Callable, Iterator, Sequence, Union

from mirrordocs.errors import NodeNotFoundError, StructuralError

PathLike = Union[str, PurePath, Sequence[str]]


def _split(path: PathLike) -> tuple[list[str], bool]:
    """Split a path into segments.

    Returns:
        Tuple of (segments, is_absolute).
    """
    if isinstance(path, (str, PurePath)):
        text = path.as_posix() if isinstance(path, PurePath) else path.replace("\\", "/")
        parts = PurePosixPath(text).parts
        if parts and parts[0] == "/":
            return list(parts[1:]), True
        return [p for p in parts if p != "."], False

    segments = list(path)
    for s in segments:
        if not isinstance(s, str) or not s or "/" in s:
            raise StructuralError(f"Malformed path segment: {s!r}")
    return segments, False


class PathTree:
    """A node in a tree addressed by filesystem-like paths.

    ``PathTree()`` creates an anonymous root that paths are added below.
    ``PathTree("a/b/c", data)`` creates the chain a -> b -> c and attaches
    ``data`` to the ``c`` node; the returned object is the ``a`` node.

    Args:
        path: Optional initial path; its first segment names this node.
        data: Payload for the tail node of ``path``.
    """

    def __init__(self, path: PathLike | None = None, data: Any = None) -> None:
        self._segment: str | None = None
        self._parent: PathTree | None = None
        self._children: list[PathTree] = []
        self._data: Any = None
        self._absolute = False

        if path is None:
            self._data = data
            return

        segments, self._absolute = _split(path)
        if not segments:
            raise StructuralError(f"Can not create a tree from an empty path: {path!r}")

        self._segment = segments[0]
        if len(segments) == 1:
            self._data = data
        else:
            self._create_chain(segments[1:], data)

    # ------------------------------------------------------------------
    # Basic properties
    # ------------------------------------------------------------------

    @property
    def segment(self) -> str | None:
        """The path segment naming this node (None for an anonymous root)."""
        return self._segment

    @property
    def data(self) -> Any:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        self._data = value

    @property
    def parent(self) -> PathTree | None:
        return self._parent

    @property
    def children(self) -> list[PathTree]:
        """Children in insertion order (a copy; mutate via add_* methods)."""
        return list(self._children)

    @property
    def is_leaf(self) -> bool:
        return not self._children

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def root(self) -> PathTree:
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def level(self) -> int:
        """Number of hops from the tree root."""
        count = 0
        node = self
        while node._parent is not None:
            count += 1
            node = node._parent
        return count

    @property
    def pathname(self) -> PurePosixPath:
        """Path from the tree root to this node."""
        segments: list[str] = []
        node: PathTree | None = self
        while node is not None:
            if node._segment is not None:
                segments.append(node._segment)
            node = node._parent
        segments.reverse()
        anchor = "/" if self.root._absolute else ""
        return PurePosixPath(anchor, *segments)

    def relative_path_from(self, other: PathTree) -> PurePosixPath:
        """Return the path of this node relative to ``other``."""
        return PurePosixPath(posixpath.relpath(str(self.pathname), str(other.pathname)))

    def __repr__(self) -> str:
        return f"PathTree({str(self.pathname)!r})"

    def __iter__(self) -> Iterator[PathTree]:
        """Iterate over this node and its descendants in pre-order."""
        for _, node in self.traverse_preorder():
            yield node

    def __len__(self) -> int:
        return sum(1 for _ in self.traverse_preorder())

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _create_chain(self, segments: list[str], data: Any) -> PathTree:
        node = self
        for segment in segments:
            child = PathTree()
            child._segment = segment
            child._parent = node
            node._children.append(child)
            node = child
        node._data = data
        return node

    def _child(self, segment: str) -> PathTree | None:
        for c in self._children:
            if c._segment == segment:
                return c
        return None

    def _root_relative(self, path: PathLike) -> tuple[PathTree, list[str]]:
        """Resolve ``path`` against the tree root.

        Returns the root and the segments that remain below it.
        """
        root = self.root
        segments, _ = _split(path)
        if root._segment is None:
            return root, segments
        if not segments or segments[0] != root._segment:
            raise StructuralError(
                f"Path '{path}' does not start with the tree root '{root._segment}'"
            )
        return root, segments[1:]

    def add_path(self, path: PathLike, data: Any = None) -> PathTree:
        """Add ``path`` (given from the tree root) and return its tail node.

        Missing intermediate nodes are created with no data. Adding a path
        that already exists returns the existing node; ``data`` is only
        assigned if that node has none.
        """
        root, segments = self._root_relative(path)
        if not segments:
            if root._segment is None:
                raise StructuralError("Can not add an empty path to an anonymous root")
            return root
        return root.add_descendants(segments, data)

    def add_descendants(self, path: PathLike, data: Any = None) -> PathTree:
        """Add ``path`` (given relative to this node) and return its tail node."""
        segments, _ = _split(path)
        if not segments:
            raise StructuralError(f"Can not add an empty path below {self!r}")

        node = self
        for i, segment in enumerate(segments):
            child = node._child(segment)
            if child is None:
                return node._create_chain(segments[i:], data)
            node = child
        if node._data is None:
            node._data = data
        return node

    def add_tree(self, tree: PathTree) -> PathTree:
        """Attach an existing tree (its root node) as a child of this node."""
        if tree._parent is not None:
            raise StructuralError(f"{tree!r} is already part of another tree")
        if tree._segment is None:
            raise StructuralError("Can not attach an anonymous root")
        if self._child(tree._segment) is not None:
            raise StructuralError(f"{self!r} already has a child named '{tree._segment}'")
        tree._parent = self
        tree._absolute = False
        self._children.append(tree)
        return tree

    @classmethod
    def build_from_fs(
        cls,
        root: Path | str,
        prune: bool = False,
        predicate: Callable[[Path], bool] | None = None,
    ) -> PathTree:
        """Build a tree that mirrors a directory on disk.

        Args:
            root: Directory to scan.
            prune: If True, directories without any selected file are left out.
            predicate: Selects which files become leaves (default: all files).

        Returns:
            The root of the new tree. The node for ``root`` itself is found
            with ``tree.node(root, from_root=True)``.
        """
        top = Path(os.path.abspath(root))
        if not top.is_dir():
            raise StructuralError(f"Not a directory: {top}")

        tree = cls(top.as_posix())
        top_node = tree.node(top.as_posix(), from_root=True)
        cls._scan_dir(top, top_node, prune, predicate)
        return tree

    @classmethod
    def _scan_dir(
        cls,
        directory: Path,
        node: PathTree,
        prune: bool,
        predicate: Callable[[Path], bool] | None,
    ) -> bool:
        found = False
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                child = node.add_descendants(entry.name)
                if cls._scan_dir(entry, child, prune, predicate):
                    found = True
                elif prune:
                    node._children.remove(child)
                    child._parent = None
            elif predicate is None or predicate(entry):
                node.add_descendants(entry.name)
                found = True
        return found

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, path: PathLike, from_root: bool = False) -> PathTree | None:
        """Return the node at ``path`` or None.

        Args:
            path: Path relative to this node, or to the tree root if
                ``from_root`` is True (then it starts with the root segment).
        """
        if from_root:
            try:
                node, segments = self._root_relative(path)
            except StructuralError:
                return None
        else:
            node = self
            segments, _ = _split(path)

        for segment in segments:
            child = node._child(segment)
            if child is None:
                return None
            node = child
        return node

    def node(self, path: PathLike, from_root: bool = False) -> PathTree:
        """Return the node at ``path``.

        Raises:
            NodeNotFoundError: If no such node exists.
        """
        found = self.find(path, from_root=from_root)
        if found is None:
            raise NodeNotFoundError(path)
        return found

    def match(self, pattern: str | re.Pattern[str]) -> list[PathTree]:
        """Return all nodes (pre-order) whose pathname matches ``pattern``."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [n for _, n in self.traverse_preorder() if regex.search(str(n.pathname))]

    def leaves(self) -> Iterator[PathTree]:
        for _, n in self.traverse_preorder():
            if n.is_leaf:
                yield n

    def leave_pathnames(self) -> list[PurePosixPath]:
        return [n.pathname for n in self.leaves()]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def traverse_preorder(self) -> Iterator[tuple[int, PathTree]]:
        """Yield (level, node) with parents before children.

        Levels are relative to the node the traversal starts at.
        """
        stack: list[tuple[int, PathTree]] = [(0, self)]
        while stack:
            level, node = stack.pop()
            yield level, node
            stack.extend((level + 1, c) for c in reversed(node._children))

    def traverse_postorder(self) -> Iterator[tuple[int, PathTree]]:
        """Yield (level, node) with children before parents."""
        stack: list[tuple[int, PathTree, bool]] = [(0, self, False)]
        while stack:
            level, node, expanded = stack.pop()
            if expanded or not node._children:
                yield level, node
                continue
            stack.append((level, node, True))
            stack.extend((level + 1, c, False) for c in reversed(node._children))

    def traverse_levelorder(self) -> Iterator[tuple[int, PathTree]]:
        """Yield (level, node) breadth first."""
        queue: deque[tuple[int, PathTree]] = deque([(0, self)])
        while queue:
            level, node = queue.popleft()
            yield level, node
            queue.extend((level + 1, c) for c in node._children)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sort_leaf_first(self) -> PathTree:
        """Sort each level lexically, leaves before non-leaves. Returns self."""
        for _, node in self.traverse_preorder():
            node._children.sort(key=lambda c: (not c.is_leaf, c._segment or ""))
        return self


__all__ = ["PathTree", "PathLike"]
