"""
mirrordocs - Mirror a tree of Markdown documents into rendered HTML or PDF

mirrordocs converts every document below a source directory into a
destination directory with the same layout, resolves cross-document
references by document id, draws a dependency graph of those references,
generates per-directory index pages and can build one output tree per git
branch or tag.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mirrordocs")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed

from mirrordocs.converter import BuildReport, ErrorPolicy, TreeConverter
from mirrordocs.node_data import NodeData, SrcFromFile, SrcFromString
from mirrordocs.pathtree import PathTree

__all__ = [
    "__version__",
    "BuildReport",
    "ErrorPolicy",
    "NodeData",
    "PathTree",
    "SrcFromFile",
    "SrcFromString",
    "TreeConverter",
]
