"""Post-builders generating index pages."""

from mirrordocs.indexbuilders.subtree_index import SubtreeIndexBuilder

__all__ = ["SubtreeIndexBuilder"]
