"""Post-builder attaching git history to destination nodes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from mirrordocs.errors import RevisionSyncError
from mirrordocs.gitrepos.gititf import GitItf
from mirrordocs.node_data import FileHistory, NodeData
from mirrordocs.pathtree import PathTree

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter

_log = logging.getLogger(__name__)


class AddHistoryPostBuilder:
    """Adds a FileHistory to each destination node.

    Leaves get the commit log of their source file on the current branch.
    Directory nodes without data get an empty history that only records the
    branch. Existing conversion results are left untouched, and leaves whose
    source is not a file on disk (generated documents) are skipped.

    Args:
        repo_root: A path inside the git repository (ignored when
            ``git_itf`` is given).
        git_itf: Git interface to use.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        repo_root: Path | str | None = None,
        git_itf: GitItf | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or _log
        if git_itf is None:
            if repo_root is None:
                raise ValueError("Either repo_root or git_itf is required")
            git_itf = GitItf(repo_root, logger=self.logger)
        self.git_itf = git_itf

    def on_postbuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        branch = self.git_itf.current_branch()
        self.logger.info("Adding git history from branch '%s'...", branch)

        for _, dst_node in dst_tree.traverse_preorder():
            if not dst_node.is_leaf:
                if dst_node.data is None:
                    dst_node.data = NodeData(history=FileHistory(branch))
                continue

            data = dst_node.data
            if not isinstance(data, NodeData) or data.src_node is None:
                continue

            src_path = Path(data.src_node.pathname)
            if not src_path.exists():
                continue

            rel_path = src_path.resolve().relative_to(self.git_itf.repo_root)
            try:
                entries = self.git_itf.file_log(rel_path)
            except RevisionSyncError as e:
                self.logger.warning("No history for %s: %s", src_path, e)
                entries = []
            data.attach_history(FileHistory(branch, entries))


__all__ = ["AddHistoryPostBuilder"]
