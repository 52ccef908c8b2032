"""Top-level build entry point.

``run_build`` wires the tree converter and its extensions together from a
BuildConfig. In git mode it builds one destination tree per selected branch
or tag (``dstdir/<ref name with '/' replaced by '_'>``); otherwise it builds
the source directory as it is into ``dstdir``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from mirrordocs.config import BuildConfig
from mirrordocs.converter import BuildReport, ErrorPolicy, TreeConverter
from mirrordocs.depgraph import DependencyGraphPostBuilder
from mirrordocs.docid import DocIdCache, DocIdPreBuilder, DocIdResolver
from mirrordocs.errors import StructuralError
from mirrordocs.extensions import PostBuilder, PreBuilder, Preprocessor
from mirrordocs.gitrepos.checkout import GitCheckoutManager, GitRef
from mirrordocs.gitrepos.gititf import GitItf
from mirrordocs.gitrepos.history import AddHistoryPostBuilder
from mirrordocs.indexbuilders.subtree_index import SubtreeIndexBuilder
from mirrordocs.node_data import SrcFromFile
from mirrordocs.pathtree import PathTree
from mirrordocs.rendering.base import Renderer
from mirrordocs.rendering.markdown_html import HtmlRenderer
from mirrordocs.rendering.pdf import PdfRenderer
from mirrordocs.resources import CopyAssetDirsPostBuilder, CopyResourcesPreBuilder

_log = logging.getLogger(__name__)


@dataclass
class BuildOutcome:
    """Totals of a ``run_build`` call.

    Attributes:
        succeeded: Documents converted successfully (over all refs).
        failed: Documents that failed to convert (over all refs).
        generated: Index and graph pages generated (over all refs).
        generated_failed: Generated pages that failed to convert.
        reports: Per destination tree report, keyed by ref name ("" when
            not building from git refs).
        failed_refs: Refs that could not be checked out or built.
    """

    succeeded: int = 0
    failed: int = 0
    generated: int = 0
    generated_failed: int = 0
    reports: dict[str, BuildReport] = field(default_factory=dict)
    failed_refs: list[str] = field(default_factory=list)

    def add(self, name: str, report: BuildReport) -> None:
        self.reports[name] = report
        self.succeeded += report.succeeded
        self.failed += report.failed
        self.generated += report.generated
        self.generated_failed += report.generated_failed

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.generated_failed == 0 and not self.failed_refs


def ref_dirname(ref_name: str) -> str:
    """Directory name used for the output of a branch or tag."""
    return ref_name.replace("/", "_")


def source_predicate(suffixes: list[str], exclude: Path | None = None) -> Callable[[Path], bool]:
    """Select files with one of ``suffixes`` that are not below ``exclude``."""
    wanted = {s.lower() for s in suffixes}
    excluded = exclude.resolve() if exclude is not None else None

    def predicate(path: Path) -> bool:
        if path.suffix.lower() not in wanted:
            return False
        if excluded is not None and path.resolve().is_relative_to(excluded):
            return False
        return True

    return predicate


def build_src_tree(srcdir: Path, suffixes: list[str], exclude: Path | None = None) -> PathTree:
    """Mirror the source documents below ``srcdir`` into a tree.

    Returns:
        The node for ``srcdir``. Every document leaf reads its source from
        the file it represents.
    """
    tree = PathTree.build_from_fs(srcdir, prune=True, predicate=source_predicate(suffixes, exclude))
    top = tree.node(Path(os.path.abspath(srcdir)).as_posix(), from_root=True)
    for leaf in top.leaves():
        if leaf is not top:
            leaf.data = SrcFromFile()
    return top


def create_renderer(config: BuildConfig) -> Renderer:
    """Create the renderer for the configured output format.

    Raises:
        ExternalToolUnavailable: If the PDF tool chain is missing.
    """
    if config.format == "pdf":
        renderer = PdfRenderer(engine=config.pdf_engine)
        renderer.check_tools()
        return renderer
    return HtmlRenderer(stylesheet=config.stylesheet)


def build_tree(
    config: BuildConfig,
    dstdir: Path,
    renderer: Renderer,
    git_itf: GitItf | None = None,
    logger: logging.Logger | None = None,
) -> BuildReport:
    """Convert the current contents of ``config.srcdir`` into ``dstdir``.

    Args:
        config: Build settings.
        dstdir: Destination directory of this tree.
        renderer: The rendering engine.
        git_itf: When given, git history is added to the output.
        logger: Logger for all build components.
    """
    logger = logger or _log
    src_top = build_src_tree(config.srcdir, config.file_suffixes, exclude=config.dstdir)
    if src_top.is_leaf:
        logger.warning("No source documents found in %s", config.srcdir)

    pre_builders: list[PreBuilder] = []
    preprocessors: list[Preprocessor] = []
    post_builders: list[PostBuilder] = []

    if config.resource_dir is not None:
        pre_builders.append(CopyResourcesPreBuilder(config.resource_dir, logger=logger))

    resolver = None
    if config.resolve_docid:
        cache = DocIdCache()
        pre_builders.append(DocIdPreBuilder(cache, config.duplicate_docid, logger=logger))
        resolver = DocIdResolver(cache, logger=logger)
        preprocessors.append(resolver)

    if git_itf is not None:
        post_builders.append(AddHistoryPostBuilder(git_itf=git_itf, logger=logger))
    if resolver is not None:
        post_builders.append(
            DependencyGraphPostBuilder(
                resolver.node_2_ids, basename=config.graph_basename, logger=logger
            )
        )
    if config.make_index:
        post_builders.append(SubtreeIndexBuilder(config.index_basename, logger=logger))
    if config.copy_asset_folders:
        post_builders.append(
            CopyAssetDirsPostBuilder(config.copy_asset_folders, exclude=config.dstdir, logger=logger)
        )

    converter = TreeConverter(
        src_top,
        dstdir,
        renderer,
        pre_builders=pre_builders,
        preprocessors=preprocessors,
        post_builders=post_builders,
        error_policy=ErrorPolicy.ABORT if config.abort_on_error else ErrorPolicy.CONTINUE,
        logger=logger,
    )
    report = converter.run()
    logger.info(
        "Converted %d of %d documents into %s (%d generated pages)",
        report.succeeded,
        report.total,
        dstdir,
        report.generated,
    )
    return report


def run_build(config: BuildConfig, logger: logging.Logger | None = None) -> BuildOutcome:
    """Run a complete build as described by ``config``.

    Raises:
        StructuralError: If the source directory is missing, is not in a
            git repository (git mode), or the tree is inconsistent.
        ExternalToolUnavailable: If the output format needs a missing tool.
        PerDocumentError: If a document fails and ``abort_on_error`` is set.
    """
    logger = logger or _log
    srcdir = Path(config.srcdir)
    if not srcdir.is_dir():
        raise StructuralError(f"Source directory not found: {srcdir}")

    renderer = create_renderer(config)
    outcome = BuildOutcome()

    if not config.git.enabled:
        outcome.add("", build_tree(config, Path(config.dstdir), renderer, logger=logger))
        return outcome

    manager = GitCheckoutManager(
        srcdir,
        local_only=config.git.local_only,
        branch_regex=config.git.branch_regex or None,
        tag_regex=config.git.tag_regex or None,
        abort_on_error=config.abort_on_error,
        logger=logger,
    )

    def build_ref(ref: GitRef) -> None:
        dstdir = Path(config.dstdir) / ref_dirname(ref.name)
        outcome.add(ref.name, build_tree(config, dstdir, renderer, manager.git_itf, logger))

    checkout_report = manager.each_checkout(build_ref)
    outcome.failed_refs.extend(checkout_report.failed)
    if not checkout_report.restored:
        logger.error("The working tree of %s was not restored", manager.repo_root)
    return outcome


__all__ = [
    "BuildOutcome",
    "build_src_tree",
    "build_tree",
    "create_renderer",
    "ref_dirname",
    "run_build",
    "source_predicate",
]
