"""TreeConverter - three-phase conversion of a source tree.

The converter walks a source PathTree and mirrors it into a destination
PathTree, rendering each source leaf into one destination leaf:

1. pre_build: every registered PreBuilder runs once with the source tree.
   Shared caches (e.g. the doc id cache) are complete when this returns.
2. build: each source leaf is preprocessed, rendered and written. A failing
   document is recorded and, unless the abort policy is active, the build
   continues with the next one.
3. post_build: every registered PostBuilder runs once. Post-builders may
   add synthetic destination nodes and convert them via ``convert``.

The phases must run in this order; running them out of order raises
StructuralError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Callable, Iterable

from mirrordocs.errors import PerDocumentError, StructuralError
from mirrordocs.extensions import PostBuilder, PreBuilder, Preprocessor
from mirrordocs.node_data import FailedConversion, NodeData, SuccessfulConversion
from mirrordocs.pathtree import PathTree
from mirrordocs.rendering.base import RenderContext, Renderer
from mirrordocs.utilities.docheader import parse_header

_log = logging.getLogger(__name__)


class ErrorPolicy(Enum):
    """What to do when a single document fails to convert."""

    CONTINUE = "continue"
    ABORT = "abort"


class Phase(Enum):
    NEW = 0
    PRE_BUILT = 1
    BUILT = 2
    POST_BUILT = 3


@dataclass
class BuildReport:
    """Counts of converted and failed documents for one converter run.

    ``succeeded`` and ``failed`` count source documents (the build phase).
    Pages generated by post-builders (index pages, the dependency graph)
    are counted in ``generated`` and ``generated_failed``. ``failures``
    lists every failed conversion of either kind.
    """

    succeeded: int = 0
    failed: int = 0
    generated: int = 0
    generated_failed: int = 0
    failures: list[FailedConversion] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def __bool__(self) -> bool:
        return self.failed == 0 and self.generated_failed == 0


SuccessCallback = Callable[[PathTree, PathTree, SuccessfulConversion], None]
FailureCallback = Callable[[PathTree, PathTree, Exception], None]


class TreeConverter:
    """Converts all leaves below ``src_top`` into a tree rooted at ``dst_top``.

    Source leaves must carry a SourceProvider as data; leaves without data
    (e.g. empty directories kept by an unpruned scan) are skipped.

    Args:
        src_top: Top node of the source tree.
        dst_top: Path of the destination directory.
        renderer: The rendering engine.
        pre_builders: Run once before the build phase.
        preprocessors: Applied in order to each document's source.
        post_builders: Run once after the build phase.
        error_policy: Continue or abort when a document fails.
        doc_attributes: Default attributes for every document.
        write_files: Write rendered output to disk (False keeps the build
            in memory, used by dry runs and tests).
        on_success: Called with (src_node, dst_node, info) per success.
        on_failure: Called with (src_node, dst_node, exception) per failure.
        logger: Logger for progress and per-document errors.
    """

    def __init__(
        self,
        src_top: PathTree,
        dst_top: Path | str,
        renderer: Renderer,
        pre_builders: Iterable[PreBuilder] = (),
        preprocessors: Iterable[Preprocessor] = (),
        post_builders: Iterable[PostBuilder] = (),
        error_policy: ErrorPolicy = ErrorPolicy.CONTINUE,
        doc_attributes: dict[str, Any] | None = None,
        write_files: bool = True,
        on_success: SuccessCallback | None = None,
        on_failure: FailureCallback | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.src_top = src_top
        self.renderer = renderer
        self.pre_builders: list[PreBuilder] = list(pre_builders)
        self.preprocessors: list[Preprocessor] = list(preprocessors)
        self.post_builders: list[PostBuilder] = list(post_builders)
        self.error_policy = error_policy
        self.doc_attributes = dict(doc_attributes or {})
        self.write_files = write_files
        self.on_success = on_success
        self.on_failure = on_failure
        self.logger = logger or _log

        dst_path = Path(dst_top).absolute().as_posix()
        self.dst_tree = PathTree(dst_path)
        self.dst_top = self.dst_tree.node(dst_path, from_root=True)

        self.report = BuildReport()
        self._phase = Phase.NEW
        self._generating = False

    @property
    def out_suffix(self) -> str:
        return self.renderer.out_suffix

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def run(self) -> BuildReport:
        """Run pre_build, build and post_build in order."""
        self.pre_build()
        self.build()
        self.post_build()
        return self.report

    def pre_build(self) -> None:
        self._require_phase(Phase.NEW, "pre_build")
        for pb in self.pre_builders:
            pb.on_prebuild(self.src_top, self.dst_top, self)
        self._phase = Phase.PRE_BUILT

    def build(self) -> bool:
        """Convert every source leaf. Returns True if all succeeded."""
        self._require_phase(Phase.PRE_BUILT, "build")
        ok = True
        for _, node in self.src_top.traverse_preorder():
            if not node.is_leaf:
                continue
            if node.data is None:
                self.logger.debug("Skipping %s (no source provider)", node.pathname)
                continue
            ok = self.convert(node) and ok
        self._phase = Phase.BUILT
        return ok

    def post_build(self) -> None:
        self._require_phase(Phase.BUILT, "post_build")
        self._generating = True
        try:
            for pb in self.post_builders:
                pb.on_postbuild(self.src_top, self.dst_top, self)
        finally:
            self._generating = False
        self._phase = Phase.POST_BUILT

    def _require_phase(self, expected: Phase, name: str) -> None:
        if self._phase is not expected:
            raise StructuralError(
                f"Can not run {name} in phase {self._phase.name} "
                f"(expected {expected.name})"
            )

    # ------------------------------------------------------------------
    # Conversion of single documents
    # ------------------------------------------------------------------

    def dst_node_for(self, src_node: PathTree) -> PathTree:
        """Return (creating if needed) the destination node mirroring ``src_node``."""
        if src_node is self.src_top:
            rel = PurePath(src_node.segment or "document")
        else:
            rel = PurePath(src_node.relative_path_from(self.src_top))
        return self.dst_top.add_descendants(rel.with_suffix(self.out_suffix))

    def convert(self, src_node: PathTree, dst_node: PathTree | None = None) -> bool:
        """Convert one source node.

        Args:
            src_node: A node whose data is a SourceProvider.
            dst_node: Destination node for the output. When omitted, the
                node mirroring ``src_node`` below ``dst_top`` is used.

        Returns:
            True if the conversion succeeded.

        Raises:
            PerDocumentError: If the conversion failed and the error policy
                is ABORT.
        """
        self.logger.info("Converting %s...", src_node.pathname)
        try:
            if dst_node is None:
                dst_node = self.dst_node_for(src_node)

            provider = src_node.data
            source = provider.source(src_node)
            header = parse_header(source)

            attributes = dict(self.doc_attributes)
            attributes.update(header.attributes)
            attributes.update(provider.document_attributes(src_node))

            context = RenderContext(
                src_node=src_node,
                dst_node=dst_node,
                dst_top=self.dst_top,
                out_suffix=self.out_suffix,
                attributes=attributes,
            )
            for pp in self.preprocessors:
                source = pp.process(src_node, source, context)

            result = self.renderer.render(source, context)

            if self.write_files:
                out_path = Path(dst_node.pathname)
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_bytes(result.content)

        except (PerDocumentError, OSError, ValueError) as e:
            self._record_failure(src_node, dst_node, e)
            return False

        for w in result.warnings:
            self.logger.warning("%s: %s", src_node.pathname, w)

        info = SuccessfulConversion(
            src_node=src_node,
            dst_node=dst_node,
            dst_top=self.dst_top,
            attributes=attributes,
            doc_title=result.title or header.title,
            warnings=list(result.warnings),
        )
        self._attach(dst_node, info)
        if self._generating:
            self.report.generated += 1
        else:
            self.report.succeeded += 1
        if self.on_success:
            self.on_success(src_node, dst_node, info)
        return True

    def _record_failure(
        self,
        src_node: PathTree,
        dst_node: PathTree | None,
        error: Exception,
    ) -> None:
        if dst_node is None:
            dst_node = self.dst_node_for(src_node)

        self.logger.error("Failed to convert %s: %s", src_node.pathname, error)
        info = FailedConversion(
            src_node=src_node,
            dst_node=dst_node,
            dst_top=self.dst_top,
            error_msg=str(error),
        )
        self._attach(dst_node, info)
        if self._generating:
            self.report.generated_failed += 1
        else:
            self.report.failed += 1
        self.report.failures.append(info)
        if self.on_failure:
            self.on_failure(src_node, dst_node, error)

        if self.error_policy is ErrorPolicy.ABORT:
            if isinstance(error, PerDocumentError):
                raise error
            raise PerDocumentError(str(error), src_node.pathname) from error

    @staticmethod
    def _attach(dst_node: PathTree, info: SuccessfulConversion | FailedConversion) -> None:
        if isinstance(dst_node.data, NodeData):
            dst_node.data.conversion = info
        else:
            dst_node.data = NodeData(conversion=info)


__all__ = ["TreeConverter", "BuildReport", "ErrorPolicy", "Phase"]
