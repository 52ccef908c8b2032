"""Iterate over git branches and tags, checking each one out in turn.

The working tree of the repository is modified in place. Whatever happens
during the iteration, the branch that was checked out when it started is
checked out again when it ends.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from mirrordocs.errors import MirrordocsError, RevisionSyncError
from mirrordocs.gitrepos.gititf import GitItf

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitRef:
    """A branch or tag to check out.

    Attributes:
        name: Name used for checkout (remote prefix removed).
        is_tag: True for tags, which are never merged with upstream.
        remote: Remote the branch was found on, if any.
    """

    name: str
    is_tag: bool = False
    remote: str | None = None

    @property
    def upstream(self) -> str | None:
        """The remote-tracking ref to merge after checkout."""
        if self.is_tag or self.remote is None:
            return None
        return f"{self.remote}/{self.name}"


@dataclass
class CheckoutReport:
    """Outcome of one iteration over the selected refs."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    restored: bool = True

    def __bool__(self) -> bool:
        return not self.failed and self.restored


class GitCheckoutManager:
    """Checks out each branch and tag matching the given patterns.

    The refs to visit are computed once, at construction.

    Args:
        srcdir: A directory inside the git repository.
        local_only: Use local branches and never fetch or merge upstream
            changes. Otherwise remote branches are used, fetched first and
            merged with their upstream after each checkout.
        branch_regex: Pattern selecting branches (None selects none).
        tag_regex: Pattern selecting tags (None selects none).
        abort_on_error: Stop at the first failing ref instead of continuing.
        git_itf: Git interface to use (created from ``srcdir`` if omitted).
        logger: Logger for progress and errors.

    Raises:
        StructuralError: If ``srcdir`` is not inside a git repository.
        RevisionSyncError: If fetching from the remote fails.
    """

    def __init__(
        self,
        srcdir: Path | str,
        local_only: bool = False,
        branch_regex: str | re.Pattern[str] | None = None,
        tag_regex: str | re.Pattern[str] | None = None,
        abort_on_error: bool = False,
        git_itf: GitItf | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or _log
        self.git_itf = git_itf or GitItf(srcdir, logger=self.logger)
        self.repo_root = self.git_itf.repo_root
        self.local_only = local_only
        self.abort_on_error = abort_on_error

        if not local_only:
            self.git_itf.fetch()

        self.branches = self._select_branches(branch_regex)
        self.tags = self._select_tags(tag_regex)

    @property
    def refs(self) -> list[GitRef]:
        return self.branches + self.tags

    def _select_branches(self, regex: str | re.Pattern[str] | None) -> list[GitRef]:
        if regex is None:
            return []
        pattern = re.compile(regex)

        selected = []
        for name in self.git_itf.branches(remote=not self.local_only):
            remote = None
            if not self.local_only:
                remote, _, name = name.partition("/")
            if pattern.search(name):
                selected.append(GitRef(name, remote=remote))

        self.logger.debug("selected git branches: %s", ", ".join(r.name for r in selected))
        return selected

    def _select_tags(self, regex: str | re.Pattern[str] | None) -> list[GitRef]:
        if regex is None:
            return []
        pattern = re.compile(regex)
        return [GitRef(t, is_tag=True) for t in self.git_itf.tags() if pattern.search(t)]

    def _sync(self, ref: GitRef) -> None:
        self.logger.info("Checking out '%s'", ref.name)
        self.git_itf.checkout(ref.name)

        if ref.upstream and not self.local_only:
            self.logger.info("Merging with %s", ref.upstream)
            self.git_itf.merge(ref.upstream)

    def _restore(self, original: str) -> bool:
        try:
            if self.git_itf.current_branch() != original:
                self.logger.info("Checking out '%s'", original)
                self.git_itf.checkout(original)
        except RevisionSyncError as e:
            self.logger.error("Could not restore the original checkout '%s': %s", original, e)
            return False
        return True

    def each_checkout(self, callback: Callable[[GitRef], None]) -> CheckoutReport:
        """Check out each selected ref and call ``callback`` with it.

        A ref fails if its checkout, merge or the callback raises. Failures
        are logged and recorded, and the next ref is built. With
        ``abort_on_error`` the error is re-raised after the original branch
        has been restored.

        Returns:
            Which refs succeeded and failed.
        """
        report = CheckoutReport()
        refs = self.refs
        if not refs:
            self.logger.info("No matching branches or tags found.")
            return report

        original = self.git_itf.current_branch()
        try:
            for ref in refs:
                try:
                    self._sync(ref)
                    callback(ref)
                except Exception as e:
                    if isinstance(e, MirrordocsError):
                        self.logger.error("%s: %s", ref.name, e)
                    else:
                        self.logger.exception("%s: unexpected error", ref.name)
                    report.failed.append(ref.name)
                    if self.abort_on_error:
                        raise
                    continue
                report.succeeded.append(ref.name)
        finally:
            report.restored = self._restore(original)
        return report

    def checkouts(self) -> Iterator[GitRef]:
        """Generator form of ``each_checkout``.

        Yields each ref after it has been checked out. The original branch
        is restored when the generator is exhausted or closed, so wrap it
        in ``contextlib.closing`` when the loop may exit early.
        """
        refs = self.refs
        if not refs:
            self.logger.info("No matching branches or tags found.")
            return

        original = self.git_itf.current_branch()
        try:
            for ref in refs:
                try:
                    self._sync(ref)
                except RevisionSyncError as e:
                    self.logger.error("%s: %s", ref.name, e)
                    if self.abort_on_error:
                        raise
                    continue
                yield ref
        finally:
            self._restore(original)


__all__ = ["GitRef", "GitCheckoutManager", "CheckoutReport"]
