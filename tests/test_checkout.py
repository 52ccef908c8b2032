"""Tests for mirrordocs.gitrepos.checkout."""

from __future__ import annotations

from contextlib import closing
from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from mirrordocs.errors import PerDocumentError, RevisionSyncError
from mirrordocs.gitrepos.checkout import GitCheckoutManager, GitRef
from mirrordocs.gitrepos.gititf import GitItf


def _git_itf(branches=(), tags=(), current=("main",)) -> MagicMock:
    itf = MagicMock(spec=GitItf)
    itf.repo_root = Path("/repo")
    itf.branches.return_value = list(branches)
    itf.tags.return_value = list(tags)
    itf.current_branch.side_effect = list(current)
    return itf


class TestGitRef:
    def test_upstream(self):
        assert GitRef("main", remote="origin").upstream == "origin/main"
        assert GitRef("main").upstream is None
        assert GitRef("v1", is_tag=True, remote="origin").upstream is None


class TestRefSelection:
    def test_local_branches(self):
        """Local mode selects local branches and never fetches."""
        itf = _git_itf(branches=["main", "feature/x", "other"])
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=r"^(main|feature/)", git_itf=itf)

        assert [r.name for r in manager.refs] == ["main", "feature/x"]
        itf.fetch.assert_not_called()
        itf.branches.assert_called_once_with(remote=False)

    def test_remote_branches(self):
        """Remote mode fetches first and strips the remote name."""
        itf = _git_itf(branches=["origin/main", "origin/feature/x"])
        manager = GitCheckoutManager("/repo", branch_regex="feature", git_itf=itf)

        itf.fetch.assert_called_once_with()
        assert manager.refs == [GitRef("feature/x", remote="origin")]

    def test_tags(self):
        itf = _git_itf(tags=["v1.0", "v2.0", "nightly"])
        manager = GitCheckoutManager("/repo", local_only=True, tag_regex=r"^v", git_itf=itf)
        assert manager.refs == [GitRef("v1.0", is_tag=True), GitRef("v2.0", is_tag=True)]
        itf.branches.assert_not_called()

    def test_fetch_failure_propagates(self):
        itf = _git_itf()
        itf.fetch.side_effect = RevisionSyncError("no origin")
        with pytest.raises(RevisionSyncError):
            GitCheckoutManager("/repo", branch_regex=".*", git_itf=itf)


class TestEachCheckout:
    def test_visits_refs_and_restores(self):
        """Every ref is checked out and the original branch is restored."""
        itf = _git_itf(branches=["main", "feature/x"], tags=["v1.0"], current=["main", "v1.0"])
        manager = GitCheckoutManager(
            "/repo", local_only=True, branch_regex=".", tag_regex=".", git_itf=itf
        )
        seen = []
        report = manager.each_checkout(lambda ref: seen.append(ref.name))

        assert seen == ["main", "feature/x", "v1.0"]
        assert report.succeeded == seen
        assert report
        assert itf.checkout.call_args_list == [
            call("main"),
            call("feature/x"),
            call("v1.0"),
            call("main"),
        ]
        itf.merge.assert_not_called()

    def test_merges_upstream_for_remote_branches(self):
        itf = _git_itf(branches=["origin/main"], tags=["v1.0"], current=["main", "main"])
        manager = GitCheckoutManager("/repo", branch_regex=".", tag_regex=".", git_itf=itf)
        manager.each_checkout(lambda ref: None)
        itf.merge.assert_called_once_with("origin/main")

    def test_failure_continues_and_restores(self):
        """A failing ref is recorded; later refs still run; the branch is restored."""
        itf = _git_itf(branches=["a", "b", "c"], current=["main", "c"])
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)

        def callback(ref):
            if ref.name == "b":
                raise PerDocumentError("broken document")

        report = manager.each_checkout(callback)

        assert report.succeeded == ["a", "c"]
        assert report.failed == ["b"]
        assert not report
        assert itf.checkout.call_args_list[-1] == call("main")

    def test_unexpected_error_continues(self):
        """Errors outside the mirrordocs hierarchy fail only their own ref."""
        itf = _git_itf(branches=["a", "b", "c"], current=["main", "c"])
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)
        visited = []

        def callback(ref):
            visited.append(ref.name)
            if ref.name == "b":
                raise PermissionError("unreadable directory")

        report = manager.each_checkout(callback)

        assert visited == ["a", "b", "c"]
        assert report.succeeded == ["a", "c"]
        assert report.failed == ["b"]
        assert itf.checkout.call_args_list[-1] == call("main")

    def test_unexpected_error_aborts_when_configured(self):
        itf = _git_itf(branches=["a", "b"], current=["main", "a"])
        manager = GitCheckoutManager(
            "/repo", local_only=True, branch_regex=".", abort_on_error=True, git_itf=itf
        )

        def callback(ref):
            raise ValueError("bad path")

        with pytest.raises(ValueError):
            manager.each_checkout(callback)
        assert itf.checkout.call_args_list[-1] == call("main")

    def test_checkout_failure_is_per_ref(self):
        itf = _git_itf(branches=["a", "b"], current=["main", "b"])
        itf.checkout.side_effect = [RevisionSyncError("locked", ref="a"), None, None]
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)

        report = manager.each_checkout(lambda ref: None)
        assert report.failed == ["a"]
        assert report.succeeded == ["b"]

    def test_abort_reraises_after_restore(self):
        """With abort_on_error the failure propagates, after restoring."""
        itf = _git_itf(branches=["a", "b"], current=["main", "a"])
        manager = GitCheckoutManager(
            "/repo", local_only=True, branch_regex=".", abort_on_error=True, git_itf=itf
        )
        callback = MagicMock(side_effect=PerDocumentError("broken document"))

        with pytest.raises(PerDocumentError):
            manager.each_checkout(callback)

        callback.assert_called_once()
        assert itf.checkout.call_args_list == [call("a"), call("main")]

    def test_restore_failure_is_reported(self):
        itf = _git_itf(branches=["a"], current=["main", "a"])
        itf.checkout.side_effect = [None, RevisionSyncError("dirty tree")]
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)

        report = manager.each_checkout(lambda ref: None)
        assert report.succeeded == ["a"]
        assert not report.restored
        assert not report

    def test_no_matching_refs(self):
        """Nothing is checked out when no ref matches."""
        itf = _git_itf(branches=["main"])
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex="release", git_itf=itf)
        report = manager.each_checkout(MagicMock())
        assert report.succeeded == []
        itf.checkout.assert_not_called()
        itf.current_branch.assert_not_called()


class TestCheckoutsGenerator:
    def test_restores_when_closed_early(self):
        itf = _git_itf(branches=["a", "b"], current=["main", "a"])
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)

        with closing(manager.checkouts()) as refs:
            for ref in refs:
                break

        assert ref.name == "a"
        assert itf.checkout.call_args_list == [call("a"), call("main")]

    def test_skips_refs_that_fail_to_sync(self):
        itf = _git_itf(branches=["a", "b"], current=["main", "b"])
        itf.checkout.side_effect = [RevisionSyncError("locked"), None, None]
        manager = GitCheckoutManager("/repo", local_only=True, branch_regex=".", git_itf=itf)
        assert [r.name for r in manager.checkouts()] == ["b"]


@pytest.mark.git
class TestRealRepository:
    def test_each_checkout(self, git_repo):
        """Documents of each branch are visible while it is checked out."""
        manager = GitCheckoutManager(git_repo / "docs", local_only=True, branch_regex=".")
        files = {}

        def callback(ref):
            files[ref.name] = sorted(p.name for p in (git_repo / "docs").iterdir())

        report = manager.each_checkout(callback)

        assert report
        assert files == {"feature/x": ["a.md", "b.md"], "main": ["a.md"]}
        assert manager.git_itf.current_branch() == "main"
