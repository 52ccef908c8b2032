"""Git integration: history of documents and multi-revision builds."""

from mirrordocs.gitrepos.checkout import CheckoutReport, GitCheckoutManager, GitRef
from mirrordocs.gitrepos.gititf import GitItf, find_gitrepo_root
from mirrordocs.gitrepos.history import AddHistoryPostBuilder

__all__ = [
    "AddHistoryPostBuilder",
    "CheckoutReport",
    "GitCheckoutManager",
    "GitItf",
    "GitRef",
    "find_gitrepo_root",
]
