"""History and diff reader (read-only)."""

from __future__ import annotations

from .exceptions import BranchNotFound, RemoteNotFound
from .locator import RepositoryRef
from .objects import HistoryEntry
from .store import ObjectStore
from .tree import _normalize_path

DEFAULT_HISTORY_LIMIT = 100


def list_history(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    path: str | None = None,
    *,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[HistoryEntry]:
    """Return the most recent *limit* commits on *branch*, newest first.

    Args:
        path: Only list commits that changed this file.

    Raises:
        BranchNotFound: If *branch* does not exist.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    if path is not None:
        path = _normalize_path(path)
    try:
        return store.list_commits(repo, branch, path, limit)
    except RemoteNotFound:
        raise BranchNotFound(branch)


def get_patch(store: ObjectStore, repo: RepositoryRef, commit_sha: str, path: str) -> str | None:
    """Return the textual patch of *path* in *commit_sha*.

    Returns ``None`` when the commit carries no textual change for the file:
    the file is binary, or the commit did not touch it.
    """
    changed = store.get_commit_detail(repo, commit_sha).file(_normalize_path(path))
    if changed is None or not changed.patch:
        return None
    return changed.patch


def head_sha(store: ObjectStore, repo: RepositoryRef, branch: str) -> str:
    """Head commit of *branch*, for "is there anything new" checks."""
    try:
        return store.get_branch(repo, branch).sha
    except RemoteNotFound:
        raise BranchNotFound(branch)


def list_branches(store: ObjectStore, repo: RepositoryRef) -> list[str]:
    return store.list_branches(repo)
