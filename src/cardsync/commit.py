"""Atomic multi-file commit engine.

Builds one commit for N file changes through the remote object API:
blobs (fanned out), then one tree on top of the head's tree, then one
commit, then a single ref update. Nothing visible on the branch changes
until that last step.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from .exceptions import BranchNotFound, RemoteConflict, RemoteNotFound
from .locator import RepositoryRef
from .objects import CommitInfo, FileSnapshot, Payload, TreeEntry
from .store import ObjectStore

logger = logging.getLogger(__name__)

MAX_BLOB_WORKERS = 8

Files = Iterable[FileSnapshot] | Mapping[str, Payload | str | bytes]


def _snapshots(files: Files) -> list[FileSnapshot]:
    """Normalize *files* to snapshots, keeping the last write per path."""
    if isinstance(files, Mapping):
        items = [FileSnapshot(path, content) for path, content in files.items()]
    else:
        items = list(files)
    by_path: dict[str, FileSnapshot] = {}
    for snap in items:
        by_path[snap.path] = snap
    return list(by_path.values())


def branch_base(
    store: ObjectStore, repo: RepositoryRef, branch: str, expected_head: str | None = None
) -> tuple[str, str]:
    """Return ``(head_sha, tree_sha)`` of *branch*.

    Raises:
        BranchNotFound: If the branch does not exist.
        RemoteConflict: If *expected_head* is given and the head differs.
    """
    try:
        head = store.get_ref(repo, branch)
    except RemoteNotFound:
        raise BranchNotFound(branch)
    if expected_head is not None and head != expected_head:
        raise RemoteConflict(
            f"Branch {branch!r} is at {head[:7]}, expected {expected_head[:7]}"
        )
    return head, store.get_commit(repo, head).tree_sha


def create_blobs(
    store: ObjectStore,
    repo: RepositoryRef,
    files: list[FileSnapshot],
    max_workers: int = MAX_BLOB_WORKERS,
) -> list[TreeEntry]:
    """Create one blob per file; the calls run concurrently."""
    if not files:
        return []
    if max_workers <= 1 or len(files) == 1:
        shas = [store.create_blob(repo, f.content) for f in files]
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(files))) as pool:
            shas = list(pool.map(lambda f: store.create_blob(repo, f.content), files))
    return [TreeEntry(f.path, sha) for f, sha in zip(files, shas)]


def advance_branch(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    head: str,
    base_tree: str,
    entries: list[TreeEntry],
    message: str,
) -> CommitInfo:
    """Write tree and commit on top of *head*, then move *branch* to it.

    The ref is re-read right before the update; if it no longer points at
    *head* the update is refused and the new objects stay unreferenced.
    """
    tree = store.create_tree(repo, base_tree, entries) if entries else base_tree
    commit = store.create_commit(repo, message, tree, [head])
    logger.debug("Created commit %s (tree %s, parent %s)", commit.short_sha, tree[:7], head[:7])

    try:
        current = store.get_ref(repo, branch)
    except RemoteNotFound:
        raise BranchNotFound(branch)
    if current != head:
        raise RemoteConflict(
            f"Branch {branch!r} has advanced since {head[:7]} (now {current[:7]})"
        )
    store.update_ref(repo, branch, commit.sha, force=False)
    logger.info("Moved %s@%s: %s -> %s", repo, branch, head[:7], commit.short_sha)
    return commit


def commit_files(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    files: Files,
    message: str,
    *,
    expected_head: str | None = None,
    max_workers: int = MAX_BLOB_WORKERS,
) -> CommitInfo:
    """Commit all *files* to *branch* as a single commit.

    Args:
        store: Object store to write through.
        repo: Target repository.
        branch: Branch to advance.
        files: Snapshots, or a mapping of path to content. When a path
            appears more than once the last entry wins.
        message: Commit message.
        expected_head: If given, refuse to commit unless the branch is
            still at this SHA.
        max_workers: Upper bound on concurrent blob uploads.

    Returns:
        The new commit. With no files its tree equals the parent's tree.

    Raises:
        BranchNotFound: If *branch* does not exist.
        RemoteConflict: If the branch moved during the operation. Retry the
            whole call; the parent recorded in the new commit is stale.
    """
    snapshots = _snapshots(files)
    head, base_tree = branch_base(store, repo, branch, expected_head)
    logger.debug("Committing %d file(s) onto %s@%s", len(snapshots), branch, head[:7])
    entries = create_blobs(store, repo, snapshots, max_workers)
    return advance_branch(store, repo, branch, head, base_tree, entries, message)


def retry_commit(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    files: Files,
    message: str,
    *,
    retries: int = 5,
) -> CommitInfo:
    """Run :func:`commit_files`, retrying on concurrent modification.

    Each attempt re-reads the branch and rebuilds every object. Uses
    exponential backoff with jitter (base 10ms, factor 2x, cap 200ms).

    Raises ``RemoteConflict`` if all attempts are exhausted.
    """
    import random
    import time

    snapshots = _snapshots(files)
    for attempt in range(retries):
        try:
            return commit_files(store, repo, branch, snapshots, message)
        except RemoteConflict:
            if attempt == retries - 1:
                raise
            delay = min(0.01 * (2 ** attempt), 0.2)
            logger.debug("Conflict on %s@%s, retrying (attempt %d)", repo, branch, attempt + 1)
            time.sleep(random.uniform(0, delay))
    raise ValueError(f"retries must be >= 1, got {retries}")


class Batch:
    """Accumulates writes and commits them once on exit.

    Example:
        >>> with Batch(store, repo, "main", "update card") as b:
        ...     b.write("character.json", json_text)
        ...     b.write("card.png", png_bytes)
        >>> b.commit.sha
    """

    def __init__(
        self,
        store: ObjectStore,
        repo: RepositoryRef,
        branch: str,
        message: str,
        *,
        expected_head: str | None = None,
    ):
        self._store = store
        self._repo = repo
        self._branch = branch
        self._message = message
        self._expected_head = expected_head
        self._writes: dict[str, FileSnapshot] = {}
        self._closed = False
        self.commit: CommitInfo | None = None

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Batch is closed")

    def write(self, path: str, content: Payload | str | bytes) -> None:
        self._check_open()
        snap = FileSnapshot(path, content)
        self._writes[snap.path] = snap

    def write_from(self, path: str, local_path: str | os.PathLike[str]) -> None:
        self._check_open()
        snap = FileSnapshot.from_local(path, local_path)
        self._writes[snap.path] = snap

    def __len__(self) -> int:
        return len(self._writes)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._closed = True
        if exc_type is not None or not self._writes:
            return False
        self.commit = commit_files(
            self._store, self._repo, self._branch, list(self._writes.values()),
            self._message, expected_head=self._expected_head,
        )
        return False
