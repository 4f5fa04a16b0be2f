"""Rollback engine: restore files from a past commit as a new commit.

History is never rewritten. The restored content is committed on top of
the current head through the same tree/commit/ref pipeline as
:func:`~cardsync.commit.commit_files`.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .commit import advance_branch, branch_base, create_blobs
from .exceptions import ArtifactNotFound
from .locator import RepositoryRef
from .objects import CHARACTER_JSON, TRACKED_PATHS, FileSnapshot, Payload, RevertResult
from .store import ObjectStore
from .sync import read_file

logger = logging.getLogger(__name__)


def revert_message(target_sha: str) -> str:
    return f"revert to version {target_sha[:7]}"


def revert(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    target_sha: str,
    *,
    paths: Sequence[str] = TRACKED_PATHS,
    required: Sequence[str] = (CHARACTER_JSON,),
    expected_head: str | None = None,
) -> RevertResult:
    """Commit the content *paths* had at *target_sha* on top of *branch*.

    Paths absent at the target resolve to ``None`` and keep their current
    content; only the restored paths change in the new tree.

    Raises:
        ArtifactNotFound: If a path listed in *required* is absent at the target.
        BranchNotFound: If *branch* does not exist.
        RemoteConflict: If the branch moved while the revert was being built.
    """
    contents: dict[str, bytes | None] = {}
    for path in paths:
        found = read_file(store, repo, target_sha, path)
        if found is None and path in required:
            raise ArtifactNotFound(f"{path} not found in commit {target_sha[:7]}")
        contents[path] = found.data if found is not None else None

    head, base_tree = branch_base(store, repo, branch, expected_head)
    snapshots = [
        FileSnapshot(path, Payload.binary(data))
        for path, data in contents.items()
        if data is not None
    ]
    entries = create_blobs(store, repo, snapshots)
    commit = advance_branch(store, repo, branch, head, base_tree, entries, revert_message(target_sha))
    logger.info("Reverted %s@%s to %s", repo, branch, target_sha[:7])
    return RevertResult(commit, contents)
