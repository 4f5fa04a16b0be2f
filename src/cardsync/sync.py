"""Single-file synchronizer: read-before-write create-or-update of one path."""

from __future__ import annotations

import logging

from .exceptions import RemoteNotFound
from .locator import RepositoryRef
from .objects import CommitResult, FileContent, Payload
from .store import ObjectStore
from .tree import _normalize_path

logger = logging.getLogger(__name__)


def read_file(store: ObjectStore, repo: RepositoryRef, ref: str, path: str) -> FileContent | None:
    """Read *path* at *ref* (branch name or commit SHA); None if absent."""
    try:
        return store.get_content(repo, _normalize_path(path), ref)
    except RemoteNotFound:
        return None


def sync_file(
    store: ObjectStore,
    repo: RepositoryRef,
    branch: str,
    path: str,
    content: Payload | str | bytes,
    message: str,
) -> CommitResult:
    """Create or update *path* on *branch* as one commit.

    The file's current SHA is read first and sent with the write, so the
    provider accepts it only as an update of that exact version.

    Raises:
        RemoteConflict: If the file changed between the read and the write.
        TransportError: For any other failed request.
    """
    path = _normalize_path(path)
    current = read_file(store, repo, branch, path)
    sha = current.sha if current is not None else None
    logger.debug("sync %s@%s (current sha %s)", path, branch, sha)
    result = store.put_content(repo, path, Payload.coerce(content), message, branch, sha)
    logger.info("Synced %s to %s@%s", path, branch, result.commit_sha[:7])
    return result
