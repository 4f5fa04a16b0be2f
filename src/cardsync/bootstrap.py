"""Branch bootstrap: make sure a branch exists before content is written."""

from __future__ import annotations

import logging

from .exceptions import BaseBranchNotFound, RemoteNotFound
from .locator import RepositoryRef
from .objects import README, BranchCreationResult, Payload
from .store import ObjectStore

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = "initial commit"

DEFAULT_SEED = (
    "# Character card repository\n\n"
    "This repository is created and managed by cardsync.\n"
)


def _default_head(store: ObjectStore, repo: RepositoryRef) -> str | None:
    """Head SHA of the default branch, or None when the repository is empty.

    Only a not-found answer for the default branch counts as "empty";
    every other failure propagates.
    """
    default = store.get_repository(repo).default_branch
    try:
        return store.get_branch(repo, default).sha
    except RemoteNotFound:
        logger.debug("%s has no %r branch yet; treating as empty", repo, default)
        return None


def ensure_branch(
    store: ObjectStore,
    repo: RepositoryRef,
    new_branch: str,
    base_branch: str | None = None,
    seed_content: str | bytes | None = None,
    *,
    seed_path: str = README,
) -> BranchCreationResult:
    """Create *new_branch*, starting from *base_branch* or the default branch.

    When *base_branch* is omitted and the repository has no commits yet,
    the branch is created by writing a seed file (*seed_content*, or a
    short README) directly onto it with the message ``"initial commit"``.

    Raises:
        BaseBranchNotFound: If *base_branch* is given but does not exist.
        RemoteConflict: If *new_branch* already exists.
    """
    if base_branch:
        try:
            start = store.get_branch(repo, base_branch).sha
        except RemoteNotFound:
            raise BaseBranchNotFound(base_branch)
    else:
        start = _default_head(store, repo)

    if start is not None:
        store.create_ref(repo, new_branch, start)
        logger.info("Created branch %s at %s in %s", new_branch, start[:7], repo)
        return BranchCreationResult(new_branch, start)

    seed = Payload.coerce(seed_content if seed_content else DEFAULT_SEED)
    result = store.put_content(repo, seed_path, seed, INITIAL_COMMIT_MESSAGE, new_branch)
    logger.info("Bootstrapped empty repository %s on branch %s", repo, new_branch)
    return BranchCreationResult(new_branch, result.commit_sha, bootstrapped=True)
