"""Fork and contribution flow."""

from __future__ import annotations

import logging

from .locator import RepositoryRef
from .objects import PullRequest, RepositoryInfo
from .store import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Character card repository managed by cardsync"


def create_repository(
    store: ObjectStore, name: str, *, private: bool = True, description: str = DEFAULT_DESCRIPTION
) -> RepositoryInfo:
    """Create a repository owned by the authenticated user (private by default)."""
    info = store.create_repository(name, private=private, description=description)
    logger.info("Created repository %s", info.full_name)
    return info


def fork(store: ObjectStore, repo: RepositoryRef) -> RepositoryInfo:
    """Fork *repo* into the authenticated user's namespace.

    The host finishes forks asynchronously: the returned descriptor may
    name a repository whose branches are not readable yet. Re-check before
    writing to it.
    """
    info = store.create_fork(repo)
    logger.info("Requested fork of %s as %s", repo, info.full_name)
    return info


def open_pull_request(
    store: ObjectStore,
    upstream: RepositoryRef,
    head: str,
    base: str,
    title: str,
    body: str = "",
) -> PullRequest:
    """Open a pull request on *upstream* from *head* (``"user:branch"``) into *base*."""
    pull = store.create_pull_request(upstream, head, base, title, body)
    logger.info("Opened pull request #%d on %s (%s -> %s)", pull.number, upstream, head, base)
    return pull
