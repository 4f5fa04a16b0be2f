"""CardRepo: one hosted repository bound to an object store."""

from __future__ import annotations

import json
from typing import Any, Sequence

from . import bootstrap, commit, contrib, history, release, sync
from .locator import RepositoryRef, parse_repo_url
from .objects import (
    CHARACTER_JSON,
    README,
    TRACKED_PATHS,
    BranchCreationResult,
    CommitInfo,
    CommitResult,
    FileContent,
    HistoryEntry,
    Payload,
    PublishReport,
    PullRequest,
    RepositoryInfo,
    RevertResult,
)
from .revert import revert as revert_commit
from .store import ObjectStore


def dump_character(data: Any) -> str:
    """Serialize character data the way it is stored in ``character.json``."""
    return json.dumps(data, indent=2, ensure_ascii=False)


class CardRepo:
    """A hosted repository of character cards.

    Every method is one short, independent unit of work against *store*;
    nothing is cached between calls.
    """

    def __init__(self, store: ObjectStore, ref: RepositoryRef):
        self.store = store
        self.ref = ref

    def __repr__(self) -> str:
        return f"CardRepo({str(self.ref)!r})"

    @classmethod
    def open(cls, url: str, store: ObjectStore) -> CardRepo:
        """Bind *store* to the repository at *url*.

        Raises:
            InvalidRepositoryAddress: If *url* cannot be parsed.
        """
        return cls(store, parse_repo_url(url))

    @property
    def info(self) -> RepositoryInfo:
        return self.store.get_repository(self.ref)

    # --- branches ---

    def branches(self) -> list[str]:
        return history.list_branches(self.store, self.ref)

    def head(self, branch: str) -> str:
        return history.head_sha(self.store, self.ref, branch)

    def ensure_branch(
        self,
        name: str,
        base: str | None = None,
        seed_content: str | bytes | None = None,
        *,
        seed_path: str = README,
    ) -> BranchCreationResult:
        return bootstrap.ensure_branch(self.store, self.ref, name, base, seed_content, seed_path=seed_path)

    # --- reads ---

    def read(self, path: str, ref: str) -> FileContent | None:
        return sync.read_file(self.store, self.ref, ref, path)

    def log(self, branch: str, path: str | None = None, *, limit: int = history.DEFAULT_HISTORY_LIMIT) -> list[HistoryEntry]:
        return history.list_history(self.store, self.ref, branch, path, limit=limit)

    def patch(self, commit_sha: str, path: str) -> str | None:
        return history.get_patch(self.store, self.ref, commit_sha, path)

    # --- writes ---

    def sync_file(self, branch: str, path: str, content: Payload | str | bytes, message: str) -> CommitResult:
        return sync.sync_file(self.store, self.ref, branch, path, content, message)

    def sync_character(self, branch: str, data: Any, message: str) -> CommitResult:
        """Push character data as ``character.json`` only."""
        return self.sync_file(branch, CHARACTER_JSON, dump_character(data), message)

    def commit_files(self, branch: str, files: commit.Files, message: str, *, expected_head: str | None = None) -> CommitInfo:
        return commit.commit_files(self.store, self.ref, branch, files, message, expected_head=expected_head)

    def batch(self, branch: str, message: str, *, expected_head: str | None = None) -> commit.Batch:
        """Return a :class:`~cardsync.commit.Batch` committing to *branch* on exit."""
        return commit.Batch(self.store, self.ref, branch, message, expected_head=expected_head)

    def revert(self, branch: str, target_sha: str, *, paths: Sequence[str] = TRACKED_PATHS) -> RevertResult:
        return revert_commit(self.store, self.ref, branch, target_sha, paths=paths)

    # --- releases and contributions ---

    def publish_release(
        self,
        version: str,
        title: str,
        notes: str,
        target_branch: str,
        assets: Sequence[release.AssetSpec | str] = release.DEFAULT_ASSETS,
    ) -> PublishReport:
        return release.publish_release(self.store, self.ref, version, title, notes, target_branch, assets)

    def releases(self):
        return release.list_releases(self.store, self.ref)

    def fork(self) -> CardRepo:
        """Fork this repository; the returned handle may not be readable yet."""
        info = contrib.fork(self.store, self.ref)
        return CardRepo(self.store, RepositoryRef(info.namespace, info.name))

    def open_pull_request(self, head: str, base: str, title: str, body: str = "") -> PullRequest:
        return contrib.open_pull_request(self.store, self.ref, head, base, title, body)
