"""The object-store capability surface every engine is written against.

Two implementations ship with cardsync: :class:`~cardsync.github.GitHubStore`
talks to the hosted REST API, :class:`~cardsync.memory.MemoryStore` keeps
real git objects in process. Neither retries anything.

Every method raises :class:`~cardsync.exceptions.RemoteNotFound` when the
addressed ref, commit, file or repository does not exist,
:class:`~cardsync.exceptions.RemoteConflict` when a write is rejected as
stale, and :class:`~cardsync.exceptions.TransportError` for anything else.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from .locator import RepositoryRef
from .objects import (
    BranchHead,
    CommitDetail,
    CommitInfo,
    CommitResult,
    FileContent,
    HistoryEntry,
    Payload,
    PullRequest,
    Release,
    ReleaseAsset,
    RepositoryInfo,
    TreeEntry,
)


class ObjectStore(Protocol):

    # --- git data objects ---

    def create_blob(self, repo: RepositoryRef, payload: Payload) -> str: ...

    def create_tree(self, repo: RepositoryRef, base_tree: str | None, entries: Sequence[TreeEntry]) -> str: ...

    def create_commit(self, repo: RepositoryRef, message: str, tree: str, parents: Sequence[str]) -> CommitInfo: ...

    def get_commit(self, repo: RepositoryRef, sha: str) -> CommitInfo: ...

    def get_commit_detail(self, repo: RepositoryRef, sha: str) -> CommitDetail: ...

    # --- refs and branches ---

    def get_ref(self, repo: RepositoryRef, branch: str) -> str: ...

    def create_ref(self, repo: RepositoryRef, branch: str, sha: str) -> str: ...

    def update_ref(self, repo: RepositoryRef, branch: str, sha: str, *, force: bool = False) -> str: ...

    def get_branch(self, repo: RepositoryRef, branch: str) -> BranchHead: ...

    def list_branches(self, repo: RepositoryRef) -> list[str]: ...

    # --- repositories ---

    def get_user(self) -> dict: ...

    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo: ...

    def create_repository(self, name: str, *, private: bool = True, description: str = "") -> RepositoryInfo: ...

    def create_fork(self, repo: RepositoryRef) -> RepositoryInfo: ...

    # --- contents and history ---

    def get_content(self, repo: RepositoryRef, path: str, ref: str) -> FileContent: ...

    def put_content(
        self,
        repo: RepositoryRef,
        path: str,
        payload: Payload,
        message: str,
        branch: str,
        sha: str | None = None,
    ) -> CommitResult: ...

    def list_commits(
        self, repo: RepositoryRef, branch: str, path: str | None = None, limit: int = 100
    ) -> list[HistoryEntry]: ...

    # --- releases and pull requests ---

    def list_releases(self, repo: RepositoryRef) -> list[Release]: ...

    def create_release(
        self, repo: RepositoryRef, tag: str, title: str, notes: str, target: str
    ) -> Release: ...

    def upload_release_asset(
        self, repo: RepositoryRef, release: Release, name: str, data: bytes, content_type: str
    ) -> ReleaseAsset: ...

    def create_pull_request(
        self, repo: RepositoryRef, head: str, base: str, title: str, body: str = ""
    ) -> PullRequest: ...
