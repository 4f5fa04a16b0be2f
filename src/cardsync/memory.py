"""In-process implementation of :class:`~cardsync.store.ObjectStore`.

Blobs, trees and commits are real git objects kept in a dulwich
``MemoryObjectStore``, so every SHA matches what a git host would compute.
Refs, releases and pull requests live in per-repository state. The store
reproduces the provider rules the engines rely on:

* a fresh repository has a default branch name but no branches;
* contents may be created on a missing branch only while the repository
  has no branches at all (this creates the branch);
* updating an existing file requires its current SHA;
* a ref update without ``force`` must be a fast-forward.
"""

from __future__ import annotations

import difflib
import itertools
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Sequence

from dulwich.object_store import MemoryObjectStore
from dulwich.objects import Blob, Commit, Tree

from .exceptions import PathIsDirectory, RemoteConflict, RemoteNotFound, TransportError
from .locator import RepositoryRef
from .objects import (
    BranchHead,
    ChangedFile,
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
from .tree import GIT_FILEMODE_TREE, _normalize_path, entry_at_path, flatten_tree, rebuild_tree


@dataclass
class _RepoState:
    info: RepositoryInfo
    refs: dict[str, str] = field(default_factory=dict)
    releases: list[Release] = field(default_factory=list)
    asset_data: dict[tuple[int, str], bytes] = field(default_factory=dict)
    pulls: list[PullRequest] = field(default_factory=list)


def _unprocessable(message: str) -> TransportError:
    return TransportError(message, status=422)


def _text_patch(old: bytes, new: bytes) -> str | None:
    """Unified-diff hunks between two blobs, or None if either is binary."""
    if b"\0" in old[:8000] or b"\0" in new[:8000]:
        return None
    try:
        a = old.decode("utf-8").splitlines()
        b = new.decode("utf-8").splitlines()
    except UnicodeDecodeError:
        return None
    lines = list(difflib.unified_diff(a, b, lineterm=""))
    # Drop the ---/+++ header, keep the hunks
    return "\n".join(lines[2:])


class MemoryStore:
    """Object store holding any number of repositories in memory.

    Args:
        login: Namespace of the authenticated user; new repositories and
            forks are created under it.
        author: Author name recorded on commits.
        email: Author email recorded on commits.
    """

    def __init__(self, login: str = "cardsync", *, author: str = "cardsync", email: str = "cardsync@localhost"):
        self.login = login
        self._identity = f"{author} <{email}>".encode()
        self._objects = MemoryObjectStore()
        self._repos: dict[RepositoryRef, _RepoState] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"MemoryStore(login={self.login!r}, repos={len(self._repos)})"

    # --- helpers ---

    def init_repository(
        self, repo: RepositoryRef, *, default_branch: str = "main", private: bool = False
    ) -> RepositoryInfo:
        """Create an empty repository under any namespace."""
        with self._lock:
            if repo in self._repos:
                raise _unprocessable(f"Repository {repo} already exists")
            info = RepositoryInfo(
                namespace=repo.namespace,
                name=repo.name,
                default_branch=default_branch,
                clone_url=f"memory://{repo}.git",
                html_url=f"memory://{repo}",
                private=private,
            )
            self._repos[repo] = _RepoState(info)
            return info

    def release_asset_data(self, repo: RepositoryRef, release_id: int, name: str) -> bytes:
        """Return the bytes uploaded as asset *name* of release *release_id*."""
        with self._lock:
            try:
                return self._state(repo).asset_data[(release_id, name)]
            except KeyError:
                raise RemoteNotFound(f"Asset {name!r} not found on release {release_id}")

    def _state(self, repo: RepositoryRef) -> _RepoState:
        try:
            return self._repos[repo]
        except KeyError:
            raise RemoteNotFound(f"Repository not found: {repo}")

    def _object(self, sha: str):
        try:
            return self._objects[sha.encode("ascii")]
        except (KeyError, ValueError):
            raise RemoteNotFound(f"Object not found: {sha}")

    def _commit(self, sha: str) -> Commit:
        obj = self._object(sha)
        if not isinstance(obj, Commit):
            raise RemoteNotFound(f"No commit found for SHA: {sha}")
        return obj

    def _resolve(self, state: _RepoState, ref: str) -> str:
        """Resolve a branch name or commit SHA to a commit SHA."""
        if ref in state.refs:
            return state.refs[ref]
        try:
            return self._commit(ref).id.decode()
        except RemoteNotFound:
            raise RemoteNotFound(f"No commit found for the ref {ref}")

    def _is_ancestor(self, ancestor: str, descendant: str) -> bool:
        pending = [descendant.encode()]
        seen: set[bytes] = set()
        target = ancestor.encode()
        while pending:
            sha = pending.pop()
            if sha == target:
                return True
            if sha in seen:
                continue
            seen.add(sha)
            pending.extend(self._objects[sha].parents)
        return False

    def _write_commit(self, message: str, tree_id: bytes, parents: Sequence[str]) -> Commit:
        commit = Commit()
        commit.tree = tree_id
        commit.parents = [p.encode() for p in parents]
        commit.author = commit.committer = self._identity
        commit.author_time = commit.commit_time = int(time.time())
        commit.author_timezone = commit.commit_timezone = 0
        commit.encoding = b"UTF-8"
        commit.message = message.encode("utf-8")
        self._objects.add_object(commit)
        return commit

    @staticmethod
    def _info(commit: Commit) -> CommitInfo:
        return CommitInfo(
            sha=commit.id.decode(),
            tree_sha=commit.tree.decode(),
            parents=tuple(p.decode() for p in commit.parents),
            message=commit.message.decode("utf-8"),
        )

    # --- git data objects ---

    def create_blob(self, repo: RepositoryRef, payload: Payload) -> str:
        with self._lock:
            self._state(repo)
            blob = Blob.from_string(payload.as_bytes())
            self._objects.add_object(blob)
            return blob.id.decode()

    def create_tree(self, repo: RepositoryRef, base_tree: str | None, entries: Sequence[TreeEntry]) -> str:
        with self._lock:
            self._state(repo)
            base_id = None
            if base_tree is not None:
                base = self._object(base_tree)
                if not isinstance(base, Tree):
                    raise _unprocessable(f"base_tree is not a tree: {base_tree}")
                base_id = base.id
            writes: dict[str, tuple[bytes, int]] = {}
            for entry in entries:
                if not isinstance(self._object(entry.sha), Blob):
                    raise _unprocessable(f"tree.sha {entry.sha} is not a blob")
                writes[_normalize_path(entry.path)] = (entry.sha.encode(), int(entry.mode, 8))
            return rebuild_tree(self._objects, base_id, writes).decode()

    def create_commit(self, repo: RepositoryRef, message: str, tree: str, parents: Sequence[str]) -> CommitInfo:
        with self._lock:
            self._state(repo)
            tree_obj = self._object(tree)
            if not isinstance(tree_obj, Tree):
                raise _unprocessable(f"Tree SHA does not exist: {tree}")
            for parent in parents:
                self._commit(parent)
            return self._info(self._write_commit(message, tree_obj.id, parents))

    def get_commit(self, repo: RepositoryRef, sha: str) -> CommitInfo:
        with self._lock:
            self._state(repo)
            return self._info(self._commit(sha))

    def get_commit_detail(self, repo: RepositoryRef, sha: str) -> CommitDetail:
        with self._lock:
            state = self._state(repo)
            commit = self._commit(self._resolve(state, sha))
            parent_tree = self._objects[commit.parents[0]].tree if commit.parents else None
            before = flatten_tree(self._objects, parent_tree)
            after = flatten_tree(self._objects, commit.tree)
            files = []
            for path in sorted(set(before) | set(after)):
                old, new = before.get(path), after.get(path)
                if old == new:
                    continue
                old_data = self._objects[old[0]].data if old else b""
                new_data = self._objects[new[0]].data if new else b""
                status = "added" if old is None else "removed" if new is None else "modified"
                files.append(ChangedFile(path, status, _text_patch(old_data, new_data)))
            return CommitDetail(self._info(commit), tuple(files))

    # --- refs and branches ---

    def get_ref(self, repo: RepositoryRef, branch: str) -> str:
        with self._lock:
            try:
                return self._state(repo).refs[branch]
            except KeyError:
                raise RemoteNotFound(f"Reference does not exist: heads/{branch}")

    def create_ref(self, repo: RepositoryRef, branch: str, sha: str) -> str:
        with self._lock:
            state = self._state(repo)
            if branch in state.refs:
                raise RemoteConflict(f"Reference already exists: heads/{branch}")
            try:
                self._commit(sha)
            except RemoteNotFound:
                raise _unprocessable(f"Object does not exist: {sha}")
            state.refs[branch] = sha
            return sha

    def update_ref(self, repo: RepositoryRef, branch: str, sha: str, *, force: bool = False) -> str:
        with self._lock:
            state = self._state(repo)
            if branch not in state.refs:
                raise RemoteNotFound(f"Reference does not exist: heads/{branch}")
            try:
                self._commit(sha)
            except RemoteNotFound:
                raise _unprocessable(f"Object does not exist: {sha}")
            if not force and not self._is_ancestor(state.refs[branch], sha):
                raise RemoteConflict(f"Update is not a fast forward: heads/{branch}")
            state.refs[branch] = sha
            return sha

    def get_branch(self, repo: RepositoryRef, branch: str) -> BranchHead:
        with self._lock:
            state = self._state(repo)
            if branch not in state.refs:
                raise RemoteNotFound(f"Branch not found: {branch}")
            return BranchHead(branch, state.refs[branch])

    def list_branches(self, repo: RepositoryRef) -> list[str]:
        with self._lock:
            return sorted(self._state(repo).refs)

    # --- repositories ---

    def get_user(self) -> dict:
        return {"login": self.login, "name": None}

    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo:
        with self._lock:
            return self._state(repo).info

    def create_repository(self, name: str, *, private: bool = True, description: str = "") -> RepositoryInfo:
        return self.init_repository(RepositoryRef(self.login, name), private=private)

    def create_fork(self, repo: RepositoryRef) -> RepositoryInfo:
        with self._lock:
            upstream = self._state(repo)
            target = RepositoryRef(self.login, repo.name)
            if target in self._repos:
                return self._repos[target].info
            info = replace(
                upstream.info,
                namespace=self.login,
                clone_url=f"memory://{target}.git",
                html_url=f"memory://{target}",
            )
            self._repos[target] = _RepoState(info, refs=dict(upstream.refs))
            return info

    # --- contents and history ---

    def get_content(self, repo: RepositoryRef, path: str, ref: str) -> FileContent:
        with self._lock:
            state = self._state(repo)
            path = _normalize_path(path)
            commit = self._commit(self._resolve(state, ref))
            found = entry_at_path(self._objects, commit.tree, path)
            if found is None:
                raise RemoteNotFound(f"Not Found: {path}@{ref}")
            sha, mode = found
            if mode == GIT_FILEMODE_TREE:
                raise PathIsDirectory(path)
            return FileContent(path=path, sha=sha.decode(), data=self._objects[sha].data)

    def put_content(
        self,
        repo: RepositoryRef,
        path: str,
        payload: Payload,
        message: str,
        branch: str,
        sha: str | None = None,
    ) -> CommitResult:
        with self._lock:
            state = self._state(repo)
            path = _normalize_path(path)
            head = state.refs.get(branch)
            if head is None and state.refs:
                raise RemoteNotFound(f"Branch {branch} not found")

            base_tree = None
            if head is not None:
                base_tree = self._objects[head.encode()].tree
                current = entry_at_path(self._objects, base_tree, path)
                if current is not None:
                    if sha is None:
                        raise RemoteConflict(f'Invalid request. "sha" wasn\'t supplied for {path}')
                    if sha != current[0].decode():
                        raise RemoteConflict(f"{path} does not match {sha}")

            blob = Blob.from_string(payload.as_bytes())
            self._objects.add_object(blob)
            tree_id = rebuild_tree(self._objects, base_tree, {path: (blob.id, 0o100644)})
            commit = self._write_commit(message, tree_id, [head] if head else [])
            if not state.refs:
                state.info = replace(state.info, default_branch=branch)
            state.refs[branch] = commit.id.decode()
            return CommitResult(path=path, commit_sha=commit.id.decode(), content_sha=blob.id.decode())

    def list_commits(
        self, repo: RepositoryRef, branch: str, path: str | None = None, limit: int = 100
    ) -> list[HistoryEntry]:
        with self._lock:
            state = self._state(repo)
            if path is not None:
                path = _normalize_path(path)
            entries: list[HistoryEntry] = []
            current: Commit | None = self._commit(self._resolve(state, branch))
            while current is not None and len(entries) < limit:
                parent = self._objects[current.parents[0]] if current.parents else None
                if path is not None:
                    mine = entry_at_path(self._objects, current.tree, path)
                    theirs = entry_at_path(self._objects, parent.tree, path) if parent else None
                    if mine == theirs:
                        current = parent
                        continue
                name, _, _ = current.author.decode().partition(" <")
                date = datetime.fromtimestamp(current.commit_time, tz=timezone.utc)
                entries.append(HistoryEntry(
                    sha=current.id.decode(),
                    author=name,
                    date=date.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    message=current.message.decode("utf-8"),
                ))
                current = parent
            return entries

    # --- releases and pull requests ---

    def list_releases(self, repo: RepositoryRef) -> list[Release]:
        with self._lock:
            return list(reversed(self._state(repo).releases))

    def create_release(self, repo: RepositoryRef, tag: str, title: str, notes: str, target: str) -> Release:
        with self._lock:
            state = self._state(repo)
            if any(r.tag == tag for r in state.releases):
                raise RemoteConflict(f"Release tag already exists: {tag}")
            if target not in state.refs:
                raise _unprocessable(f"target_commitish is invalid: {target}")
            release_id = next(self._ids)
            release = Release(
                id=release_id,
                tag=tag,
                title=title,
                notes=notes,
                target=target,
                upload_url=f"memory://{repo}/releases/{release_id}/assets{{?name,label}}",
                html_url=f"memory://{repo}/releases/tag/{tag}",
            )
            state.releases.append(release)
            return release

    def upload_release_asset(
        self, repo: RepositoryRef, release: Release, name: str, data: bytes, content_type: str
    ) -> ReleaseAsset:
        with self._lock:
            state = self._state(repo)
            for i, current in enumerate(state.releases):
                if current.id == release.id:
                    break
            else:
                raise RemoteNotFound(f"Release not found: {release.id}")
            if (release.id, name) in state.asset_data:
                raise _unprocessable(f"Asset {name!r} already exists")
            asset = ReleaseAsset(
                name=name,
                content_type=content_type,
                size=len(data),
                id=next(self._ids),
                download_url=f"memory://{repo}/releases/download/{current.tag}/{name}",
            )
            state.asset_data[(release.id, name)] = bytes(data)
            state.releases[i] = replace(current, assets=current.assets + (asset,))
            return asset

    def create_pull_request(
        self, repo: RepositoryRef, head: str, base: str, title: str, body: str = ""
    ) -> PullRequest:
        with self._lock:
            state = self._state(repo)
            if base not in state.refs:
                raise _unprocessable(f"base branch not found: {base}")
            namespace, sep, head_branch = head.partition(":")
            if not sep:
                namespace, head_branch = repo.namespace, head
            head_state = self._repos.get(RepositoryRef(namespace, repo.name))
            if head_state is None or head_branch not in head_state.refs:
                raise _unprocessable(f"head branch not found: {head}")
            pull = PullRequest(
                number=len(state.pulls) + 1,
                title=title,
                head=f"{namespace}:{head_branch}",
                base=base,
                html_url=f"memory://{repo}/pull/{len(state.pulls) + 1}",
            )
            state.pulls.append(pull)
            return pull
