"""GitHub REST v3 implementation of :class:`~cardsync.store.ObjectStore`."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any, Sequence
from urllib.parse import quote

import httpx

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

if TYPE_CHECKING:
    from .config import Settings
    from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

# GitHub caps per_page at 100
MAX_PAGE_SIZE = 100

# A repository without commits answers 409 "Git Repository is empty."
EMPTY_OR_MISSING = (404, 409)


def _commit_info(data: dict) -> CommitInfo:
    return CommitInfo(
        sha=data["sha"],
        tree_sha=data["tree"]["sha"],
        parents=tuple(p["sha"] for p in data.get("parents", [])),
        message=data.get("message", ""),
    )


def _repository_info(data: dict) -> RepositoryInfo:
    return RepositoryInfo(
        namespace=data["owner"]["login"],
        name=data["name"],
        default_branch=data.get("default_branch") or "main",
        clone_url=data.get("clone_url", ""),
        html_url=data.get("html_url", ""),
        private=bool(data.get("private", False)),
    )


def _asset(data: dict) -> ReleaseAsset:
    return ReleaseAsset(
        name=data["name"],
        content_type=data.get("content_type", ""),
        size=data.get("size", 0),
        id=data.get("id"),
        download_url=data.get("browser_download_url", ""),
    )


def _release(data: dict) -> Release:
    return Release(
        id=data["id"],
        tag=data["tag_name"],
        title=data.get("name") or "",
        notes=data.get("body") or "",
        target=data.get("target_commitish", ""),
        upload_url=data.get("upload_url", ""),
        html_url=data.get("html_url", ""),
        assets=tuple(_asset(a) for a in data.get("assets", [])),
    )


class GitHubStore:
    """Object-store facade over the GitHub REST and Git Data APIs.

    One ``httpx.Client`` is shared by all calls; every request is bounded
    by *timeout*. The client is safe to use from several threads at once.
    """

    DEFAULT_BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "cardsync",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        # download_url points outside the API; it gets no credentials
        self._download = httpx.Client(
            headers={"User-Agent": "cardsync"},
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def __repr__(self) -> str:
        return f"GitHubStore({str(self._client.base_url)!r})"

    @classmethod
    def from_session(cls, session: Session, settings: Settings | None = None, **kwargs) -> GitHubStore:
        """Build a store authenticated as *session*'s user."""
        if settings is not None:
            kwargs.setdefault("base_url", settings.api_url)
            kwargs.setdefault("timeout", settings.timeout)
        return cls(session.token, **kwargs)

    def close(self) -> None:
        self._client.close()
        self._download.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # --- plumbing ---

    def _request(
        self,
        method: str,
        url: str,
        *,
        conflict: Sequence[int] = (),
        missing: Sequence[int] = (404,),
        client: httpx.Client | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request and map failures onto the error taxonomy.

        Args:
            conflict: Statuses meaning "stale SHA or ref"; raised as
                ``RemoteConflict``. Only writes pass any.
            missing: Statuses raised as ``RemoteNotFound``. Reads of refs and
                history add 409, GitHub's answer for a repository with no
                commits.
            client: Client to send through instead of the authenticated one.
        """
        logger.debug("%s %s", method, url)
        try:
            response = (client or self._client).request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {url} timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if response.is_success:
            return response
        detail = _error_message(response)
        if response.status_code in missing:
            raise RemoteNotFound(f"{method} {url}: {detail}")
        if response.status_code in conflict:
            raise RemoteConflict(f"{method} {url}: {detail}")
        raise TransportError(
            f"{method} {url} returned {response.status_code}: {detail}",
            status=response.status_code,
        )

    def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        return self._request(method, url, **kwargs).json()

    @staticmethod
    def _repo_url(repo: RepositoryRef, suffix: str = "") -> str:
        return f"/repos/{quote(repo.namespace)}/{quote(repo.name)}{suffix}"

    # --- git data objects ---

    def create_blob(self, repo: RepositoryRef, payload: Payload) -> str:
        content, encoding = payload.blob_fields()
        data = self._json("POST", self._repo_url(repo, "/git/blobs"),
                          json={"content": content, "encoding": encoding})
        return data["sha"]

    def create_tree(self, repo: RepositoryRef, base_tree: str | None, entries: Sequence[TreeEntry]) -> str:
        body: dict[str, Any] = {"tree": [e.as_dict() for e in entries]}
        if base_tree is not None:
            body["base_tree"] = base_tree
        return self._json("POST", self._repo_url(repo, "/git/trees"), json=body)["sha"]

    def create_commit(self, repo: RepositoryRef, message: str, tree: str, parents: Sequence[str]) -> CommitInfo:
        data = self._json("POST", self._repo_url(repo, "/git/commits"),
                          json={"message": message, "tree": tree, "parents": list(parents)})
        return _commit_info(data)

    def get_commit(self, repo: RepositoryRef, sha: str) -> CommitInfo:
        return _commit_info(self._json("GET", self._repo_url(repo, f"/git/commits/{quote(sha)}")))

    def get_commit_detail(self, repo: RepositoryRef, sha: str) -> CommitDetail:
        data = self._json("GET", self._repo_url(repo, f"/commits/{quote(sha)}"), missing=EMPTY_OR_MISSING)
        commit = CommitInfo(
            sha=data["sha"],
            tree_sha=data["commit"]["tree"]["sha"],
            parents=tuple(p["sha"] for p in data.get("parents", [])),
            message=data["commit"].get("message", ""),
        )
        files = tuple(
            ChangedFile(f["filename"], f.get("status", "modified"), f.get("patch"))
            for f in data.get("files") or []
        )
        return CommitDetail(commit, files)

    # --- refs and branches ---

    def get_ref(self, repo: RepositoryRef, branch: str) -> str:
        data = self._json("GET", self._repo_url(repo, f"/git/ref/heads/{quote(branch)}"), missing=EMPTY_OR_MISSING)
        return data["object"]["sha"]

    def create_ref(self, repo: RepositoryRef, branch: str, sha: str) -> str:
        # 422 means the ref already exists
        data = self._json("POST", self._repo_url(repo, "/git/refs"), conflict=(409, 422),
                          json={"ref": f"refs/heads/{branch}", "sha": sha})
        return data["object"]["sha"]

    def update_ref(self, repo: RepositoryRef, branch: str, sha: str, *, force: bool = False) -> str:
        # 422 means the update is not a fast-forward
        data = self._json("PATCH", self._repo_url(repo, f"/git/refs/heads/{quote(branch)}"),
                          conflict=(409, 422), json={"sha": sha, "force": force})
        return data["object"]["sha"]

    def get_branch(self, repo: RepositoryRef, branch: str) -> BranchHead:
        data = self._json("GET", self._repo_url(repo, f"/branches/{quote(branch)}"), missing=EMPTY_OR_MISSING)
        return BranchHead(data["name"], data["commit"]["sha"])

    def list_branches(self, repo: RepositoryRef) -> list[str]:
        data = self._json("GET", self._repo_url(repo, "/branches"), params={"per_page": 100})
        return [b["name"] for b in data]

    # --- repositories ---

    def get_user(self) -> dict:
        """Return ``{"login": ..., "name": ...}`` of the token's owner."""
        data = self._json("GET", "/user")
        return {"login": data["login"], "name": data.get("name")}

    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo:
        return _repository_info(self._json("GET", self._repo_url(repo)))

    def create_repository(self, name: str, *, private: bool = True, description: str = "") -> RepositoryInfo:
        data = self._json("POST", "/user/repos",
                          json={"name": name, "private": private, "description": description})
        return _repository_info(data)

    def create_fork(self, repo: RepositoryRef) -> RepositoryInfo:
        return _repository_info(self._json("POST", self._repo_url(repo, "/forks")))

    # --- contents and history ---

    def get_content(self, repo: RepositoryRef, path: str, ref: str) -> FileContent:
        data = self._json(
            "GET",
            self._repo_url(repo, f"/contents/{quote(path)}"),
            params={"ref": ref},
            headers={"If-None-Match": ""},
            missing=EMPTY_OR_MISSING,
        )
        if isinstance(data, list) or data.get("type") == "dir":
            raise PathIsDirectory(path)
        if data.get("content"):
            raw = base64.b64decode(data["content"])
        elif data.get("download_url"):
            # Files over 1 MB come back without inline content
            logger.debug("Fetching %s from download_url", path)
            raw = self._request("GET", data["download_url"], client=self._download).content
        else:
            raw = b""
        return FileContent(path=path, sha=data["sha"], data=raw)

    def put_content(
        self,
        repo: RepositoryRef,
        path: str,
        payload: Payload,
        message: str,
        branch: str,
        sha: str | None = None,
    ) -> CommitResult:
        body = {"message": message, "content": payload.b64(), "branch": branch}
        if sha is not None:
            body["sha"] = sha
        # 409: stale sha; 422: file exists but no sha was supplied
        data = self._json("PUT", self._repo_url(repo, f"/contents/{quote(path)}"),
                          conflict=(409, 422), json=body)
        return CommitResult(path=path, commit_sha=data["commit"]["sha"], content_sha=data["content"]["sha"])

    def list_commits(
        self, repo: RepositoryRef, branch: str, path: str | None = None, limit: int = 100
    ) -> list[HistoryEntry]:
        per_page = min(limit, MAX_PAGE_SIZE)
        params: dict[str, Any] = {"sha": branch, "per_page": per_page}
        if path is not None:
            params["path"] = path
        entries: list[HistoryEntry] = []
        page = 1
        while len(entries) < limit:
            params["page"] = page
            data = self._json("GET", self._repo_url(repo, "/commits"), params=params,
                              missing=EMPTY_OR_MISSING)
            for item in data:
                author = item["commit"].get("author") or {}
                entries.append(HistoryEntry(
                    sha=item["sha"],
                    author=author.get("name") or "N/A",
                    date=author.get("date") or "N/A",
                    message=item["commit"].get("message", ""),
                ))
            if len(data) < per_page:
                break
            page += 1
        return entries[:limit]

    # --- releases and pull requests ---

    def list_releases(self, repo: RepositoryRef) -> list[Release]:
        return [_release(r) for r in self._json("GET", self._repo_url(repo, "/releases"))]

    def create_release(self, repo: RepositoryRef, tag: str, title: str, notes: str, target: str) -> Release:
        data = self._json("POST", self._repo_url(repo, "/releases"), conflict=(409, 422), json={
            "tag_name": tag,
            "target_commitish": target,
            "name": title,
            "body": notes,
            "draft": False,
            "prerelease": False,
        })
        return _release(data)

    def upload_release_asset(
        self, repo: RepositoryRef, release: Release, name: str, data: bytes, content_type: str
    ) -> ReleaseAsset:
        # upload_url is a URI template such as ".../assets{?name,label}"
        url = release.upload_url.split("{", 1)[0]
        if not url:
            url = f"https://uploads.github.com{self._repo_url(repo, f'/releases/{release.id}/assets')}"
        result = self._json(
            "POST", url,
            params={"name": name},
            headers={"Content-Type": content_type},
            content=data,
        )
        return _asset(result)

    def create_pull_request(
        self, repo: RepositoryRef, head: str, base: str, title: str, body: str = ""
    ) -> PullRequest:
        data = self._json("POST", self._repo_url(repo, "/pulls"), json={
            "title": title,
            "head": head,
            "base": base,
            "body": body,
            "maintainer_can_modify": True,
        })
        return PullRequest(
            number=data["number"],
            title=data.get("title", title),
            head=data.get("head", {}).get("label", head),
            base=data.get("base", {}).get("ref", base),
            html_url=data.get("html_url", ""),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
