from .locator import RepositoryRef, parse_repo_url
from .objects import (
    CARD_PNG, CHARACTER_JSON, README, TRACKED_PATHS,
    Payload, PayloadKind, FileSnapshot, TreeEntry, CommitInfo, CommitDetail, ChangedFile,
    FileContent, HistoryEntry, BranchHead, RepositoryInfo, Release, ReleaseAsset,
    PullRequest, CommitResult, BranchCreationResult, RevertResult, PublishReport,
)
from .exceptions import (
    CardSyncError, InvalidRepositoryAddress, BranchNotFound, BaseBranchNotFound,
    RemoteConflict, TransportError, RemoteNotFound, ArtifactNotFound, PathIsDirectory, ExchangeError,
    PartialPublishFailure,
)
from .store import ObjectStore
from .github import GitHubStore
from .memory import MemoryStore
from .bootstrap import ensure_branch
from .sync import sync_file, read_file
from .commit import commit_files, retry_commit, Batch
from .history import list_history, get_patch, head_sha, list_branches
from .revert import revert
from .release import publish_release, list_releases, AssetSpec
from .contrib import fork, open_pull_request, create_repository
from .repo import CardRepo
from .session import Session, SessionStore
from .config import Settings

__all__ = [
    "RepositoryRef", "parse_repo_url",
    "CARD_PNG", "CHARACTER_JSON", "README", "TRACKED_PATHS",
    "Payload", "PayloadKind", "FileSnapshot", "TreeEntry", "CommitInfo", "CommitDetail",
    "ChangedFile", "FileContent", "HistoryEntry", "BranchHead", "RepositoryInfo",
    "Release", "ReleaseAsset", "PullRequest", "CommitResult", "BranchCreationResult",
    "RevertResult", "PublishReport",
    "CardSyncError", "InvalidRepositoryAddress", "BranchNotFound", "BaseBranchNotFound",
    "RemoteConflict", "TransportError", "RemoteNotFound", "ArtifactNotFound", "PathIsDirectory",
    "ExchangeError", "PartialPublishFailure",
    "ObjectStore", "GitHubStore", "MemoryStore",
    "ensure_branch", "sync_file", "read_file", "commit_files", "retry_commit", "Batch",
    "list_history", "get_patch", "head_sha", "list_branches", "revert",
    "publish_release", "list_releases", "AssetSpec",
    "fork", "open_pull_request", "create_repository",
    "CardRepo", "Session", "SessionStore", "Settings",
]
