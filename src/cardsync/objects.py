"""Value types exchanged between the engines and the object-store facade."""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field
from enum import Enum

from .tree import GIT_FILEMODE_BLOB, _normalize_path

CHARACTER_JSON = "character.json"
CARD_PNG = "card.png"
README = "README.md"
TRACKED_PATHS = (CHARACTER_JSON, CARD_PNG)


class PayloadKind(str, Enum):
    """How a payload travels to the blob endpoint."""
    TEXT = "text"
    BINARY = "binary"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True, slots=True)
class Payload:
    """File content tagged as text or binary.

    Build one with :meth:`text`, :meth:`binary` or :meth:`coerce` rather
    than guessing the kind from the value later on.
    """

    kind: PayloadKind
    data: str | bytes

    def __post_init__(self):
        if self.kind is PayloadKind.TEXT and not isinstance(self.data, str):
            raise TypeError("Text payload requires str data")
        if self.kind is PayloadKind.BINARY and not isinstance(self.data, (bytes, bytearray)):
            raise TypeError("Binary payload requires bytes data")

    @classmethod
    def text(cls, data: str) -> Payload:
        return cls(PayloadKind.TEXT, data)

    @classmethod
    def binary(cls, data: bytes) -> Payload:
        return cls(PayloadKind.BINARY, bytes(data))

    @classmethod
    def coerce(cls, value: Payload | str | bytes) -> Payload:
        """Wrap *value*: ``str`` becomes text, ``bytes`` becomes binary."""
        if isinstance(value, Payload):
            return value
        if isinstance(value, str):
            return cls.text(value)
        if isinstance(value, (bytes, bytearray)):
            return cls.binary(bytes(value))
        raise TypeError(f"Cannot use {type(value).__name__} as file content")

    @property
    def is_binary(self) -> bool:
        return self.kind is PayloadKind.BINARY

    def as_bytes(self) -> bytes:
        if self.kind is PayloadKind.TEXT:
            return self.data.encode("utf-8")
        return bytes(self.data)

    def blob_fields(self) -> tuple[str, str]:
        """Return ``(content, encoding)`` for a create-blob request."""
        if self.kind is PayloadKind.TEXT:
            return self.data, "utf-8"
        return base64.b64encode(self.data).decode("ascii"), "base64"

    def b64(self) -> str:
        """Base64 of the raw bytes, as the contents endpoint expects."""
        return base64.b64encode(self.as_bytes()).decode("ascii")


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """One file to write: a path, its content and optionally its known SHA."""

    path: str
    content: Payload
    sha: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "path", _normalize_path(self.path))
        object.__setattr__(self, "content", Payload.coerce(self.content))

    @classmethod
    def from_local(cls, path: str, local_path: str | os.PathLike[str]) -> FileSnapshot:
        """Snapshot of a local file; ``.json``/``.md``/``.txt`` are sent as text."""
        with open(local_path, "rb") as f:
            data = f.read()
        if os.fspath(local_path).lower().endswith((".json", ".md", ".txt")):
            try:
                return cls(path, Payload.text(data.decode("utf-8")))
            except UnicodeDecodeError:
                pass
        return cls(path, Payload.binary(data))


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A blob entry in a create-tree request."""

    path: str
    sha: str
    mode: str = f"{GIT_FILEMODE_BLOB:o}"
    type: str = "blob"

    def as_dict(self) -> dict:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """A commit object: its SHA, tree, parents and message."""

    sha: str
    tree_sha: str
    parents: tuple[str, ...]
    message: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True, slots=True)
class ChangedFile:
    """One entry of a commit's file list; *patch* is ``None`` for binary files."""

    filename: str
    status: str
    patch: str | None = None


@dataclass(frozen=True, slots=True)
class CommitDetail:
    commit: CommitInfo
    files: tuple[ChangedFile, ...] = ()

    def file(self, path: str) -> ChangedFile | None:
        for changed in self.files:
            if changed.filename == path:
                return changed
        return None


@dataclass(frozen=True, slots=True)
class FileContent:
    """A file read from the remote at some ref."""

    path: str
    sha: str
    data: bytes

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    sha: str
    author: str
    date: str
    message: str

    def as_dict(self) -> dict:
        return {"hash": self.sha, "author": self.author, "date": self.date, "message": self.message}


@dataclass(frozen=True, slots=True)
class BranchHead:
    name: str
    sha: str


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Descriptor of a hosted repository (also returned for forks)."""

    namespace: str
    name: str
    default_branch: str
    clone_url: str = ""
    html_url: str = ""
    private: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    name: str
    content_type: str
    size: int
    id: int | None = None
    download_url: str = ""


@dataclass(frozen=True, slots=True)
class Release:
    id: int
    tag: str
    title: str
    notes: str
    target: str
    upload_url: str = ""
    html_url: str = ""
    assets: tuple[ReleaseAsset, ...] = ()


@dataclass(frozen=True, slots=True)
class PullRequest:
    number: int
    title: str
    head: str
    base: str
    html_url: str = ""


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of a single-file create-or-update."""

    path: str
    commit_sha: str
    content_sha: str


@dataclass(frozen=True, slots=True)
class BranchCreationResult:
    """Outcome of :func:`~cardsync.bootstrap.ensure_branch`.

    *bootstrapped* is True when the branch was created by seeding an empty
    repository with its first commit.
    """

    branch: str
    sha: str
    bootstrapped: bool = False


@dataclass(frozen=True, slots=True)
class RevertResult:
    """The revert commit plus the restored bytes of each tracked path."""

    commit: CommitInfo
    contents: dict[str, bytes | None]

    def text(self, path: str, encoding: str = "utf-8") -> str | None:
        data = self.contents.get(path)
        return None if data is None else data.decode(encoding)


@dataclass
class PublishReport:
    """What a release publish achieved.

    Attributes:
        release: The created release.
        uploaded: Assets attached to it, in upload order.
        skipped: Paths that were absent on the target branch.
    """
    release: Release
    uploaded: list[ReleaseAsset] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
