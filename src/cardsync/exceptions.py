"""Exceptions for cardsync."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .objects import PublishReport


class CardSyncError(Exception):
    """Base class for every error raised by cardsync."""


class InvalidRepositoryAddress(CardSyncError, ValueError):
    """The repository URL could not be resolved to ``namespace/name``."""


class BranchNotFound(CardSyncError):
    """The branch a commit or read targets does not exist."""

    def __init__(self, branch: str, message: str | None = None):
        super().__init__(message or f"Branch not found: {branch}")
        self.branch = branch


class BaseBranchNotFound(BranchNotFound):
    """The branch a new branch should start from does not exist."""

    def __init__(self, branch: str):
        super().__init__(branch, f"Base branch not found: {branch}")


class RemoteConflict(CardSyncError):
    """The remote rejected a write made against a stale SHA.

    Re-read the current state and retry, or use
    :func:`~cardsync.commit.retry_commit` for automatic retry with backoff.
    """


class TransportError(CardSyncError):
    """A remote request failed (network error, timeout or provider error)."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteNotFound(TransportError):
    """The remote answered 404 for a ref, commit, file or repository."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class ArtifactNotFound(CardSyncError, FileNotFoundError):
    """A required file is absent at the requested revision."""


class PathIsDirectory(CardSyncError, IsADirectoryError):
    """A file operation named a directory in the repository tree."""


class ExchangeError(CardSyncError):
    """The artifact exchange service refused an export or import."""


class PartialPublishFailure(CardSyncError):
    """A release exists but some of its assets could not be attached.

    Attributes:
        report: What did succeed (the release, uploaded and skipped assets).
        failures: Mapping of asset path to the exception it failed with.
    """

    def __init__(self, report: PublishReport, failures: dict[str, Exception]):
        names = ", ".join(sorted(failures))
        super().__init__(
            f"Release {report.release.tag!r} created but assets failed: {names}"
        )
        self.report = report
        self.failures = failures
