"""Repository locator: turn a repository URL into ``namespace/name``."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from .exceptions import InvalidRepositoryAddress

_VCS_SUFFIX = ".git"


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Two-part identifier of a hosted repository."""

    namespace: str
    name: str

    def __post_init__(self):
        if not self.namespace or not self.name:
            raise InvalidRepositoryAddress(
                f"Repository namespace and name must be non-empty: {self.namespace!r}/{self.name!r}"
            )

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def full_name(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, url: str) -> RepositoryRef:
        return parse_repo_url(url)


def parse_repo_url(url: str) -> RepositoryRef:
    """Parse an absolute repository URL into a :class:`RepositoryRef`.

    ``https://github.com/acme/cards`` and ``https://github.com/acme/cards.git``
    both resolve to ``RepositoryRef("acme", "cards")``.

    Raises:
        InvalidRepositoryAddress: If *url* is not an absolute URL or its path
            has fewer than two non-empty segments.
    """
    if not isinstance(url, str):
        raise InvalidRepositoryAddress(f"Invalid repository URL: {url!r}")
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        raise InvalidRepositoryAddress(f"Invalid repository URL: {url!r}")
    if not parts.scheme or not parts.netloc:
        raise InvalidRepositoryAddress(f"Invalid repository URL: {url!r}")

    path = parts.path.strip("/")
    if path.endswith(_VCS_SUFFIX):
        path = path[: -len(_VCS_SUFFIX)]
    segments = [seg for seg in path.split("/") if seg]
    if len(segments) < 2:
        raise InvalidRepositoryAddress(
            f"Invalid repository URL {url!r}: expected <namespace>/<name> in the path"
        )
    return RepositoryRef(segments[0], segments[1])
