"""Explicit login session and its on-disk store."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Who is logged in and the token their requests carry."""

    login: str
    token: str
    name: str | None = None

    def __repr__(self) -> str:
        return f"Session(login={self.login!r})"


class SessionStore:
    """Persists one :class:`Session` as a JSON file."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path).expanduser()

    def __repr__(self) -> str:
        return f"SessionStore({str(self.path)!r})"

    def load(self) -> Session | None:
        """Return the saved session, or None if nobody is logged in."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        try:
            return Session(login=data["login"], token=data["token"], name=data.get("name"))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed session file {self.path}: {exc}") from exc

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(session), indent=2), encoding="utf-8")
        os.chmod(tmp, 0o600)
        os.replace(tmp, self.path)
        logger.info("Saved session for %s", session.login)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.info("Cleared session %s", self.path)
