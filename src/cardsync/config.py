"""Runtime settings, read from ``CARDSYNC_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .github import DEFAULT_TIMEOUT, GitHubStore
from .history import DEFAULT_HISTORY_LIMIT


def _number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    api_url: str = GitHubStore.DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    history_limit: int = DEFAULT_HISTORY_LIMIT
    session_path: str = "~/.cardsync/session.json"
    exchange_url: str = "http://127.0.0.1:8000"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            api_url=env.get("CARDSYNC_API_URL") or cls.api_url,
            timeout=_number(env, "CARDSYNC_TIMEOUT", cls.timeout, float),
            history_limit=_number(env, "CARDSYNC_HISTORY_LIMIT", cls.history_limit, int),
            session_path=env.get("CARDSYNC_SESSION") or cls.session_path,
            exchange_url=env.get("CARDSYNC_EXCHANGE_URL") or cls.exchange_url,
        )
