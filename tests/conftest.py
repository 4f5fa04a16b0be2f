"""Shared fixtures for cardsync tests."""

import json
import struct
import zlib

import pytest
from click.testing import CliRunner

from cardsync import CardRepo, MemoryStore, RepositoryRef
from cardsync.card import PNG_SIGNATURE

REPO_URL = "https://github.com/acme/cards"


def make_png(extra_chunks=()):
    """Minimal 1x1 PNG; *extra_chunks* are (type, data) pairs placed before IDAT."""
    def chunk(ctype, data):
        crc = zlib.crc32(ctype + data) & 0xFFFFFFFF
        return struct.pack(">I4s", len(data), ctype) + data + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 6, 0, 0, 0)
    idat = zlib.compress(b"\x00\x00\x00\x00\x00")
    parts = [PNG_SIGNATURE, chunk(b"IHDR", ihdr)]
    parts += [chunk(t, d) for t, d in extra_chunks]
    parts += [chunk(b"IDAT", idat), chunk(b"IEND", b"")]
    return b"".join(parts)


def character(name, **fields):
    return json.dumps({"name": name, **fields}, indent=2)


@pytest.fixture
def store():
    return MemoryStore(login="octo")


@pytest.fixture
def ref():
    return RepositoryRef("acme", "cards")


@pytest.fixture
def empty_repo(store, ref):
    """A repository with a default branch name but no commits."""
    store.init_repository(ref)
    return CardRepo(store, ref)


@pytest.fixture
def card_repo(empty_repo):
    """Repository bootstrapped with a README on 'main'."""
    empty_repo.ensure_branch("main")
    return empty_repo


@pytest.fixture
def png():
    return make_png()


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the session file into tmp_path and clear ambient configuration."""
    for name in ("CARDSYNC_TOKEN", "CARDSYNC_REPO", "CARDSYNC_API_URL",
                 "CARDSYNC_TIMEOUT", "CARDSYNC_HISTORY_LIMIT", "CARDSYNC_EXCHANGE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CARDSYNC_SESSION", str(tmp_path / "session.json"))
    return tmp_path
