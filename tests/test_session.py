"""Tests for the saved login session and runtime settings."""

import os
import stat

import pytest

from cardsync import Session, SessionStore, Settings


class TestSessionStore:
    def test_load_missing(self, tmp_path):
        assert SessionStore(tmp_path / "none.json").load() is None

    def test_save_and_load(self, tmp_path):
        store = SessionStore(tmp_path / "dir" / "session.json")
        store.save(Session("octo", "tok", "Octo Cat"))
        assert store.load() == Session("octo", "tok", "Octo Cat")

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_file_private(self, tmp_path):
        path = tmp_path / "session.json"
        SessionStore(path).save(Session("octo", "tok"))
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_clear(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        store.save(Session("octo", "tok"))
        store.clear()
        assert store.load() is None
        store.clear()

    def test_malformed(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text('{"login": "octo"}')
        with pytest.raises(ValueError, match="Malformed"):
            SessionStore(path).load()

    def test_repr_hides_token(self):
        assert "secret" not in repr(Session("octo", "secret"))


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.api_url == "https://api.github.com"
        assert settings.timeout == 60.0
        assert settings.history_limit == 100

    def test_overrides(self):
        settings = Settings.from_env({
            "CARDSYNC_API_URL": "https://ghe.example/api/v3",
            "CARDSYNC_TIMEOUT": "5",
            "CARDSYNC_HISTORY_LIMIT": "20",
            "CARDSYNC_SESSION": "/tmp/s.json",
            "CARDSYNC_EXCHANGE_URL": "http://localhost:9000",
        })
        assert settings.api_url == "https://ghe.example/api/v3"
        assert settings.timeout == 5.0
        assert settings.history_limit == 20
        assert settings.session_path == "/tmp/s.json"
        assert settings.exchange_url == "http://localhost:9000"

    @pytest.mark.parametrize("name,value", [
        ("CARDSYNC_TIMEOUT", "soon"),
        ("CARDSYNC_TIMEOUT", "-1"),
        ("CARDSYNC_HISTORY_LIMIT", "1.5"),
        ("CARDSYNC_HISTORY_LIMIT", "0"),
    ])
    def test_invalid_number(self, name, value):
        with pytest.raises(ValueError, match=name):
            Settings.from_env({name: value})
