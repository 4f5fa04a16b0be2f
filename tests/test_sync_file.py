"""Tests for the single-file synchronizer."""

import pytest

from cardsync import (
    CardSyncError,
    MemoryStore,
    PathIsDirectory,
    Payload,
    RemoteConflict,
    TransportError,
    read_file,
    sync_file,
)


class TestSyncFile:
    def test_create(self, card_repo):
        result = card_repo.sync_file("main", "character.json", '{"name": "Ann"}', "add Ann")
        assert result.path == "character.json"
        found = card_repo.read("character.json", "main")
        assert found.text() == '{"name": "Ann"}'
        assert found.sha == result.content_sha
        assert card_repo.head("main") == result.commit_sha

    def test_update_twice_in_a_row(self, card_repo):
        first = card_repo.sync_file("main", "character.json", "v1", "first")
        second = card_repo.sync_file("main", "character.json", "v2", "second")
        assert first.commit_sha != second.commit_sha
        assert card_repo.read("character.json", "main").text() == "v2"
        messages = [e.message for e in card_repo.log("main")]
        assert messages[:2] == ["second", "first"]

    def test_binary(self, card_repo, png):
        card_repo.sync_file("main", "card.png", png, "add card")
        assert card_repo.read("card.png", "main").data == png

    def test_one_commit_per_call(self, card_repo):
        before = len(card_repo.log("main"))
        card_repo.sync_file("main", "a.txt", "a", "a")
        assert len(card_repo.log("main")) == before + 1

    def test_sync_character_serializes(self, card_repo):
        card_repo.sync_character("main", {"name": "Zoë", "tags": ["a"]}, "save")
        text = card_repo.read("character.json", "main").text()
        assert '"name": "Zoë"' in text
        assert text.startswith("{\n  ")

    def test_missing_branch(self, card_repo):
        with pytest.raises(TransportError):
            card_repo.sync_file("ghost", "a.txt", "a", "a")


class _ChangesUnderneath(MemoryStore):
    """Writes the file through another path between the read and the write."""

    def put_content(self, repo, path, payload, message, branch, sha=None):
        if sha is not None and not getattr(self, "_interfered", False):
            self._interfered = True
            super().put_content(repo, path, Payload.text("other"), "other writer",
                                branch, sha)
        return super().put_content(repo, path, payload, message, branch, sha)


class TestConcurrentUpdate:
    def test_stale_sha_conflicts(self, ref):
        store = _ChangesUnderneath()
        store.init_repository(ref)
        sync_file(store, ref, "main", "a.txt", "v1", "seed")
        with pytest.raises(RemoteConflict):
            sync_file(store, ref, "main", "a.txt", "v2", "mine")
        assert read_file(store, ref, "main", "a.txt").data == b"other"


class TestReadFile:
    def test_directory_is_taxonomy_error(self, card_repo):
        card_repo.commit_files("main", {"chars/a.json": "{}"}, "nested")
        with pytest.raises(PathIsDirectory):
            card_repo.read("chars", "main")
        with pytest.raises(CardSyncError):
            card_repo.sync_file("main", "chars", "x", "overwrite dir")

    def test_absent_is_none(self, card_repo):
        assert read_file(card_repo.store, card_repo.ref, "main", "nope.txt") is None

    def test_read_at_commit(self, card_repo):
        old = card_repo.sync_file("main", "a.txt", "old", "old").commit_sha
        card_repo.sync_file("main", "a.txt", "new", "new")
        assert card_repo.read("a.txt", old).text() == "old"
        assert card_repo.read("a.txt", "main").text() == "new"
