"""Tests for branch bootstrap."""

import pytest

from cardsync import (
    BaseBranchNotFound,
    MemoryStore,
    RemoteConflict,
    TransportError,
    ensure_branch,
)
from cardsync.bootstrap import DEFAULT_SEED, INITIAL_COMMIT_MESSAGE


class TestEmptyRepository:
    def test_seed_creates_first_commit(self, empty_repo):
        result = empty_repo.ensure_branch("main", seed_content="# hello")
        assert result.bootstrapped
        assert empty_repo.branches() == ["main"]
        assert empty_repo.read("README.md", "main").data == b"# hello"
        log = empty_repo.log("main")
        assert len(log) == 1
        assert log[0].message == INITIAL_COMMIT_MESSAGE
        assert log[0].sha == result.sha

    def test_default_seed(self, empty_repo):
        empty_repo.ensure_branch("main")
        assert empty_repo.read("README.md", "main").text() == DEFAULT_SEED

    def test_custom_seed_path(self, empty_repo):
        empty_repo.ensure_branch("main", seed_content="{}", seed_path="character.json")
        assert empty_repo.read("character.json", "main").text() == "{}"
        assert empty_repo.read("README.md", "main") is None

    def test_non_default_branch_name(self, empty_repo):
        result = empty_repo.ensure_branch("cards")
        assert result.bootstrapped
        assert empty_repo.branches() == ["cards"]


class TestExistingRepository:
    def test_branch_from_default(self, card_repo):
        main_head = card_repo.head("main")
        result = card_repo.ensure_branch("feature")
        assert not result.bootstrapped
        assert result.sha == main_head
        assert card_repo.head("feature") == main_head
        assert len(card_repo.log("main")) == 1

    def test_branch_from_base(self, card_repo):
        card_repo.sync_file("main", "a.txt", "a", "add a")
        card_repo.ensure_branch("dev")
        card_repo.sync_file("dev", "b.txt", "b", "add b")
        result = card_repo.ensure_branch("topic", base="dev")
        assert result.sha == card_repo.head("dev")
        assert result.sha != card_repo.head("main")

    def test_missing_base(self, card_repo):
        with pytest.raises(BaseBranchNotFound) as exc_info:
            card_repo.ensure_branch("topic", base="ghost")
        assert exc_info.value.branch == "ghost"
        assert "topic" not in card_repo.branches()

    def test_missing_base_in_empty_repo(self, empty_repo):
        with pytest.raises(BaseBranchNotFound):
            empty_repo.ensure_branch("topic", base="main")
        assert empty_repo.branches() == []

    def test_existing_branch_conflicts(self, card_repo):
        with pytest.raises(RemoteConflict):
            card_repo.ensure_branch("main")


class _FlakyBranches(MemoryStore):
    def get_branch(self, repo, branch):
        raise TransportError("server error", status=502)


class TestErrors:
    def test_non_404_failure_propagates(self, ref):
        store = _FlakyBranches()
        store.init_repository(ref)
        with pytest.raises(TransportError) as exc_info:
            ensure_branch(store, ref, "main")
        assert exc_info.value.status == 502
        # Nothing was seeded
        assert store.list_branches(ref) == []
