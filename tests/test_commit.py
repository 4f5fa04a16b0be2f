"""Tests for the atomic multi-file commit engine."""

import pytest

from cardsync import (
    Batch,
    BranchNotFound,
    FileSnapshot,
    MemoryStore,
    Payload,
    RemoteConflict,
    RemoteNotFound,
    TransportError,
    commit_files,
    retry_commit,
)


class TestCommitFiles:
    def test_two_files_one_commit(self, card_repo, png):
        head = card_repo.head("main")
        commit = card_repo.commit_files("main", {
            "character.json": '{"name": "Ann"}',
            "card.png": png,
        }, "save card")
        assert commit.parents == (head,)
        assert commit.message == "save card"
        assert card_repo.head("main") == commit.sha
        assert card_repo.read("character.json", "main").text() == '{"name": "Ann"}'
        assert card_repo.read("card.png", "main").data == png
        assert len(card_repo.log("main")) == 2
        changed = card_repo.store.get_commit_detail(card_repo.ref, commit.sha).files
        assert [f.filename for f in changed] == ["card.png", "character.json"]
        assert [f.status for f in changed] == ["added", "added"]

    def test_unlisted_paths_kept(self, card_repo):
        card_repo.commit_files("main", {"a.txt": "a"}, "a")
        card_repo.commit_files("main", {"b.txt": "b"}, "b")
        assert card_repo.read("a.txt", "main").text() == "a"
        assert card_repo.read("README.md", "main") is not None

    def test_nested_paths(self, card_repo):
        card_repo.commit_files("main", {"chars/ann/character.json": "{}"}, "nested")
        assert card_repo.read("chars/ann/character.json", "main").text() == "{}"

    def test_snapshots_accepted(self, card_repo):
        files = [FileSnapshot("a.txt", "a"), FileSnapshot("b.bin", b"\x00\x01")]
        card_repo.commit_files("main", files, "snapshots")
        assert card_repo.read("b.bin", "main").data == b"\x00\x01"

    def test_duplicate_path_last_wins(self, card_repo):
        files = [FileSnapshot("a.txt", "first"), FileSnapshot("a.txt", "second")]
        card_repo.commit_files("main", files, "dup")
        assert card_repo.read("a.txt", "main").text() == "second"

    def test_empty_list_reuses_tree(self, card_repo):
        store, ref = card_repo.store, card_repo.ref
        head = card_repo.head("main")
        parent_tree = store.get_commit(ref, head).tree_sha
        commit = card_repo.commit_files("main", [], "empty")
        assert commit.tree_sha == parent_tree
        assert commit.parents == (head,)
        assert card_repo.head("main") == commit.sha

    def test_missing_branch(self, card_repo):
        with pytest.raises(BranchNotFound):
            card_repo.commit_files("ghost", {"a.txt": "a"}, "x")

    def test_sequential_writers(self, card_repo):
        first = card_repo.commit_files("main", {"a.txt": "1"}, "one")
        second = card_repo.commit_files("main", {"a.txt": "2"}, "two")
        assert second.parents == (first.sha,)

    def test_serial_blob_creation(self, card_repo):
        commit = commit_files(card_repo.store, card_repo.ref, "main",
                              {"a": "a", "b": "b", "c": "c"}, "serial", max_workers=1)
        assert card_repo.head("main") == commit.sha


class TestExpectedHead:
    def test_matching(self, card_repo):
        head = card_repo.head("main")
        commit = card_repo.commit_files("main", {"a.txt": "a"}, "a", expected_head=head)
        assert commit.parents == (head,)

    def test_stale(self, card_repo):
        stale = card_repo.head("main")
        card_repo.commit_files("main", {"a.txt": "a"}, "a")
        current = card_repo.head("main")
        with pytest.raises(RemoteConflict):
            card_repo.commit_files("main", {"b.txt": "b"}, "b", expected_head=stale)
        assert card_repo.head("main") == current


class _MovesBranch(MemoryStore):
    """Advances the branch from another writer right after the commit object is built."""

    def create_commit(self, repo, message, tree, parents):
        result = super().create_commit(repo, message, tree, parents)
        if message == "mine":
            self.put_content(repo, "other.txt", Payload.text("theirs"), "theirs", "main")
        return result


class _RefUpdateFails(MemoryStore):
    def update_ref(self, repo, branch, sha, *, force=False):
        raise TransportError("service unavailable", status=503)


class TestAtomicity:
    def test_branch_moved_mid_operation(self, ref):
        store = _MovesBranch()
        store.init_repository(ref)
        store.put_content(ref, "README.md", Payload.text("#"), "initial commit", "main")
        with pytest.raises(RemoteConflict):
            commit_files(store, ref, "main", {"a.txt": "a"}, "mine")
        head = store.get_ref(ref, "main")
        assert store.get_commit(ref, head).message == "theirs"
        # The other writer's commit is on the branch, ours is not
        with pytest.raises(RemoteNotFound):
            store.get_content(ref, "a.txt", "main")

    def test_failed_ref_update_leaves_branch(self, ref):
        store = _RefUpdateFails()
        store.init_repository(ref)
        store.put_content(ref, "README.md", Payload.text("#"), "initial commit", "main")
        before = store.get_ref(ref, "main")
        with pytest.raises(TransportError):
            commit_files(store, ref, "main", {"a.txt": "a", "b.txt": "b"}, "x")
        assert store.get_ref(ref, "main") == before
        assert [e.message for e in store.list_commits(ref, "main")] == ["initial commit"]


class _ConflictsOnce(MemoryStore):
    def update_ref(self, repo, branch, sha, *, force=False):
        if not getattr(self, "_failed", False):
            self._failed = True
            raise RemoteConflict("not a fast forward")
        return super().update_ref(repo, branch, sha, force=force)


class TestRetryCommit:
    def test_retries_after_conflict(self, ref):
        store = _ConflictsOnce()
        store.init_repository(ref)
        store.put_content(ref, "README.md", Payload.text("#"), "initial commit", "main")
        commit = retry_commit(store, ref, "main", {"a.txt": "a"}, "retry")
        assert store.get_ref(ref, "main") == commit.sha

    def test_gives_up(self, ref):
        store = _ConflictsOnce()
        store.init_repository(ref)
        store.put_content(ref, "README.md", Payload.text("#"), "initial commit", "main")
        with pytest.raises(RemoteConflict):
            retry_commit(store, ref, "main", {"a.txt": "a"}, "retry", retries=1)


class TestBatch:
    def test_multiple_writes_single_commit(self, card_repo, png):
        head = card_repo.head("main")
        with card_repo.batch("main", "bulk") as b:
            b.write("character.json", "{}")
            b.write("card.png", png)
        assert b.commit is not None
        assert b.commit.parents == (head,)
        assert b.commit.message == "bulk"
        assert card_repo.read("card.png", "main").data == png

    def test_len(self, card_repo):
        with card_repo.batch("main", "x") as b:
            b.write("a", "1")
            b.write("a", "2")
            assert len(b) == 1
        assert card_repo.read("a", "main").text() == "2"

    def test_write_from(self, card_repo, tmp_path):
        local = tmp_path / "c.json"
        local.write_text('{"a": 1}')
        with card_repo.batch("main", "from disk") as b:
            b.write_from("character.json", local)
        assert card_repo.read("character.json", "main").text() == '{"a": 1}'

    def test_empty_batch_no_commit(self, card_repo):
        head = card_repo.head("main")
        with Batch(card_repo.store, card_repo.ref, "main", "nothing") as b:
            pass
        assert b.commit is None
        assert card_repo.head("main") == head

    def test_exception_no_commit(self, card_repo):
        head = card_repo.head("main")
        with pytest.raises(RuntimeError):
            with card_repo.batch("main", "boom") as b:
                b.write("a.txt", "a")
                raise RuntimeError("oops")
        assert b.commit is None
        assert card_repo.head("main") == head

    def test_closed_batch_rejects_writes(self, card_repo):
        with card_repo.batch("main", "x") as b:
            b.write("a", "1")
        with pytest.raises(RuntimeError):
            b.write("b", "2")
