"""Tests for the release publisher."""

import pytest

from cardsync import (
    AssetSpec,
    MemoryStore,
    PartialPublishFailure,
    PathIsDirectory,
    Payload,
    RemoteConflict,
    TransportError,
    publish_release,
)

from conftest import character


@pytest.fixture
def published_repo(card_repo, png):
    card_repo.commit_files("main", {"character.json": character("Ann"), "card.png": png}, "card")
    return card_repo


class TestPublishRelease:
    def test_attaches_both_assets(self, published_repo, png):
        report = published_repo.publish_release("v1.0", "First", "notes", "main")
        assert report.release.tag == "v1.0"
        assert report.release.title == "First"
        assert [a.name for a in report.uploaded] == ["character.json", "card.png"]
        assert [a.content_type for a in report.uploaded] == ["application/json", "image/png"]
        assert report.skipped == []
        store = published_repo.store
        assert store.release_asset_data(published_repo.ref, report.release.id, "card.png") == png

    def test_listed(self, published_repo):
        published_repo.publish_release("v1.0", "First", "", "main")
        published_repo.publish_release("v1.1", "Second", "", "main")
        releases = published_repo.releases()
        assert [r.tag for r in releases] == ["v1.1", "v1.0"]
        assert [a.name for a in releases[0].assets] == ["character.json", "card.png"]

    def test_absent_file_skipped(self, card_repo):
        card_repo.commit_files("main", {"character.json": character("Ann")}, "json only")
        report = card_repo.publish_release("v1", "t", "", "main")
        assert [a.name for a in report.uploaded] == ["character.json"]
        assert report.skipped == ["card.png"]

    def test_custom_assets(self, published_repo):
        report = published_repo.publish_release(
            "v2", "t", "", "main",
            assets=[AssetSpec("character.json", name="ann.json"), "README.md"],
        )
        assert [a.name for a in report.uploaded] == ["ann.json", "README.md"]

    def test_duplicate_tag(self, published_repo):
        published_repo.publish_release("v1", "t", "", "main")
        with pytest.raises(RemoteConflict):
            published_repo.publish_release("v1", "t", "", "main")

    def test_missing_target(self, published_repo):
        with pytest.raises(TransportError):
            published_repo.publish_release("v1", "t", "", "ghost")
        assert published_repo.releases() == []


class _PngUploadFails(MemoryStore):
    def upload_release_asset(self, repo, release, name, data, content_type):
        if name == "card.png":
            raise TransportError("upload failed", status=500)
        return super().upload_release_asset(repo, release, name, data, content_type)


class _JsonUploadFails(MemoryStore):
    def upload_release_asset(self, repo, release, name, data, content_type):
        if name == "character.json":
            raise TransportError("upload failed", status=500)
        return super().upload_release_asset(repo, release, name, data, content_type)


class TestPartialFailure:
    def _seed(self, store, ref, png):
        store.init_repository(ref)
        store.put_content(ref, "character.json", Payload.text("{}"), "c", "main")
        store.put_content(ref, "card.png", Payload.binary(png), "p", "main")

    def test_release_exists_with_json(self, ref, png):
        store = _PngUploadFails()
        self._seed(store, ref, png)
        with pytest.raises(PartialPublishFailure) as exc_info:
            publish_release(store, ref, "v1", "t", "", "main")
        err = exc_info.value
        assert list(err.failures) == ["card.png"]
        assert [a.name for a in err.report.uploaded] == ["character.json"]
        releases = store.list_releases(ref)
        assert [r.tag for r in releases] == ["v1"]
        assert [a.name for a in releases[0].assets] == ["character.json"]

    def test_later_assets_still_attempted(self, ref, png):
        store = _JsonUploadFails()
        self._seed(store, ref, png)
        with pytest.raises(PartialPublishFailure) as exc_info:
            publish_release(store, ref, "v1", "t", "", "main")
        assert [a.name for a in exc_info.value.report.uploaded] == ["card.png"]
        assert "character.json" in str(exc_info.value)


class TestAssetPaths:
    def test_directory_asset_reported(self, card_repo):
        card_repo.commit_files("main", {
            "character.json": character("Ann"), "chars/a.json": "{}"}, "nested")
        with pytest.raises(PartialPublishFailure) as exc_info:
            card_repo.publish_release("v1", "t", "", "main", assets=["character.json", "chars"])
        err = exc_info.value
        assert [a.name for a in err.report.uploaded] == ["character.json"]
        assert list(err.failures) == ["chars"]
        assert isinstance(err.failures["chars"], PathIsDirectory)

    def test_malformed_path_before_release(self, published_repo):
        with pytest.raises(ValueError):
            published_repo.publish_release("v1", "t", "", "main", assets=["character.json", ""])
        assert published_repo.releases() == []
