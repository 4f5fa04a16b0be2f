"""Release publisher: create a release and attach file snapshots to it."""

from __future__ import annotations

import logging
import mimetypes
from typing import NamedTuple, Sequence

from .exceptions import CardSyncError, PartialPublishFailure
from .locator import RepositoryRef
from .objects import CARD_PNG, CHARACTER_JSON, PublishReport, Release
from .store import ObjectStore
from .sync import read_file
from .tree import _normalize_path

logger = logging.getLogger(__name__)


class AssetSpec(NamedTuple):
    """A branch path to attach, the asset name and its content type."""

    path: str
    name: str | None = None
    content_type: str | None = None

    @property
    def asset_name(self) -> str:
        return self.name or self.path.rsplit("/", 1)[-1]

    @property
    def mime_type(self) -> str:
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.asset_name)
        return guessed or "application/octet-stream"


DEFAULT_ASSETS = (
    AssetSpec(CHARACTER_JSON, content_type="application/json"),
    AssetSpec(CARD_PNG, content_type="image/png"),
)


def list_releases(store: ObjectStore, repo: RepositoryRef) -> list[Release]:
    return store.list_releases(repo)


def publish_release(
    store: ObjectStore,
    repo: RepositoryRef,
    version: str,
    title: str,
    notes: str,
    target_branch: str,
    assets: Sequence[AssetSpec | str] = DEFAULT_ASSETS,
) -> PublishReport:
    """Create release *version* on *target_branch* and attach *assets*.

    Each asset is read from the branch as it is now and uploaded on its
    own; the uploads are not transactional with the release or with each
    other. Paths missing on the branch are reported in ``skipped``.

    Raises:
        PartialPublishFailure: If the release was created but one or more
            assets failed. The exception carries the report of what did
            succeed; every asset is attempted before it is raised.
        ValueError: If an asset path is malformed. Checked before the
            release is created.
    """
    specs = [AssetSpec(spec) if isinstance(spec, str) else spec for spec in assets]
    for spec in specs:
        _normalize_path(spec.path)

    release = store.create_release(repo, version, title, notes, target_branch)
    logger.info("Created release %s in %s", version, repo)
    report = PublishReport(release)
    failures: dict[str, Exception] = {}

    for spec in specs:
        try:
            found = read_file(store, repo, target_branch, spec.path)
            if found is None:
                logger.debug("Skipping %s: absent on %s", spec.path, target_branch)
                report.skipped.append(spec.path)
                continue
            asset = store.upload_release_asset(repo, release, spec.asset_name, found.data, spec.mime_type)
        except CardSyncError as exc:
            logger.warning("Release %s: asset %s failed: %s", version, spec.path, exc)
            failures[spec.path] = exc
            continue
        report.uploaded.append(asset)

    if failures:
        raise PartialPublishFailure(report, failures)
    return report
