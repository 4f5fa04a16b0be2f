"""Flows that combine a repository with the host's card exchange.

Both flows only read from the repository; they rewrite the local card.
"""

from __future__ import annotations

from .card import write_card_json
from .exceptions import ArtifactNotFound
from .exchange import ExchangeClient
from .objects import CHARACTER_JSON
from .repo import CardRepo


def _inject(repo: CardRepo, ref: str, exchange: ExchangeClient, avatar: str) -> dict:
    found = repo.read(CHARACTER_JSON, ref)
    if found is None:
        raise ArtifactNotFound(f"{CHARACTER_JSON} not found at {ref}")
    card = exchange.export_card(avatar)
    return exchange.import_card(write_card_json(card, found.text()), avatar)


def pull_card(repo: CardRepo, branch: str, exchange: ExchangeClient, avatar: str) -> dict:
    """Replace the local card's data with ``character.json`` from *branch*."""
    return _inject(repo, branch, exchange, avatar)


def revert_card(repo: CardRepo, target_sha: str, exchange: ExchangeClient, avatar: str) -> dict:
    """Replace the local card's data with ``character.json`` as of *target_sha*."""
    return _inject(repo, target_sha, exchange, avatar)
