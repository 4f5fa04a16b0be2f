"""Client for the host application's card export/import endpoints.

cardsync treats the host as an opaque byte service: it exports a card as
PNG bytes and imports PNG bytes back under a preserved name. Whatever
authentication headers the caller received (CSRF token, cookie) are
forwarded unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .exceptions import ExchangeError

logger = logging.getLogger(__name__)

EXPORT_PATH = "/api/characters/export"
IMPORT_PATH = "/api/characters/import"


class ExchangeClient:
    """Export and import character cards through the host application."""

    def __init__(
        self,
        base_url: str,
        forward_headers: Mapping[str, str] | None = None,
        *,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._headers = {k: v for k, v in (forward_headers or {}).items() if v is not None}
        self._client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.post(url, headers=self._headers, **kwargs)
        except httpx.RequestError as exc:
            raise ExchangeError(f"POST {url} failed: {exc}") from exc
        if not response.is_success:
            raise ExchangeError(f"POST {url} returned {response.status_code}: {response.text}")
        return response

    def export_card(self, avatar: str) -> bytes:
        """Return the PNG bytes of the local card *avatar*."""
        logger.debug("Exporting card %s", avatar)
        return self._post(EXPORT_PATH, json={"format": "png", "avatar_url": avatar}).content

    def import_card(self, data: bytes, preserved_name: str) -> dict:
        """Import PNG *data*, replacing the local card named *preserved_name*."""
        logger.debug("Importing card %s (%d bytes)", preserved_name, len(data))
        response = self._post(
            IMPORT_PATH,
            files={"avatar": (preserved_name, data, "image/png")},
            data={"file_type": "png", "preserved_name": preserved_name},
        )
        try:
            return response.json()
        except ValueError:
            return {}
