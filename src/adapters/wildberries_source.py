"""Wildberries catalog source adapter.

Implements the core CatalogSourcePort over aiohttp. HTTP 429 is surfaced as
``ThrottledResponse``; every other failure becomes ``TransportFailure`` so
the core can decide what is retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from core.errors import ThrottledResponse, TransportFailure

LOGGER = logging.getLogger(__name__)

CATALOG_URL = "https://static-basket-01.wbbasket.ru/vol0/data/main-menu-ru-ru-v3.json"

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def _retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class WildberriesSource:
    """Read-only JSON GETs against the marketplace catalog and listings."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        catalog_url: str = CATALOG_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._session = session
        self._catalog_url = catalog_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def fetch_catalog(self) -> Any:
        LOGGER.info("Fetching catalog tree from %s", self._catalog_url)
        return await self._get_json(self._catalog_url)

    async def fetch_json(self, url: str) -> dict:
        payload = await self._get_json(url)
        if not isinstance(payload, dict):
            raise TransportFailure(url, detail="unexpected JSON payload")
        return payload

    async def _get_json(self, url: str) -> Any:
        try:
            async with self._session.get(url, headers=DEFAULT_HEADERS, timeout=self._timeout) as response:
                if response.status == 429:
                    raise ThrottledResponse(url, _retry_after(response.headers.get("Retry-After")))
                body = await response.text()
                if response.status >= 400:
                    raise TransportFailure(url, status=response.status, body=body)
        except asyncio.TimeoutError as exc:
            raise TransportFailure(url, detail=f"timed out after {self._timeout.total:g}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportFailure(url, detail=str(exc)) from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise TransportFailure(url, status=response.status, body=body[:500], detail="invalid JSON") from exc
