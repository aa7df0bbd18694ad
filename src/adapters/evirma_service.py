"""Evirma keyword scoring adapter (EnrichmentServicePort over aiohttp)."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import aiohttp

from adapters.wildberries_source import DEFAULT_HEADERS
from core.errors import EnrichmentServiceError

LOGGER = logging.getLogger(__name__)

EVIRMA_URL = "https://evirma.ru/api/v1/keyword/list"


class EvirmaService:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str = EVIRMA_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._session = session
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def query(self, keywords: Sequence[str]) -> dict:
        """POST one batch of keywords and return the decoded response."""

        payload = {"keywords": list(keywords), "an": False}
        try:
            async with self._session.post(
                self._url,
                json=payload,
                headers=DEFAULT_HEADERS,
                timeout=self._timeout,
            ) as response:
                if response.status == 429:
                    raise EnrichmentServiceError("Evirma API throttled the request (429)")
                if response.status >= 400:
                    body = await response.text()
                    raise EnrichmentServiceError(f"Evirma API error {response.status}: {body[:300]}")
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise EnrichmentServiceError(
                f"Evirma server error: timed out after {self._timeout.total:g} seconds"
            ) from exc
        except aiohttp.ClientError as exc:
            raise EnrichmentServiceError(f"Evirma API request failed: {exc}") from exc
        except ValueError as exc:
            raise EnrichmentServiceError(f"Evirma API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EnrichmentServiceError("Evirma API returned an unexpected payload")
        return data
