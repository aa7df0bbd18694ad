"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the remote source, the scoring
service, the report sink and the chat transport so that the core can be
reused with different backends.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from core.models import PipelineOutcome


class CatalogSourcePort(Protocol):
    """Read-only access to the marketplace catalog and listing pages.

    Implementations raise ``ThrottledResponse`` on HTTP 429 and
    ``TransportFailure`` on any other failure.
    """

    async def fetch_catalog(self) -> Any:
        ...

    async def fetch_json(self, url: str) -> dict:
        ...


class EnrichmentServicePort(Protocol):
    """Keyword scoring service. Raises ``EnrichmentServiceError`` on failure."""

    async def query(self, keywords: Sequence[str]) -> dict:
        ...


class ReportSinkPort(Protocol):
    """Persists a row set and returns an artifact handle."""

    async def submit(self, observer_id: int, rows: Sequence[dict], title: str) -> str:
        ...


class ProgressChannelPort(Protocol):
    """Delivers progress lines to the observer's chat."""

    async def append(self, observer_id: int, line: str) -> None:
        ...

    async def reset(self, observer_id: int) -> None:
        ...


class OutcomeNotifierPort(Protocol):
    """Delivers the single terminal message of a pipeline run."""

    async def send(self, outcome: PipelineOutcome) -> None:
        ...


class Clock(Protocol):
    """Time source; swapped for a fake in tests."""

    def monotonic(self) -> float:
        ...

    async def sleep(self, seconds: float) -> None:
        ...
