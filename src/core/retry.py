"""Retry policy shared by the page fetcher and the enrichment client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.models import RetryState


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with a fixed wait between them.

    ``max_attempts`` counts every call, the first one included.
    """

    max_attempts: int
    base_delay: float

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def backoff(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait after the given (1-based) failed attempt.

        A server supplied ``retry_after`` shortens the wait but never
        extends it past ``base_delay``.
        """

        if retry_after is not None and retry_after > 0:
            return min(retry_after, self.base_delay)
        return self.base_delay

    def start(self) -> RetryState:
        return RetryState(max_attempts=self.max_attempts, backoff=self.base_delay)
