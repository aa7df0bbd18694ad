"""Error taxonomy for the core pipeline."""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class TargetNotFound(PipelineError):
    """The source URL does not map to any fetchable target."""

    def __init__(self, url: str, reason: str = "no catalog entry matches") -> None:
        super().__init__(f"Target not found for {url}: {reason}")
        self.url = url
        self.reason = reason


class ThrottledResponse(PipelineError):
    """The remote side answered with a throttling signal (HTTP 429)."""

    def __init__(self, url: str, retry_after: Optional[float] = None) -> None:
        super().__init__(f"Throttled by {url}")
        self.url = url
        self.retry_after = retry_after


class TransportFailure(PipelineError):
    """Non-throttling HTTP/transport failure raised by source adapters."""

    def __init__(self, url: str, status: Optional[int] = None, body: str = "", detail: str = "") -> None:
        message = f"Request to {url} failed"
        if status is not None:
            message += f" with status {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.url = url
        self.status = status
        self.body = body
        self.detail = detail


class FetchExhausted(PipelineError):
    """A page stayed throttled for every allowed attempt."""

    def __init__(self, page: int, attempts: int) -> None:
        super().__init__(f"Page {page}: still throttled after {attempts} attempts")
        self.page = page
        self.attempts = attempts


class FetchError(PipelineError):
    """A page fetch failed for a non-retryable reason."""

    def __init__(self, page: int, status: Optional[int] = None, body: str = "", detail: str = "") -> None:
        message = f"Failed to fetch page {page}"
        if detail:
            message += f": {detail}"
        if status is not None:
            message += f"\nStatus: {status}"
        if body:
            message += f"\nResponse: {body[:500]}"
        super().__init__(message)
        self.page = page
        self.status = status
        self.body = body


class EnrichmentServiceError(PipelineError):
    """The scoring service call failed (timeout, throttling, HTTP or payload error)."""


class BatchExhausted(PipelineError):
    """An enrichment batch failed on every allowed attempt."""

    def __init__(self, batch_index: int, attempts: int, last_error: Optional[Exception] = None) -> None:
        super().__init__(f"Batch {batch_index} failed after {attempts} attempts: {last_error}")
        self.batch_index = batch_index
        self.attempts = attempts
        self.last_error = last_error


class ReportCapacityExceeded(PipelineError):
    """The report sink cannot hold the submitted row set."""


class EnrichmentFailed(PipelineError):
    """Every enrichment batch of a page failed, so no demand can be judged."""

    def __init__(self, page: int, batches: int, last_error: Optional[str] = None) -> None:
        message = f"Evirma enrichment failed for page {page}: all {batches} batches failed"
        if last_error:
            message += f"\nLast error: {last_error}"
        super().__init__(message)
        self.page = page
        self.batches = batches
        self.last_error = last_error
