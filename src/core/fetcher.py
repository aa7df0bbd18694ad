"""Paginated listing fetches with throttling retries and pacing."""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import urlencode

from core.aggregator import ResultAggregator
from core.config import FetchConfig
from core.errors import FetchError, FetchExhausted, ThrottledResponse, TransportFailure
from core.models import FetchTarget, Page, TargetKind
from core.ports import CatalogSourcePort, Clock
from core.progress import ProgressReporter
from core.retry import RetryPolicy
from core.scheduler import RequestScheduler

LOGGER = logging.getLogger(__name__)


def build_page_url(page: int, target: FetchTarget, config: FetchConfig) -> str:
    """Return the listing URL for one page of the target."""

    if page < 1:
        raise ValueError(f"Page numbers start at 1, got {page}")

    params = dict(config.fixed_params)
    params["sort"] = target.filters.get("sort", config.default_sort)
    params["page"] = str(page)
    if target.kind is TargetKind.SEARCH:
        params["query"] = target.shard_or_query
        params["resultset"] = "catalog"
        base = config.search_url
    else:
        base = f"{config.catalog_base_url}/{target.shard_or_query}/catalog"
    for key, value in target.filters.items():
        if key not in ("sort", "page"):
            params[key] = value
    return f"{base}?{urlencode(params)}"


class RateLimitedFetcher:
    """Fetches one page at a time through the shared scheduler."""

    def __init__(
        self,
        source: CatalogSourcePort,
        scheduler: RequestScheduler,
        reporter: ProgressReporter,
        aggregator: ResultAggregator,
        clock: Clock,
        config: FetchConfig,
    ) -> None:
        self._source = source
        self._scheduler = scheduler
        self._reporter = reporter
        self._aggregator = aggregator
        self._clock = clock
        self._config = config
        self._policy = RetryPolicy(
            max_attempts=config.max_attempts,
            base_delay=config.throttle_backoff_seconds,
        )

    async def fetch_page(self, page: int, target: FetchTarget, observer_id: int) -> Page:
        """Fetch and parse one page.

        Raises ``FetchExhausted`` when every attempt was throttled and
        ``FetchError`` on any other failure.
        """

        url = build_page_url(page, target, self._config)
        state = self._policy.start()
        while True:
            attempt = state.next_attempt()
            try:
                payload = await self._scheduler.submit(lambda: self._source.fetch_json(url))
            except ThrottledResponse as exc:
                if state.exhausted:
                    LOGGER.warning("Page %s: throttled on all %s attempts", page, state.attempt)
                    raise FetchExhausted(page, state.attempt) from None
                wait_seconds = self._policy.backoff(attempt, exc.retry_after)
                await self._reporter.emit(
                    observer_id,
                    f"⏳ Page {page}: rate limited, retry {attempt}/{state.max_attempts - 1} in {wait_seconds:g}s",
                )
                await self._clock.sleep(wait_seconds)
                continue
            except TransportFailure as exc:
                LOGGER.error("Page %s: %s", page, exc)
                raise FetchError(page, status=exc.status, body=exc.body, detail=exc.detail or str(exc)) from exc
            break

        items: List[str] = self._aggregator.extract_names(payload)
        line = f"Page {page}: received {len(items)} products"
        retries = state.attempt - 1
        if retries:
            line += f" after {retries} retries"
        await self._reporter.emit(observer_id, line)
        await self._pace(page)
        return Page(number=page, items=tuple(items))

    async def _pace(self, page: int) -> None:
        every = self._config.long_delay_every
        if every and page % every == 0:
            await self._clock.sleep(self._config.long_delay_seconds)
        else:
            await self._clock.sleep(self._config.page_delay_seconds)
