from __future__ import annotations

import asyncio
from urllib.parse import parse_qs, urlsplit

import pytest

from core.aggregator import ResultAggregator
from core.config import FetchConfig, ProgressConfig, SchedulerConfig
from core.errors import FetchError, FetchExhausted, ThrottledResponse, TransportFailure
from core.fetcher import RateLimitedFetcher, build_page_url
from core.models import FetchTarget, TargetKind
from core.progress import ProgressReporter
from core.scheduler import RequestScheduler
from core.session import SessionRegistry
from fakes import FakeChannel, FakeClock, FakeSource, page_of, products_payload

CATEGORY = FetchTarget(kind=TargetKind.CATEGORY, shard_or_query="bl_shard", filters={"cat": "8126"}, label="Bath")


def _fetcher(source: FakeSource, config: FetchConfig = FetchConfig()):
    clock = FakeClock()
    registry = SessionRegistry()
    channel = FakeChannel()
    reporter = ProgressReporter(channel, registry, clock, ProgressConfig(pause_every=0))
    scheduler = RequestScheduler(SchedulerConfig(min_interval_seconds=0), clock)
    fetcher = RateLimitedFetcher(source, scheduler, reporter, ResultAggregator(), clock, config)
    registry.try_start(7)
    return fetcher, clock, channel


def test_category_url_embeds_shard_page_and_filters() -> None:
    url = build_page_url(3, CATEGORY, FetchConfig())
    parts = urlsplit(url)
    params = parse_qs(parts.query)

    assert parts.path == "/catalog/bl_shard/catalog"
    assert params["page"] == ["3"]
    assert params["cat"] == ["8126"]
    assert params["sort"] == ["popular"]
    assert params["curr"] == ["rub"]
    assert params["locale"] == ["ru"]


def test_search_url_uses_query_and_sort_filter() -> None:
    target = FetchTarget(kind=TargetKind.SEARCH, shard_or_query="кружка", filters={"sort": "rate", "priceU": "1;2"})
    params = parse_qs(urlsplit(build_page_url(1, target, FetchConfig())).query)

    assert params["query"] == ["кружка"]
    assert params["sort"] == ["rate"]
    assert params["priceU"] == ["1;2"]


def test_page_numbers_start_at_one() -> None:
    with pytest.raises(ValueError):
        build_page_url(0, CATEGORY, FetchConfig())


def test_recovers_after_max_attempts_minus_one_throttles() -> None:
    throttles = [ThrottledResponse("u") for _ in range(5)]
    source = FakeSource(pages={1: [*throttles, page_of(3)]})
    fetcher, clock, channel = _fetcher(source)

    page = asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert len(page.items) == 3
    assert len(source.urls) == 6
    assert clock.sleeps.count(30.0) == 5
    assert any("rate limited" in line for _, line in channel.appended)
    assert (7, "Page 1: received 3 products after 5 retries") in channel.appended


def test_first_try_success_reports_no_retries() -> None:
    fetcher, _, channel = _fetcher(FakeSource(pages={1: page_of(2)}))

    asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert channel.appended == [(7, "Page 1: received 2 products")]


def test_retry_after_shortens_but_never_extends_the_wait() -> None:
    source = FakeSource(pages={1: [ThrottledResponse("u", retry_after=5), ThrottledResponse("u", retry_after=120), page_of(1)]})
    fetcher, clock, _ = _fetcher(source)

    asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert clock.sleeps[:2] == [5.0, 30.0]


def test_exhausts_after_max_attempts_throttles() -> None:
    source = FakeSource(pages={1: [ThrottledResponse("u") for _ in range(7)]})
    fetcher, _, _ = _fetcher(source)

    with pytest.raises(FetchExhausted) as excinfo:
        asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert excinfo.value.attempts == 6
    assert len(source.urls) == 6


def test_transport_failure_is_not_retried() -> None:
    source = FakeSource(pages={1: TransportFailure("u", status=503, body="busy")})
    fetcher, clock, _ = _fetcher(source)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert excinfo.value.status == 503
    assert "busy" in str(excinfo.value)
    assert len(source.urls) == 1
    assert clock.sleeps == []


def test_skips_nameless_products_and_normalizes_names() -> None:
    payload = products_payload(["  Mug   blue ", "Plate"])
    payload["data"]["products"].append({"id": 99})
    source = FakeSource(pages={1: payload})
    fetcher, _, _ = _fetcher(source)

    page = asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert page.items == ("Mug blue", "Plate")


def test_reads_top_level_products_payload() -> None:
    source = FakeSource(pages={1: {"products": [{"name": "Cup"}]}})
    fetcher, _, _ = _fetcher(source)

    page = asyncio.run(fetcher.fetch_page(1, CATEGORY, 7))

    assert page.items == ("Cup",)


def test_paces_with_longer_delay_every_nth_page() -> None:
    source = FakeSource(pages={9: page_of(1), 10: page_of(1)})
    fetcher, clock, _ = _fetcher(source)

    async def _fetch_two() -> None:
        await fetcher.fetch_page(9, CATEGORY, 7)
        await fetcher.fetch_page(10, CATEGORY, 7)

    asyncio.run(_fetch_two())

    assert clock.sleeps == [2.0, 10.0]
