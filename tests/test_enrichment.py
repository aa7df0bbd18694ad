from __future__ import annotations

import asyncio

from core.config import EnrichmentConfig, ProgressConfig
from core.enrichment import EnrichmentClient, parse_keyword_clusters
from core.errors import EnrichmentServiceError
from core.models import EnrichmentField
from core.progress import ProgressReporter
from core.session import SessionRegistry
from fakes import FakeChannel, FakeClock, FakeService, keyword_response


def _client(service: FakeService, config: EnrichmentConfig = EnrichmentConfig()):
    clock = FakeClock()
    registry = SessionRegistry()
    registry.try_start(1)
    channel = FakeChannel()
    reporter = ProgressReporter(channel, registry, clock, ProgressConfig(pause_every=0))
    return EnrichmentClient(service, reporter, clock, config), clock, channel


def test_parse_drops_missing_clusters_and_zero_stats() -> None:
    response = {
        "data": {
            "keywords": {
                "mug": {"cluster": {"product_count": 12, "freq_syn": {"monthly": 340}}},
                "ghost": {"cluster": None},
                "no stock": {"cluster": {"product_count": 0, "freq_syn": {"monthly": 50}}},
                "no demand": {"cluster": {"product_count": 4, "freq_syn": {"monthly": 0}}},
                "no freq": {"cluster": {"product_count": 4}},
            }
        }
    }

    records = parse_keyword_clusters(response)

    assert list(records) == ["mug"]
    assert records["mug"].product_count == 12
    assert records["mug"].monthly_frequency == 340


def test_parse_tolerates_malformed_payloads() -> None:
    assert parse_keyword_clusters(None) == {}
    assert parse_keyword_clusters({"data": None}) == {}
    assert parse_keyword_clusters({"data": {"keywords": []}}) == {}


def test_batches_and_expands_against_original_input() -> None:
    names = [f"item {index}" for index in range(250)] + ["item 0", "unknown thing"]

    def responder(keywords: list[str]) -> dict:
        return keyword_response([keyword for keyword in keywords if keyword != "unknown thing"])

    service = FakeService(responder=responder)
    client, _, _ = _client(service)

    result = asyncio.run(client.enrich(names, EnrichmentField.FREQUENCY, observer_id=1))

    assert [len(call) for call in service.calls] == [100, 100, 51]
    assert len(result.rows) == len(names)
    assert result.rows[-1].found is False
    assert result.rows[-1].value == 0
    assert result.rows[-2].value == 100
    assert len(result.records) == 250
    assert result.processed == 251


def test_retries_failed_batch_then_succeeds() -> None:
    service = FakeService(failures=[EnrichmentServiceError("timeout"), EnrichmentServiceError("429")])
    client, clock, channel = _client(service)

    result = asyncio.run(client.enrich(["mug"], EnrichmentField.COUNT, observer_id=1))

    assert len(service.calls) == 3
    assert clock.sleeps == [30.0, 30.0]
    assert [record.name for record in result.records] == ["mug"]
    assert result.failed_batches == 0
    assert sum("attempt" in line for _, line in channel.appended) == 2


def test_exhausted_batch_is_skipped_and_next_batch_runs() -> None:
    failures = [EnrichmentServiceError("down") for _ in range(3)]
    service = FakeService(failures=failures)
    client, _, _ = _client(service, EnrichmentConfig(batch_size=2))

    result = asyncio.run(client.enrich(["a", "b", "c"], EnrichmentField.FREQUENCY, observer_id=1))

    assert len(service.calls) == 4
    assert result.failed_batches == 1
    assert result.batches == 2
    assert result.all_failed is False
    assert result.last_error == "down"
    assert [record.name for record in result.records] == ["c"]
    assert [row.found for row in result.rows] == [False, False, True]


def test_cooldown_when_crossing_volume_thresholds() -> None:
    client, clock, _ = _client(FakeService())

    asyncio.run(client.enrich(["a", "b"], EnrichmentField.FREQUENCY, observer_id=1, processed_offset=19_999))
    assert clock.sleeps == [30.0]

    clock.sleeps.clear()
    asyncio.run(client.enrich(["a", "b"], EnrichmentField.FREQUENCY, observer_id=1, processed_offset=99_999))
    assert clock.sleeps == [60.0]

    clock.sleeps.clear()
    asyncio.run(client.enrich(["a", "b"], EnrichmentField.FREQUENCY, observer_id=1, processed_offset=500))
    assert clock.sleeps == []


def test_stop_check_skips_remaining_batches() -> None:
    service = FakeService()
    client, _, _ = _client(service, EnrichmentConfig(batch_size=1))
    checks = iter([False, True])

    result = asyncio.run(
        client.enrich(["a", "b", "c"], EnrichmentField.FREQUENCY, observer_id=1, should_stop=lambda: next(checks))
    )

    assert len(service.calls) == 1
    assert result.stopped is True
    assert len(result.rows) == 3
    assert [record.name for record in result.records] == ["a"]


def test_all_batches_failing_is_reported() -> None:
    failures = [EnrichmentServiceError(f"down {attempt}") for attempt in range(3)]
    client, _, _ = _client(FakeService(failures=failures))

    result = asyncio.run(client.enrich(["a", "b"], EnrichmentField.COUNT, observer_id=1))

    assert result.all_failed is True
    assert result.last_error == "down 2"
    assert result.records == []
    assert [row.value for row in result.rows] == [0, 0]


def test_no_names_is_not_a_failure() -> None:
    result = asyncio.run(_client(FakeService())[0].enrich([], EnrichmentField.FREQUENCY, observer_id=1))

    assert result.batches == 0
    assert result.all_failed is False
