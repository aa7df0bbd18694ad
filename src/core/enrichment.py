"""Batched enrichment of product names through the scoring service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.config import EnrichmentConfig
from core.errors import BatchExhausted, EnrichmentServiceError
from core.models import EnrichmentField, EnrichmentRecord, FieldValue
from core.names import chunked, expand_to_input_order, normalize_name, unique_names
from core.ports import Clock, EnrichmentServicePort
from core.progress import ProgressReporter
from core.retry import RetryPolicy

LOGGER = logging.getLogger(__name__)


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def parse_keyword_clusters(response: Any) -> Dict[str, EnrichmentRecord]:
    """Extract usable records from a scoring service response.

    Keywords with no cluster, or with a zero/missing product count or
    monthly frequency, produce no record.
    """

    if not isinstance(response, dict):
        return {}
    data = response.get("data")
    keywords = data.get("keywords") if isinstance(data, dict) else None
    if not isinstance(keywords, dict):
        return {}

    records: Dict[str, EnrichmentRecord] = {}
    for keyword, keyword_data in keywords.items():
        cluster = keyword_data.get("cluster") if isinstance(keyword_data, dict) else None
        if not isinstance(cluster, dict):
            continue
        freq_syn = cluster.get("freq_syn")
        product_count = _as_count(cluster.get("product_count"))
        monthly = _as_count(freq_syn.get("monthly")) if isinstance(freq_syn, dict) else 0
        if not product_count or not monthly:
            continue
        name = normalize_name(str(keyword))
        records[name] = EnrichmentRecord(name=name, product_count=product_count, monthly_frequency=monthly)
    return records


@dataclass
class EnrichmentResult:
    records: List[EnrichmentRecord] = field(default_factory=list)
    rows: List[FieldValue] = field(default_factory=list)
    processed: int = 0
    batches: int = 0
    failed_batches: int = 0
    last_error: Optional[str] = None
    stopped: bool = False

    @property
    def all_failed(self) -> bool:
        """True when batches were attempted and none of them succeeded."""

        return self.batches > 0 and self.failed_batches == self.batches


class EnrichmentClient:
    """Queries the scoring service in fixed-size batches."""

    def __init__(
        self,
        service: EnrichmentServicePort,
        reporter: ProgressReporter,
        clock: Clock,
        config: EnrichmentConfig,
    ) -> None:
        self._service = service
        self._reporter = reporter
        self._clock = clock
        self._config = config
        self._policy = RetryPolicy(max_attempts=config.max_attempts, base_delay=config.retry_wait_seconds)

    async def enrich(
        self,
        names: Sequence[str],
        field: EnrichmentField,
        observer_id: int,
        processed_offset: int = 0,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> EnrichmentResult:
        """Enrich ``names`` and re-expand the results against the input order.

        ``processed_offset`` is the number of names already enriched earlier
        in the same job; cooldown thresholds apply to the running total.
        """

        result = EnrichmentResult()
        unique = unique_names(names)
        found: Dict[str, EnrichmentRecord] = {}
        batches = list(chunked(unique, self._config.batch_size))

        for index, batch in enumerate(batches, start=1):
            if should_stop is not None and should_stop():
                LOGGER.info("Enrichment stopped before batch %s/%s", index, len(batches))
                result.stopped = True
                break
            result.batches += 1
            try:
                found.update(await self._query_batch(index, len(batches), batch, observer_id))
            except BatchExhausted as exc:
                LOGGER.error("%s", exc)
                result.failed_batches += 1
                result.last_error = str(exc.last_error or exc)
                await self._reporter.emit(observer_id, f"❌ Batch {index}/{len(batches)} skipped after {exc.attempts} attempts")
            before = processed_offset + result.processed
            result.processed += len(batch)
            await self._cooldown(before, processed_offset + result.processed, observer_id)

        result.records = [found[name] for name in unique if name in found]
        result.rows = expand_to_input_order(names, found, field)
        LOGGER.info(
            "Enriched %s/%s names (%s batches failed)",
            len(result.records),
            len(unique),
            result.failed_batches,
        )
        return result

    async def _query_batch(
        self,
        index: int,
        total: int,
        batch: Sequence[str],
        observer_id: int,
    ) -> Dict[str, EnrichmentRecord]:
        state = self._policy.start()
        last_error: Optional[Exception] = None
        while not state.exhausted:
            attempt = state.next_attempt()
            try:
                response = await self._service.query(list(batch))
            except EnrichmentServiceError as exc:
                last_error = exc
                LOGGER.warning("Batch %s/%s attempt %s failed: %s", index, total, attempt, exc)
                if state.exhausted:
                    break
                wait_seconds = self._policy.backoff(attempt)
                await self._reporter.emit(
                    observer_id,
                    f"⚠️ Batch {index}/{total}: attempt {attempt}/{state.max_attempts} failed, retrying in {wait_seconds:g}s",
                )
                await self._clock.sleep(wait_seconds)
                continue
            return parse_keyword_clusters(response)
        raise BatchExhausted(index, state.attempt, last_error)

    async def _cooldown(self, before: int, after: int, observer_id: int) -> None:
        config = self._config
        pause = 0.0
        if config.long_cooldown_every and before // config.long_cooldown_every != after // config.long_cooldown_every:
            pause = config.long_cooldown_seconds
        elif config.cooldown_every and before // config.cooldown_every != after // config.cooldown_every:
            pause = config.cooldown_seconds
        if pause:
            await self._reporter.emit(observer_id, f"😴 {after} names processed, cooling down {pause:g}s")
            await self._clock.sleep(pause)
