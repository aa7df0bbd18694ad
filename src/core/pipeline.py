"""Pipeline orchestration for one observer's catalog analysis.

The orchestrator walks a strict state machine:
1) Resolving: URL -> FetchTarget (TargetNotFound ends the run)
2) Paging: fetch the next page through the scheduler; an empty page ends
   pagination normally
3) Enriching: score the page's names; a page with no usable records ends
   pagination normally, a page whose batches all failed ends it with an error
4) Finalizing: hand accumulated rows to the report sink, whatever the exit
   path (completed, cancelled, rate limited or failed)
5) Done: the session is torn down and the observer released

Cancellation is cooperative and observed only at page and batch boundaries.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from core.aggregator import ResultAggregator
from core.config import PipelineConfig
from core.enrichment import EnrichmentClient
from core.errors import EnrichmentFailed, FetchExhausted, ReportCapacityExceeded, TargetNotFound
from core.fetcher import RateLimitedFetcher
from core.models import (
    EnrichmentField,
    FetchTarget,
    OutcomeStatus,
    PipelineOutcome,
    PipelineState,
    Session,
    TargetKind,
)
from core.ports import Clock, OutcomeNotifierPort, ReportSinkPort
from core.progress import ProgressReporter
from core.resolver import TargetResolver
from core.session import SessionRegistry

LOGGER = logging.getLogger(__name__)

FIELD_LABELS = {
    EnrichmentField.FREQUENCY: "monthly frequency",
    EnrichmentField.COUNT: "product count",
}


class PipelineOrchestrator:
    """Drives resolution, pagination, enrichment and salvage for each run."""

    def __init__(
        self,
        registry: SessionRegistry,
        resolver: TargetResolver,
        fetcher: RateLimitedFetcher,
        enrichment: EnrichmentClient,
        aggregator: ResultAggregator,
        reporter: ProgressReporter,
        sink: ReportSinkPort,
        notifier: OutcomeNotifierPort,
        clock: Clock,
        config: PipelineConfig,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._fetcher = fetcher
        self._enrichment = enrichment
        self._aggregator = aggregator
        self._reporter = reporter
        self._sink = sink
        self._notifier = notifier
        self._clock = clock
        self._config = config
        self._field = EnrichmentField(config.enrichment_field)

    def cancel(self, observer_id: int) -> bool:
        return self._registry.cancel(observer_id)

    async def run(self, observer_id: int, url: str) -> PipelineOutcome:
        """Run the full pipeline for one observer and report its outcome."""

        session = self._registry.try_start(observer_id)
        if session is None:
            outcome = PipelineOutcome(observer_id=observer_id, status=OutcomeStatus.REJECTED)
            await self._notify(outcome)
            return outcome

        started = self._clock.monotonic()
        target: Optional[FetchTarget] = None
        error: Optional[str] = None
        try:
            try:
                session.state = PipelineState.RESOLVING
                target = await self._resolver.resolve(url)
                status = await self._paginate(session, target)
            except TargetNotFound as exc:
                LOGGER.warning("%s", exc)
                session.state = PipelineState.FAILED
                status = OutcomeStatus.NOT_FOUND
            except EnrichmentFailed as exc:
                LOGGER.error("%s", exc)
                session.state = PipelineState.FAILED
                status = OutcomeStatus.FAILED
                error = str(exc)
            except Exception as exc:
                LOGGER.exception("Pipeline failed for observer %s", observer_id)
                session.state = PipelineState.FAILED
                status = OutcomeStatus.FAILED
                error = str(exc)

            outcome = await self._finalize(session, target, status, error, started)
            await self._notify(outcome)
            return outcome
        finally:
            await self._reporter.close(observer_id)
            self._registry.finish(observer_id)
            session.state = PipelineState.DONE
            LOGGER.info(
                "Total parsing time for observer %s: %.2f seconds",
                observer_id,
                self._clock.monotonic() - started,
            )

    async def _paginate(self, session: Session, target: FetchTarget) -> OutcomeStatus:
        observer_id = session.observer_id
        if target.kind is TargetKind.SEARCH:
            max_pages = self._config.max_search_pages
        else:
            max_pages = self._config.max_category_pages

        for page_number in range(1, max_pages + 1):
            if session.cancelled:
                return self._cancelling(session, page_number)

            session.state = PipelineState.PAGING
            try:
                page = await self._fetcher.fetch_page(page_number, target, observer_id)
            except FetchExhausted as exc:
                LOGGER.warning("%s; stopping pagination", exc)
                return OutcomeStatus.RATE_LIMITED

            if not page.items:
                LOGGER.info("Page %s: no products found, stopping", page_number)
                return OutcomeStatus.COMPLETED
            session.pages_fetched += 1

            session.state = PipelineState.ENRICHING
            result = await self._enrichment.enrich(
                page.items,
                self._field,
                observer_id,
                processed_offset=session.enriched_total,
                should_stop=lambda: session.cancelled,
            )
            session.enriched_total += result.processed
            added = self._aggregator.merge(session, result.records)
            field_total = sum(row.value for row in result.rows)
            await self._reporter.emit(
                observer_id,
                f"Page {page_number}: {added} keywords with demand, {FIELD_LABELS[self._field]} {field_total}",
            )

            if session.cancelled:
                return self._cancelling(session, page_number + 1)
            if result.all_failed:
                raise EnrichmentFailed(page_number, result.batches, result.last_error)
            if not result.records:
                LOGGER.info("Page %s: no usable enrichment records, stopping", page_number)
                return OutcomeStatus.COMPLETED

        return OutcomeStatus.COMPLETED

    def _cancelling(self, session: Session, next_page: int) -> OutcomeStatus:
        LOGGER.info("Parsing cancelled by observer %s before page %s", session.observer_id, next_page)
        session.state = PipelineState.CANCELLING
        return OutcomeStatus.CANCELLED

    async def _finalize(
        self,
        session: Session,
        target: Optional[FetchTarget],
        status: OutcomeStatus,
        error: Optional[str],
        started: float,
    ) -> PipelineOutcome:
        session.state = PipelineState.FINALIZING
        label = target.label if target is not None else ""
        rows = self._aggregator.report_rows(session)
        artifact, warning = await self._submit(session.observer_id, rows, label)
        return PipelineOutcome(
            observer_id=session.observer_id,
            status=status,
            label=label,
            rows=len(rows),
            pages_fetched=session.pages_fetched,
            artifact=artifact,
            warning=warning,
            error=error,
            elapsed_seconds=self._clock.monotonic() - started,
        )

    async def _submit(self, observer_id: int, rows: list, label: str) -> Tuple[Optional[str], Optional[str]]:
        if not rows:
            LOGGER.info("No products found matching criteria for observer %s", observer_id)
            return None, None
        try:
            artifact = await self._sink.submit(observer_id, rows, label or "wb")
        except ReportCapacityExceeded as exc:
            LOGGER.warning("Report not produced for observer %s: %s", observer_id, exc)
            return None, str(exc)
        except Exception as exc:
            LOGGER.exception("Report sink failed for observer %s", observer_id)
            return None, f"Report could not be delivered: {exc}"
        LOGGER.info("Report %s produced with %s rows", artifact, len(rows))
        return artifact, None

    async def _notify(self, outcome: PipelineOutcome) -> None:
        try:
            await self._notifier.send(outcome)
        except Exception:
            LOGGER.exception("Failed to notify observer %s", outcome.observer_id)
