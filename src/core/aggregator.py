"""Name extraction and result accumulation."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from core.models import EnrichmentRecord, Session
from core.names import normalize_name

LOGGER = logging.getLogger(__name__)


def _products(payload: Any) -> list:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("products"), list):
        return data["products"]
    products = payload.get("products")
    return products if isinstance(products, list) else []


class ResultAggregator:
    """Append-only accumulation of enrichment records into a session."""

    def extract_names(self, payload: Any) -> List[str]:
        """Return normalized product names from a listing payload, in page order."""

        names: List[str] = []
        skipped = 0
        for product in _products(payload):
            raw = product.get("name") if isinstance(product, dict) else None
            if not isinstance(raw, str) or not normalize_name(raw):
                skipped += 1
                continue
            names.append(normalize_name(raw))
        if skipped:
            LOGGER.debug("Skipped %s products without a name", skipped)
        return names

    def merge(self, session: Session, records: Iterable[EnrichmentRecord]) -> int:
        # Repeats across pages are kept as separate rows.
        added = 0
        for record in records:
            session.results.append(record)
            added += 1
        return added

    def report_rows(self, session: Session) -> List[dict]:
        return [record.as_row() for record in session.results]
