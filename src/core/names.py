"""Product name normalization and batch helpers (core domain)."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Mapping, Sequence, TypeVar

from core.models import EnrichmentField, EnrichmentRecord, FieldValue

T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


def normalize_name(text: str) -> str:
    """Trim and collapse every whitespace run to a single space.

    Matching between page items and enrichment results is done on this form.
    """

    return _WHITESPACE.sub(" ", text).strip()


def unique_names(names: Iterable[str]) -> List[str]:
    """Normalize names and drop repeats, keeping first occurrence order."""

    seen: set[str] = set()
    unique: List[str] = []
    for raw in names:
        name = normalize_name(raw)
        if not name or name in seen:
            continue
        seen.add(name)
        unique.append(name)
    return unique


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items."""

    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def field_value(record: EnrichmentRecord, field: EnrichmentField) -> int:
    if field is EnrichmentField.COUNT:
        return record.product_count
    return record.monthly_frequency


def expand_to_input_order(
    names: Sequence[str],
    found: Mapping[str, EnrichmentRecord],
    field: EnrichmentField,
) -> List[FieldValue]:
    """Map every input name to its record or to a zero placeholder.

    The output always has exactly ``len(names)`` rows, in input order.
    """

    rows: List[FieldValue] = []
    for raw in names:
        name = normalize_name(raw)
        record = found.get(name)
        if record is None:
            rows.append(FieldValue(name=name, value=0, found=False))
        else:
            rows.append(FieldValue(name=name, value=field_value(record, field), found=True))
    return rows
