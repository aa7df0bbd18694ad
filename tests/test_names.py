from __future__ import annotations

import math

import pytest

from core.models import EnrichmentField, EnrichmentRecord
from core.names import chunked, expand_to_input_order, normalize_name, unique_names


def test_normalize_collapses_whitespace_and_trims() -> None:
    assert normalize_name("  Полотенце \t махровое\n\n 50x90  ") == "Полотенце махровое 50x90"


def test_normalize_is_idempotent() -> None:
    for raw in ["a  b", " x  y ", "", "   ", "single"]:
        once = normalize_name(raw)
        assert normalize_name(once) == once


def test_unique_names_keeps_first_occurrence_order() -> None:
    assert unique_names(["b", " a", "b ", "c", "a", "  "]) == ["b", "a", "c"]


@pytest.mark.parametrize("total,size", [(0, 100), (1, 100), (100, 100), (101, 100), (250, 100), (7, 3)])
def test_chunk_count_is_ceiling(total: int, size: int) -> None:
    items = list(range(total))
    chunks = list(chunked(items, size))
    assert len(chunks) == math.ceil(total / size)
    assert [item for chunk in chunks for item in chunk] == items


def test_chunked_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        list(chunked([1, 2], 0))


def test_expand_keeps_one_row_per_input_name() -> None:
    names = ["mug", "plate ", "mug", "unknown"]
    found = {
        "mug": EnrichmentRecord(name="mug", product_count=5, monthly_frequency=70),
        "plate": EnrichmentRecord(name="plate", product_count=3, monthly_frequency=20),
    }

    rows = expand_to_input_order(names, found, EnrichmentField.FREQUENCY)

    assert len(rows) == len(names)
    assert [row.name for row in rows] == ["mug", "plate", "mug", "unknown"]
    assert [row.value for row in rows] == [70, 20, 70, 0]
    assert [row.found for row in rows] == [True, True, True, False]

    counts = expand_to_input_order(names, found, EnrichmentField.COUNT)
    assert [row.value for row in counts] == [5, 3, 5, 0]
