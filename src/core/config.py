"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class FetchConfig:
    """Catalog/search page fetch policy."""

    catalog_base_url: str = "https://catalog.wb.ru/catalog"
    search_url: str = "https://search.wb.ru/exactmatch/ru/common/v4/search"
    fixed_params: Mapping[str, str] = field(
        default_factory=lambda: {
            "appType": "1",
            "curr": "rub",
            "dest": "-1257786",
            "locale": "ru",
            "spp": "30",
        }
    )
    default_sort: str = "popular"
    max_attempts: int = 6
    throttle_backoff_seconds: float = 30.0
    page_delay_seconds: float = 2.0
    long_delay_seconds: float = 10.0
    long_delay_every: int = 10


@dataclass(frozen=True)
class SchedulerConfig:
    """Global envelope for outbound source requests."""

    max_concurrency: int = 2
    min_interval_seconds: float = 2.0


@dataclass(frozen=True)
class EnrichmentConfig:
    """Batching and load-shedding settings for the scoring service."""

    batch_size: int = 100
    max_attempts: int = 3
    retry_wait_seconds: float = 30.0
    cooldown_every: int = 20_000
    cooldown_seconds: float = 30.0
    long_cooldown_every: int = 100_000
    long_cooldown_seconds: float = 60.0


@dataclass(frozen=True)
class ProgressConfig:
    """Live progress message limits."""

    lines_per_message: int = 20
    pause_every: int = 10
    pause_seconds: float = 3.0


@dataclass(frozen=True)
class PipelineConfig:
    """Orchestrator limits."""

    max_category_pages: int = 10
    max_search_pages: int = 50
    enrichment_field: str = "frequency"


@dataclass(frozen=True)
class ReportConfig:
    """Capacity limits applied by report sinks."""

    max_rows: int = 1_048_575
    max_bytes: int = 50 * 1024 * 1024
