"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Deque, List, Mapping, Optional, Tuple


class TargetKind(str, Enum):
    CATEGORY = "category"
    SEARCH = "search"


class EnrichmentField(str, Enum):
    """Which enrichment statistic a re-expanded row carries."""

    FREQUENCY = "frequency"
    COUNT = "count"


class PipelineState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    PAGING = "paging"
    ENRICHING = "enriching"
    CANCELLING = "cancelling"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class FetchTarget:
    """Resolved fetch parameters for one pipeline run."""

    kind: TargetKind
    shard_or_query: str
    filters: Mapping[str, str] = field(default_factory=dict)
    label: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))


@dataclass(frozen=True)
class CatalogEntry:
    """One node of the flattened catalog tree."""

    name: Optional[str]
    url: Optional[str]
    shard: Optional[str]
    query: Optional[str]
    parent: Optional[int]
    children: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Page:
    number: int
    items: Tuple[str, ...]


@dataclass(frozen=True)
class EnrichmentRecord:
    name: str
    product_count: int
    monthly_frequency: int

    def as_row(self) -> dict:
        return {
            "name": self.name,
            "productCount": self.product_count,
            "monthlyFrequency": self.monthly_frequency,
        }


@dataclass(frozen=True)
class FieldValue:
    """A single input name paired with the requested statistic."""

    name: str
    value: int
    found: bool


@dataclass
class RetryState:
    """Attempt bookkeeping for a single fetch or batch call."""

    max_attempts: int
    backoff: float
    attempt: int = 0

    def next_attempt(self) -> int:
        self.attempt += 1
        return self.attempt

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


@dataclass
class Session:
    """Per-observer pipeline state, owned by the orchestrator."""

    observer_id: int
    progress_capacity: int = 20
    active: bool = True
    cancelled: bool = False
    state: PipelineState = PipelineState.IDLE
    results: List[EnrichmentRecord] = field(default_factory=list)
    progress_log: Deque[str] = field(init=False)
    progress_total: int = 0
    enriched_total: int = 0
    pages_fetched: int = 0

    def __post_init__(self) -> None:
        self.progress_log = deque(maxlen=self.progress_capacity)


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal summary of one pipeline run, reported once to the observer."""

    observer_id: int
    status: OutcomeStatus
    label: str = ""
    rows: int = 0
    pages_fetched: int = 0
    artifact: Optional[str] = None
    warning: Optional[str] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0
