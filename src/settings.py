"""Static configuration for freqscope.

All user-editable settings (fetch policy, enrichment batching, progress
limits, logging) live in a single JSON file for quick edits without touching
Python. Secrets stay in the environment (.env).
"""

import json
import os

from core.config import (
    EnrichmentConfig,
    FetchConfig,
    PipelineConfig,
    ProgressConfig,
    ReportConfig,
    SchedulerConfig,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("FREQSCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Outbound request timeout shared by both HTTP adapters.
_http = _CONFIG.get("http", {})
REQUEST_TIMEOUT_SECONDS = float(_http.get("timeout_seconds", 30))
CATALOG_URL = _http.get("catalog_url", "https://static-basket-01.wbbasket.ru/vol0/data/main-menu-ru-ru-v3.json")
EVIRMA_URL = _http.get("evirma_url", "https://evirma.ru/api/v1/keyword/list")

_fetch = _CONFIG.get("fetch", {})
FETCH = FetchConfig(
    max_attempts=int(_fetch.get("max_attempts", 6)),
    throttle_backoff_seconds=float(_fetch.get("throttle_backoff_seconds", 30)),
    page_delay_seconds=float(_fetch.get("page_delay_seconds", 2)),
    long_delay_seconds=float(_fetch.get("long_delay_seconds", 10)),
    long_delay_every=int(_fetch.get("long_delay_every", 10)),
)

_scheduler = _CONFIG.get("scheduler", {})
SCHEDULER = SchedulerConfig(
    max_concurrency=int(_scheduler.get("max_concurrency", 2)),
    min_interval_seconds=float(_scheduler.get("min_interval_ms", 2000)) / 1000.0,
)

_enrichment = _CONFIG.get("enrichment", {})
ENRICHMENT = EnrichmentConfig(
    batch_size=int(_enrichment.get("batch_size", 100)),
    max_attempts=int(_enrichment.get("max_attempts", 3)),
    retry_wait_seconds=float(_enrichment.get("retry_wait_seconds", 30)),
    cooldown_every=int(_enrichment.get("cooldown_every", 20_000)),
    cooldown_seconds=float(_enrichment.get("cooldown_seconds", 30)),
    long_cooldown_every=int(_enrichment.get("long_cooldown_every", 100_000)),
    long_cooldown_seconds=float(_enrichment.get("long_cooldown_seconds", 60)),
)

_progress = _CONFIG.get("progress", {})
PROGRESS = ProgressConfig(
    lines_per_message=int(_progress.get("lines_per_message", 20)),
    pause_every=int(_progress.get("pause_every", 10)),
    pause_seconds=float(_progress.get("pause_seconds", 3)),
)

_pipeline = _CONFIG.get("pipeline", {})
PIPELINE = PipelineConfig(
    max_category_pages=int(_pipeline.get("max_category_pages", 10)),
    max_search_pages=int(_pipeline.get("max_search_pages", 50)),
    enrichment_field=_pipeline.get("enrichment_field", "frequency"),
)

_report = _CONFIG.get("report", {})
REPORT = ReportConfig(
    max_rows=int(_report.get("max_rows", 1_048_575)),
    max_bytes=int(_report.get("max_bytes", 50 * 1024 * 1024)),
)
# Temporary directory for generated reports; system temp dir when empty.
REPORT_DIR = _report.get("output_dir") or None

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
