"""CSV report sink delivered as a Telegram document.

Implements the core ReportSinkPort: rows are written to a temporary CSV
file, uploaded to the observer chat and the file is removed afterwards.
"""

from __future__ import annotations

import csv
import logging
import os
import re
import tempfile
import time
from typing import Optional, Sequence

from adapters.outcome_formatting import format_report_caption
from core.config import ReportConfig
from core.errors import ReportCapacityExceeded

LOGGER = logging.getLogger(__name__)

COLUMNS = (
    ("name", "Name"),
    ("productCount", "Product count"),
    ("monthlyFrequency", "Monthly frequency"),
)


def report_filename(title: str, timestamp: Optional[int] = None) -> str:
    """Build ``<title>_analysis_<ms timestamp>.csv`` with a filesystem-safe title."""

    stamp = timestamp if timestamp is not None else int(time.time() * 1000)
    safe_title = re.sub(r"[^\w.-]+", "_", title.strip(), flags=re.UNICODE).strip("._") or "wb"
    return f"{safe_title}_analysis_{stamp}.csv"


def write_csv(path: str, rows: Sequence[dict]) -> None:
    # utf-8-sig so spreadsheet apps detect the Cyrillic encoding.
    with open(path, "w", encoding="utf-8-sig", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow([header for _, header in COLUMNS])
        for row in rows:
            writer.writerow([row.get(key, "") for key, _ in COLUMNS])


class TelegramReportSink:
    """ReportSinkPort that uploads CSV reports via a Telethon client."""

    def __init__(self, client, config: ReportConfig, output_dir: Optional[str] = None) -> None:
        self._client = client
        self._config = config
        self._output_dir = output_dir or tempfile.gettempdir()

    async def submit(self, observer_id: int, rows: Sequence[dict], title: str) -> str:
        if len(rows) > self._config.max_rows:
            raise ReportCapacityExceeded(
                f"{len(rows)} rows exceed the report limit of {self._config.max_rows}"
            )

        os.makedirs(self._output_dir, exist_ok=True)
        filename = report_filename(title)
        path = os.path.join(self._output_dir, filename)
        write_csv(path, rows)
        try:
            size = os.path.getsize(path)
            if size > self._config.max_bytes:
                raise ReportCapacityExceeded(
                    f"report is {size} bytes, above the upload limit of {self._config.max_bytes}"
                )
            await self._client.send_file(
                observer_id,
                path,
                caption=format_report_caption(title),
                parse_mode="md",
            )
            LOGGER.info("Report sent to observer %s: %s", observer_id, filename)
        finally:
            try:
                os.remove(path)
            except OSError as exc:
                LOGGER.error("Error deleting temporary file %s: %s", path, exc)
        return filename
