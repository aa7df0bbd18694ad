"""Observer-facing outcome messages.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from core.models import OutcomeStatus, PipelineOutcome


def escape_md(value: str) -> str:
    for ch in r"*[`_":
        value = value.replace(ch, f"\\{ch}")
    return value


def format_report_caption(label: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"📊 **Wildberries category analysis** {escape_md(label)} ({today.strftime('%d.%m.%Y')})"


def _summary(outcome: PipelineOutcome) -> str:
    if outcome.artifact:
        return f"Report with {outcome.rows} rows sent ({outcome.pages_fetched} pages)."
    if outcome.warning:
        return f"⚠️ {escape_md(outcome.warning)}"
    return "Nothing matched: no report was produced."


def format_outcome(outcome: PipelineOutcome) -> str:
    """Return the single message that closes a pipeline run."""

    status = outcome.status
    if status is OutcomeStatus.REJECTED:
        return "⏳ A parsing run is already in progress. Send /cancel to stop it."
    if status is OutcomeStatus.NOT_FOUND:
        return "❌ Category not found or URL is invalid. Please check the link and try again."

    if status is OutcomeStatus.CANCELLED:
        headline = "🛑 Parsing cancelled."
    elif status is OutcomeStatus.RATE_LIMITED:
        headline = "⚠️ Parsing stopped early: the marketplace kept rate limiting requests. Partial results below."
    elif status is OutcomeStatus.FAILED:
        headline = "❌ Parsing stopped because of an error."
        if outcome.error:
            headline += f"\n`{escape_md(outcome.error[:500])}`"
    else:
        headline = "✅ Parsing finished."

    lines = [headline, _summary(outcome), f"⏱ {outcome.elapsed_seconds:.2f} s"]
    return "\n".join(lines)
