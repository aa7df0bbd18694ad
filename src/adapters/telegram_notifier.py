"""Telegram outcome notification adapter.

Formats a human-readable Markdown message and sends it to the observer chat.
"""

from __future__ import annotations

from adapters.outcome_formatting import format_outcome
from core.models import PipelineOutcome


class TelegramOutcomeNotifier:
    """Notifier adapter that sends the run outcome to the observer."""

    def __init__(self, client, reply_markup=None) -> None:
        self._client = client
        self._reply_markup = reply_markup

    async def send(self, outcome: PipelineOutcome) -> None:
        """Send the formatted outcome to the observer chat."""

        message = format_outcome(outcome)
        await self._client.send_message(
            outcome.observer_id,
            message,
            parse_mode="md",
            buttons=self._reply_markup,
        )
