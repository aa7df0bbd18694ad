"""Telegram progress adapter.

Keeps one live message per observer: the first line is sent as a new
message, later lines edit it in place. ``reset`` forgets the message so
the next line starts a fresh one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

HEADER = "📄 **Parsing log:**"


@dataclass
class _LiveMessage:
    message_id: int
    lines: List[str] = field(default_factory=list)


def render_progress(lines: List[str]) -> str:
    return "\n".join([HEADER, *lines])


class TelegramProgressChannel:
    """ProgressChannelPort backed by a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client
        self._messages: Dict[int, _LiveMessage] = {}

    async def append(self, observer_id: int, line: str) -> None:
        live = self._messages.get(observer_id)
        if live is None:
            message = await self._client.send_message(observer_id, render_progress([line]), parse_mode="md")
            self._messages[observer_id] = _LiveMessage(message_id=message.id, lines=[line])
            return

        lines = [*live.lines, line]
        await self._client.edit_message(observer_id, live.message_id, render_progress(lines), parse_mode="md")
        # Only commit the line once Telegram accepted the edit.
        live.lines = lines

    async def reset(self, observer_id: int) -> None:
        self._messages.pop(observer_id, None)
