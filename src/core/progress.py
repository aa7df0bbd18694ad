"""Throttled, size-bounded live progress for chat observers.

Each line is recorded in the observer's session log and forwarded to the
progress channel. Once the live message holds ``lines_per_message`` lines
the channel is reset, so the next line opens a fresh message. Delivery is
best-effort: channel errors are logged and never reach the pipeline.
"""

from __future__ import annotations

import logging
from typing import Awaitable

from core.config import ProgressConfig
from core.ports import Clock, ProgressChannelPort
from core.session import SessionRegistry

LOGGER = logging.getLogger(__name__)


class ProgressReporter:
    def __init__(
        self,
        channel: ProgressChannelPort,
        registry: SessionRegistry,
        clock: Clock,
        config: ProgressConfig,
    ) -> None:
        self._channel = channel
        self._registry = registry
        self._clock = clock
        self._config = config

    async def emit(self, observer_id: int, line: str) -> None:
        """Append one progress line for the observer."""

        LOGGER.info("[%s] %s", observer_id, line)
        session = self._registry.get(observer_id)
        if session is None:
            return

        await self._append(observer_id, line)
        session.progress_total += 1

        pause_every = self._config.pause_every
        if pause_every and session.progress_total % pause_every == 0:
            pause = self._config.pause_seconds
            await self._append(observer_id, f"⏸ Pause {pause:g}s...")
            await self._clock.sleep(pause)

    async def close(self, observer_id: int) -> None:
        await self._deliver(self._channel.reset(observer_id), observer_id)

    async def _append(self, observer_id: int, line: str) -> None:
        session = self._registry.get(observer_id)
        if session is None:
            return
        if len(session.progress_log) >= self._config.lines_per_message:
            session.progress_log.clear()
            await self._deliver(self._channel.reset(observer_id), observer_id)
        session.progress_log.append(line)
        await self._deliver(self._channel.append(observer_id, line), observer_id)

    async def _deliver(self, call: Awaitable[None], observer_id: int) -> None:
        try:
            await call
        except Exception as exc:
            LOGGER.warning("Failed to update progress for observer %s: %s", observer_id, exc)
