"""Bounded-concurrency admission gate for outbound source requests.

Every page request goes through one shared scheduler, so the source never
sees more than ``max_concurrency`` requests in flight or two dispatches
closer together than ``min_interval_seconds``, whatever the number of
running sessions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from core.config import SchedulerConfig
from core.ports import Clock

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class RequestScheduler:
    def __init__(self, config: SchedulerConfig, clock: Clock) -> None:
        if config.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._config = config
        self._clock = clock
        self._slots = asyncio.Semaphore(config.max_concurrency)
        self._dispatch_lock = asyncio.Lock()
        self._last_dispatch: Optional[float] = None
        self.in_flight = 0
        self.peak_in_flight = 0
        self.dispatched = 0

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` once a slot is free and the spacing has elapsed."""

        async with self._slots:
            await self._wait_for_spacing()
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await operation()
            finally:
                self.in_flight -= 1

    async def _wait_for_spacing(self) -> None:
        async with self._dispatch_lock:
            if self._last_dispatch is not None:
                elapsed = self._clock.monotonic() - self._last_dispatch
                wait_seconds = self._config.min_interval_seconds - elapsed
                if wait_seconds > 0:
                    LOGGER.debug("Scheduler spacing: waiting %.2fs", wait_seconds)
                    await self._clock.sleep(wait_seconds)
            self._last_dispatch = self._clock.monotonic()
            self.dispatched += 1
