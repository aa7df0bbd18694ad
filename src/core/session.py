"""Per-process registry of active pipeline sessions."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional

from core.models import Session

LOGGER = logging.getLogger(__name__)


class SessionRegistry:
    """Holds at most one active session per observer id.

    ``try_start`` is a check-and-insert with no suspension point, so two
    starts racing on the same event loop cannot both succeed.
    """

    def __init__(self, progress_capacity: int = 20) -> None:
        self._progress_capacity = progress_capacity
        self._sessions: Dict[int, Session] = {}

    def try_start(self, observer_id: int) -> Optional[Session]:
        if observer_id in self._sessions:
            LOGGER.info("Observer %s already has an active session", observer_id)
            return None
        session = Session(observer_id=observer_id, progress_capacity=self._progress_capacity)
        self._sessions[observer_id] = session
        return session

    def get(self, observer_id: int) -> Optional[Session]:
        return self._sessions.get(observer_id)

    def is_active(self, observer_id: int) -> bool:
        return observer_id in self._sessions

    def cancel(self, observer_id: int) -> bool:
        """Flag the observer's session as cancelled; False when none is running."""

        session = self._sessions.get(observer_id)
        if session is None:
            return False
        session.cancelled = True
        LOGGER.info("Cancellation requested by observer %s", observer_id)
        return True

    def finish(self, observer_id: int) -> None:
        session = self._sessions.pop(observer_id, None)
        if session is not None:
            session.active = False

    def active_observers(self) -> FrozenSet[int]:
        return frozenset(self._sessions)
