from __future__ import annotations

from core.session import SessionRegistry


def test_second_start_for_same_observer_is_rejected() -> None:
    registry = SessionRegistry()

    first = registry.try_start(10)
    second = registry.try_start(10)

    assert first is not None
    assert second is None
    assert registry.active_observers() == frozenset({10})


def test_sessions_are_independent_per_observer() -> None:
    registry = SessionRegistry()
    first = registry.try_start(1)
    second = registry.try_start(2)

    assert registry.cancel(1) is True
    assert first.cancelled is True
    assert second.cancelled is False


def test_finish_releases_observer() -> None:
    registry = SessionRegistry()
    session = registry.try_start(3)

    registry.finish(3)

    assert not registry.is_active(3)
    assert session.active is False
    assert registry.try_start(3) is not None


def test_cancel_without_session_reports_false() -> None:
    assert SessionRegistry().cancel(99) is False
