from __future__ import annotations

import asyncio

from adapters.bot_handlers import BotHandlers
from fakes import CATEGORY_URL


class FakeEvent:
    def __init__(self, sender_id: int, text: str) -> None:
        self.sender_id = sender_id
        self.raw_text = text
        self.replies: list[str] = []

    async def respond(self, text: str, **kwargs) -> None:
        self.replies.append(text)


class FakeOrchestrator:
    def __init__(self) -> None:
        self.runs: list[tuple[int, str]] = []
        self.cancelled: list[int] = []

    async def run(self, observer_id: int, url: str) -> None:
        self.runs.append((observer_id, url))

    def cancel(self, observer_id: int) -> bool:
        self.cancelled.append(observer_id)
        return True


def _send(handlers: BotHandlers, sender_id: int, text: str) -> FakeEvent:
    event = FakeEvent(sender_id, text)
    asyncio.run(handlers.handle(event))
    return event


def test_unauthorized_user_is_refused() -> None:
    orchestrator = FakeOrchestrator()
    handlers = BotHandlers(orchestrator, admin_ids=[1])

    event = _send(handlers, 2, "/parse")

    assert "do not have access" in event.replies[0]
    assert orchestrator.runs == []


def test_parse_then_url_starts_pipeline() -> None:
    orchestrator = FakeOrchestrator()
    handlers = BotHandlers(orchestrator, admin_ids=[1])

    _send(handlers, 1, "/parse")
    _send(handlers, 1, CATEGORY_URL)

    assert orchestrator.runs == [(1, CATEGORY_URL)]


def test_invalid_url_keeps_waiting() -> None:
    orchestrator = FakeOrchestrator()
    handlers = BotHandlers(orchestrator, admin_ids=[1])

    _send(handlers, 1, "/parse")
    event = _send(handlers, 1, "https://example.com/x")
    _send(handlers, 1, CATEGORY_URL)

    assert "not a Wildberries" in event.replies[0]
    assert orchestrator.runs == [(1, CATEGORY_URL)]


def test_url_without_parse_is_ignored() -> None:
    orchestrator = FakeOrchestrator()
    handlers = BotHandlers(orchestrator, admin_ids=[1])

    _send(handlers, 1, CATEGORY_URL)

    assert orchestrator.runs == []


def test_cancel_requests_cooperative_stop() -> None:
    orchestrator = FakeOrchestrator()
    handlers = BotHandlers(orchestrator, admin_ids=[1])

    event = _send(handlers, 1, "/cancel")

    assert orchestrator.cancelled == [1]
    assert any("Cancelling" in reply for reply in event.replies)
