"""Chat command routing for the Telegram bot.

This adapter only translates chat events into orchestrator calls; all
pipeline behavior lives in the core.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Set

from telethon import Button

from core.pipeline import PipelineOrchestrator

LOGGER = logging.getLogger(__name__)

PARSE_LABEL = "Parse"
CANCEL_LABEL = "Cancel"
ADMINS_LABEL = "Admins"

URL_PATTERN = re.compile(r"^https://(www\.)?wildberries\.ru/catalog/\S+$", re.IGNORECASE)

WELCOME_TEXT = (
    "🛍️ **Wildberries Parser Frequency Bot**\n\n"
    "This bot analyses Wildberries categories and search results and reports "
    "search frequency statistics for the listed products.\n\n"
    "Commands:\n"
    "/parse - request a category analysis\n"
    "/cancel - stop the running analysis\n"
    "/list - list bot admins"
)

URL_PROMPT = (
    "🔗 Send a Wildberries category or search URL, for example:\n"
    "https://www.wildberries.ru/catalog/dom-i-dacha/vannaya/aksessuary"
)


def main_menu(include_admins: bool = True):
    rows = [[Button.text(PARSE_LABEL, resize=True, single_use=True)]]
    if include_admins:
        rows.append([Button.text(ADMINS_LABEL, resize=True, single_use=True)])
    return rows


def url_input_menu():
    return [[Button.text(CANCEL_LABEL, resize=True, single_use=True)]]


class BotHandlers:
    """Routes incoming private messages from allow-listed admins."""

    def __init__(self, orchestrator: PipelineOrchestrator, admin_ids: Iterable[int]) -> None:
        self._orchestrator = orchestrator
        self._admin_ids = list(admin_ids)
        self._waiting_for_url: Set[int] = set()

    async def handle(self, event) -> None:
        user_id: Optional[int] = event.sender_id
        text = (event.raw_text or "").strip()
        if user_id is None or not text:
            return

        if user_id not in self._admin_ids:
            LOGGER.warning("Unauthorized access attempt from user %s", user_id)
            await event.respond("❌ You do not have access to this bot.")
            return

        if text == "/start":
            await event.respond(WELCOME_TEXT, parse_mode="md", buttons=main_menu())
        elif text in ("/list", ADMINS_LABEL):
            admins = "\n".join(f"- {admin_id}" for admin_id in self._admin_ids)
            await event.respond(f"📋 Admins:\n{admins}", buttons=main_menu())
        elif text in ("/parse", PARSE_LABEL):
            self._waiting_for_url.add(user_id)
            await event.respond(URL_PROMPT, buttons=url_input_menu())
        elif text in ("/cancel", CANCEL_LABEL):
            await self._cancel(event, user_id)
        elif user_id in self._waiting_for_url:
            await self._start(event, user_id, text)

    async def _cancel(self, event, user_id: int) -> None:
        if user_id in self._waiting_for_url:
            self._waiting_for_url.discard(user_id)
            await event.respond("❌ URL input cancelled.", buttons=main_menu())
        if self._orchestrator.cancel(user_id):
            await event.respond("🛑 Cancelling the running analysis...", buttons=main_menu())

    async def _start(self, event, user_id: int, url: str) -> None:
        if not URL_PATTERN.match(url):
            await event.respond(
                "❌ The URL is not a Wildberries catalog or search link.\n" + URL_PROMPT,
                buttons=url_input_menu(),
            )
            return

        self._waiting_for_url.discard(user_id)
        await event.respond("🔄 Starting the analysis...", buttons=Button.clear())
        # Outcome reporting (success, cancel, errors) is done by the orchestrator.
        await self._orchestrator.run(user_id, url)
