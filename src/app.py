"""Application entry point for the freqscope bot."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Optional

import aiohttp
from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.bot_handlers import BotHandlers, main_menu
from adapters.evirma_service import EvirmaService
from adapters.telegram_notifier import TelegramOutcomeNotifier
from adapters.telegram_progress import TelegramProgressChannel
from adapters.telegram_report_sink import TelegramReportSink
from adapters.wildberries_source import WildberriesSource
from client import admin_ids, bot_token, build_client
from core.aggregator import ResultAggregator
from core.clock import SystemClock
from core.enrichment import EnrichmentClient
from core.fetcher import RateLimitedFetcher
from core.pipeline import PipelineOrchestrator
from core.progress import ProgressReporter
from core.resolver import TargetResolver
from core.scheduler import RequestScheduler
from core.session import SessionRegistry

NAME = "FREQSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _MaskingFormatter(logging.Formatter):
    """Replaces credential values with *** in every formatted record."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        # Longest first so a token containing another secret is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return text


def _log_handlers(config: dict) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    path = config.get("file")
    if path:
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(config.get("file_max_bytes", 5 * 1024 * 1024)),
                backupCount=int(config.get("file_backups", 5)),
                encoding="utf-8",
            )
        )
    return handlers


def _configure_logging(config: dict) -> None:
    load_dotenv()
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _MaskingFormatter(os.getenv(name, "") for name in config.get("mask_env", []))
    handlers = _log_handlers(config)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def build_orchestrator(client, http: aiohttp.ClientSession) -> PipelineOrchestrator:
    """Wire the core pipeline with the Telegram and HTTP adapters."""

    clock = SystemClock()
    registry = SessionRegistry(progress_capacity=settings.PROGRESS.lines_per_message)
    source = WildberriesSource(
        http,
        catalog_url=settings.CATALOG_URL,
        timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
    )
    service = EvirmaService(http, url=settings.EVIRMA_URL, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
    reporter = ProgressReporter(TelegramProgressChannel(client), registry, clock, settings.PROGRESS)
    aggregator = ResultAggregator()
    scheduler = RequestScheduler(settings.SCHEDULER, clock)

    return PipelineOrchestrator(
        registry=registry,
        resolver=TargetResolver(source),
        fetcher=RateLimitedFetcher(source, scheduler, reporter, aggregator, clock, settings.FETCH),
        enrichment=EnrichmentClient(service, reporter, clock, settings.ENRICHMENT),
        aggregator=aggregator,
        reporter=reporter,
        sink=TelegramReportSink(client, settings.REPORT, output_dir=settings.REPORT_DIR),
        notifier=TelegramOutcomeNotifier(client, reply_markup=main_menu()),
        clock=clock,
        config=settings.PIPELINE,
    )


async def _serve(client) -> None:
    logger = logging.getLogger(__name__)
    admins = admin_ids()
    if not admins:
        raise RuntimeError("ADMIN_ID must list at least one Telegram user id")

    await client.start(bot_token=bot_token())
    async with aiohttp.ClientSession() as http:
        handlers = BotHandlers(build_orchestrator(client, http), admins)

        @client.on(events.NewMessage(incoming=True, func=lambda e: e.is_private))
        async def handler(event) -> None:
            try:
                await handlers.handle(event)
            except Exception:
                logger.exception("Error while processing message")

        for admin_id in admins:
            try:
                await client.send_message(admin_id, "🤖 **Bot is up.** Send /start to begin.", parse_mode="md")
            except Exception as exc:
                logger.error("Failed to notify admin %s: %s", admin_id, exc)

        logger.info("Bot connected. Listening for incoming messages...")
        await client.run_until_disconnected()


def _run() -> None:
    _print_banner()
    _configure_logging(settings.LOGGING)
    logger = logging.getLogger(__name__)
    logger.info("Starting freqscope")

    client = build_client()
    # Telethon binds the client to its own loop; reuse it for aiohttp too.
    client.loop.run_until_complete(_serve(client))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="freqscope")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Start the bot")
    parser.parse_args(argv)
    _run()


if __name__ == "__main__":
    main()
