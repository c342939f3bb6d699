"""Application entry point for the coffeechat bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional

import discord
from art import tprint
from dotenv import load_dotenv

import settings
from adapters.discord_commands import CoffeeChatCog
from adapters.discord_gateway import DiscordGateway
from adapters.discord_log import DiscordChannelLogHandler
from adapters.openai_summarizer import OpenAISummarizer
from adapters.sqlite_storage import SQLiteStorage
from client import build_client, read_token
from core.history import HistoryRecorder
from core.matchmaker import Matchmaker
from core.negotiator import MatchNegotiator
from core.profiles import ProfileService
from core.rooms import RoomProvisioner
from core.similarity import SimilarityEngine

NAME = "COFFEECHAT"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


# Env vars whose values are masked in every log line unless
# logging.redact.patterns names others.
DEFAULT_REDACT_ENV = ("DISCORD_TOKEN", "OPENAI_API_KEY")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _RedactingFormatter(logging.Formatter):
    """Mask secret values anywhere in the rendered record, tracebacks included."""

    def __init__(
        self,
        secrets: Iterable[str],
        fmt: str = LOG_FORMAT,
        datefmt: Optional[str] = LOG_DATEFMT,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret that contains another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        for secret in self._secrets:
            rendered = rendered.replace(secret, "***")
        return rendered


def _redaction_values(config: dict) -> list[str]:
    """Current values of the env vars named for redaction."""

    redact_cfg = (config or {}).get("redact", {})
    if not redact_cfg.get("enabled", True):
        return []
    names = redact_cfg.get("patterns") or DEFAULT_REDACT_ENV
    return [os.environ[name] for name in names if os.getenv(name)]


def _level(name, default: int) -> int:
    return getattr(logging, str(name).upper(), default)


def _file_handler(file_cfg: dict) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/coffeechat.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging() -> None:
    """Install console and file handlers as configured in config.json."""

    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level = _level(config.get("level", "INFO"), logging.INFO)
    secrets = _redaction_values(config)
    formatter = _RedactingFormatter(secrets)

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    # discord.py's gateway chatter is kept at its own level.
    logging.getLogger("discord").setLevel(_level(config.get("discord_level", "WARNING"), logging.WARNING))


def _open_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _run() -> None:
    _print_banner()
    _configure_logging()
    secrets = _redaction_values(settings.LOGGING)
    logger = logging.getLogger(__name__)

    logger.info("Starting coffeechat")
    token = read_token()
    storage = _open_storage()

    bot = build_client(settings.GUILD_ID)
    gateway = DiscordGateway(bot, settings.INTROS_HUB_CHANNEL_ID)
    provisioner = RoomProvisioner(gateway, storage, settings.ROOMS)
    negotiator = MatchNegotiator(storage, gateway, provisioner)

    # The registry is in-memory; rebuild open negotiations from the store so
    # buttons sent before a restart still resolve.
    negotiator.rehydrate(storage.list_open_matches())

    if settings.OPENAI_API_KEY:
        summarizer = OpenAISummarizer(settings.SUMMARIZER_MODEL, settings.OPENAI_API_KEY)
    else:
        summarizer = None
        logger.warning("OPENAI_API_KEY not set; profiles use the keyword fallback summary")

    cog = CoffeeChatCog(
        bot,
        profiles=ProfileService(storage, summarizer),
        matchmaker=Matchmaker(storage, SimilarityEngine(storage, settings.MATCHING), negotiator),
        negotiator=negotiator,
        recorder=HistoryRecorder(storage, settings.HISTORY),
        gateway=gateway,
        privacy_channel_ids=settings.HISTORY_CHANNEL_WHITELIST,
        start_here_channel_id=settings.START_HERE_CHANNEL_ID,
    )

    if settings.MATCH_LOG_CHANNEL_ID or settings.ERROR_LOG_CHANNEL_ID:
        channel_handler = DiscordChannelLogHandler(bot, settings.MATCH_LOG_CHANNEL_ID, settings.ERROR_LOG_CHANNEL_ID)
        channel_handler.setFormatter(_RedactingFormatter(secrets, fmt="%(message)s"))
        logging.getLogger().addHandler(channel_handler)

    async def _start(client) -> None:
        await client.add_cog(cog)
        client.sweeper_task = asyncio.create_task(
            provisioner.run_sweeper(settings.SWEEP_INTERVAL_SECONDS)
        )
        logger.info("Room sweeper running every %ss", settings.SWEEP_INTERVAL_SECONDS)

    bot.startup_tasks.append(_start)

    @bot.event
    async def on_ready() -> None:
        logger.info("Logged in as %s", bot.user)

    # Logging is configured above; keep discord.py from installing its own.
    bot.run(token, log_handler=None)


def _sweep() -> None:
    _configure_logging()
    logger = logging.getLogger(__name__)
    token = read_token()
    storage = _open_storage()

    async def _sweep_once() -> int:
        # REST-only client: no gateway connection or command sync needed.
        client = discord.Client(intents=discord.Intents.none())
        async with client:
            await client.login(token)
            provisioner = RoomProvisioner(DiscordGateway(client), storage, settings.ROOMS)
            return await provisioner.sweep()

    reclaimed = asyncio.run(_sweep_once())
    logger.info("Sweep complete: %s rooms reclaimed", reclaimed)


def _init_db() -> None:
    _configure_logging()
    _open_storage()
    logging.getLogger(__name__).info("Database ready at %s", settings.DB_PATH)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="coffeechat")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("sweep", help="Reclaim rooms whose retention window has elapsed, then exit")
    subparsers.add_parser("init-db", help="Create the SQLite tables")

    args = parser.parse_args(argv)
    if args.command == "sweep":
        _sweep()
        return
    if args.command == "init-db":
        _init_db()
        return
    _run()


if __name__ == "__main__":
    main()
