"""Discord client factory for coffeechat.

The bot only needs guild, member, voice and message-content intents: members
for display names, message content for passive history logging.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from dotenv import load_dotenv


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.voice_states = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


def read_token() -> str:
    """Read DISCORD_TOKEN via python-dotenv to keep secrets out of the repo."""

    load_dotenv()
    token = os.getenv("DISCORD_TOKEN")
    # Fail fast on missing credentials to avoid an ambiguous login error.
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN in environment")
    return token


class CoffeeChatBot(commands.Bot):
    """Bot whose setup hook syncs slash commands to the configured guild."""

    def __init__(self, guild_id: str | None = None) -> None:
        super().__init__(command_prefix=commands.when_mentioned, intents=build_intents())
        self._sync_guild_id = guild_id
        self.startup_tasks: list = []
        self.sweeper_task = None

    async def setup_hook(self) -> None:
        for start in self.startup_tasks:
            await start(self)
        if self._sync_guild_id:
            guild = discord.Object(id=int(self._sync_guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logging.getLogger(__name__).info("Registered guild commands")
        else:
            await self.tree.sync()
            logging.getLogger(__name__).info("Registered global commands")


def build_client(guild_id: str | None = None) -> CoffeeChatBot:
    logging.getLogger(__name__).info("Initializing Discord client")
    return CoffeeChatBot(guild_id=guild_id)
