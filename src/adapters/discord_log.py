"""Logging handler that mirrors match events and errors into Discord channels."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord

from adapters.notification_formatting import tone_color

FIELD_LIMIT = 1024
DESCRIPTION_LIMIT = 4096


class DiscordChannelLogHandler(logging.Handler):
    """Post ``match/*`` records to the match-log channel and errors to the error channel.

    emit() is synchronous, so delivery is scheduled on the client's loop and
    delivery failures go through handleError instead of back into logging.
    """

    def __init__(
        self,
        client: discord.Client,
        match_channel_id: Optional[str],
        error_channel_id: Optional[str],
    ) -> None:
        super().__init__(level=logging.INFO)
        self._client = client
        self._match_channel_id = match_channel_id
        self._error_channel_id = error_channel_id
        self._tasks: set[asyncio.Task] = set()

    def _embed_for(self, record: logging.LogRecord) -> tuple[Optional[str], Optional[discord.Embed]]:
        event = getattr(record, "match_event", None)
        if event and self._match_channel_id:
            embed = discord.Embed(title=f"📄 match/{event}", color=0x2F3136)
            embed.add_field(name="match_id", value=str(getattr(record, "match_id", None) or "-"), inline=False)
            requester = getattr(record, "requester_id", None)
            candidate = getattr(record, "candidate_id", None)
            room = getattr(record, "room_id", None)
            embed.add_field(name="requester", value=f"<@{requester}>" if requester else "-", inline=True)
            embed.add_field(name="candidate", value=f"<@{candidate}>" if candidate else "-", inline=True)
            embed.add_field(name="voice", value=f"<#{room}>" if room else "-", inline=True)
            return self._match_channel_id, embed

        if record.levelno >= logging.ERROR and self._error_channel_id:
            embed = discord.Embed(
                title="⚠️ error",
                color=tone_color("danger"),
                description=self.format(record)[:DESCRIPTION_LIMIT],
            )
            detail = "(no detail)"
            if record.exc_info and record.exc_info[1] is not None:
                detail = self._redact(repr(record.exc_info[1]))
            embed.add_field(name="detail", value=detail[:FIELD_LIMIT], inline=False)
            return self._error_channel_id, embed
        return None, None

    def _redact(self, text: str) -> str:
        # The installed formatter masks secrets; reuse it for free-standing text.
        if self.formatter is None:
            return text
        return self.formatter.format(logging.makeLogRecord({"msg": text}))

    async def _post(self, record: logging.LogRecord, channel_id: str, embed: discord.Embed) -> None:
        try:
            channel = self._client.get_channel(int(channel_id)) or await self._client.fetch_channel(int(channel_id))
            await channel.send(embed=embed)
        except (discord.HTTPException, discord.ClientException):
            self.handleError(record)

    def emit(self, record: logging.LogRecord) -> None:
        channel_id, embed = self._embed_for(record)
        if channel_id is None or not self._client.is_ready():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._post(record, channel_id, embed))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
