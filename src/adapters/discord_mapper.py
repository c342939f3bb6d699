"""Discord-to-core message mapping adapter.

This keeps discord.py-specific details out of the core history recorder.
"""

from __future__ import annotations

import discord

from core.models import HistoryMessage


def build_history_message(message: discord.Message) -> HistoryMessage:
    """Build a core HistoryMessage from a discord.py Message."""

    guild_id = getattr(message, "guild", None) and message.guild.id
    author = message.author
    return HistoryMessage(
        id=str(message.id),
        guild_id=str(guild_id) if guild_id else None,
        channel_id=str(message.channel.id),
        user_id=str(author.id),
        content=message.content or "",
        created_at=message.created_at,
        author_is_bot=bool(getattr(author, "bot", False)),
    )
