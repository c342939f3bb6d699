"""Discord notification and room-hosting adapter.

Implements NotifierPort (DM with fallback to a shared channel) and
RoomHostPort (permission check, display names, private voice channels).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import discord

from adapters.discord_ui import notice_payload
from adapters.notification_formatting import fallback_text
from core.models import Notice, RoomRef

LOGGER = logging.getLogger(__name__)


class DiscordGateway:
    """Delivers notices and manages match rooms through a discord.py client."""

    def __init__(self, client: discord.Client, fallback_channel_id: Optional[str] = None) -> None:
        self._client = client
        self._fallback_channel_id = fallback_channel_id

    def mention(self, user_id: str) -> str:
        return f"<@{user_id}>"

    async def _channel(self, channel_id: str):
        channel = self._client.get_channel(int(channel_id))
        if channel is None:
            channel = await self._client.fetch_channel(int(channel_id))
        return channel

    async def _guild(self, guild_id: str) -> discord.Guild:
        guild = self._client.get_guild(int(guild_id))
        if guild is None:
            guild = await self._client.fetch_guild(int(guild_id))
        return guild

    async def send_direct(self, user_id: str, notice: Notice) -> bool:
        try:
            user = self._client.get_user(int(user_id)) or await self._client.fetch_user(int(user_id))
            await user.send(**notice_payload(notice))
        except (discord.HTTPException, discord.ClientException) as exc:
            LOGGER.warning("DM failed to %s: %s", user_id, exc)
            return False
        return True

    async def notify(self, user_id: str, notice: Notice) -> bool:
        """DM the member, falling back to the shared channel with a mention."""

        if await self.send_direct(user_id, notice):
            return True
        if not self._fallback_channel_id:
            return False
        try:
            channel = await self._channel(self._fallback_channel_id)
            content = fallback_text(self.mention(user_id), notice)
            await channel.send(**notice_payload(notice, content=content))
        except (discord.HTTPException, discord.ClientException):
            LOGGER.exception("Fallback delivery failed for %s", user_id)
            return False
        return True

    async def has_manage_channels(self, guild_id: str) -> bool:
        guild = await self._guild(guild_id)
        me = guild.me
        return bool(me and me.guild_permissions.manage_channels)

    async def display_name(self, guild_id: str, user_id: str) -> str:
        fallback = f"user-{user_id[-4:]}"
        try:
            guild = await self._guild(guild_id)
            member = guild.get_member(int(user_id)) or await guild.fetch_member(int(user_id))
        except discord.HTTPException:
            return fallback
        return member.display_name or member.name or fallback

    async def create_private_room(
        self,
        guild_id: str,
        name: str,
        member_ids: Iterable[str],
        parent_id: Optional[str],
    ) -> RoomRef:
        """Create a voice channel only the given members can see and join."""

        guild = await self._guild(guild_id)
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False, connect=False),
        }
        for member_id in member_ids:
            overwrites[discord.Object(id=int(member_id), type=discord.Member)] = discord.PermissionOverwrite(
                view_channel=True, connect=True, speak=True
            )
        category = None
        if parent_id:
            category = guild.get_channel(int(parent_id))
        channel = await guild.create_voice_channel(
            name,
            overwrites=overwrites,
            category=category,
            reason="Coffee chat match confirmed",
        )
        return RoomRef(id=str(channel.id), name=channel.name)

    async def delete_room(self, room_id: str, reason: str) -> None:
        channel = await self._channel(room_id)
        await channel.delete(reason=reason)
