"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage, notification, room hosting and
summarization adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

from core.models import HistoryMessage, MatchRecord, Notice, Profile, ProfileDraft, RoomRef


class ProfileStorePort(Protocol):
    """Durable profile, history and match operations required by the core."""

    def upsert_profile(self, profile: Profile) -> None:
        ...

    def get_profile(self, user_id: str) -> Optional[Profile]:
        ...

    def list_guild_profiles_except(self, guild_id: str, user_id: str) -> list[Profile]:
        ...

    def insert_message(self, message: HistoryMessage) -> None:
        ...

    def recent_texts(self, guild_id: str, user_id: str, limit: int) -> str:
        ...

    def insert_match(self, record: MatchRecord) -> None:
        ...

    def update_match(self, match_id: str, **fields) -> None:
        ...

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        ...

    def list_open_matches(self) -> list[MatchRecord]:
        ...

    def list_due_rooms(self, now: datetime) -> list[MatchRecord]:
        ...


class NotifierPort(Protocol):
    """Member-facing delivery required by the negotiator."""

    def mention(self, user_id: str) -> str:
        ...

    async def notify(self, user_id: str, notice: Notice) -> bool:
        ...


class RoomHostPort(Protocol):
    """Channel operations required by the room provisioner."""

    async def has_manage_channels(self, guild_id: str) -> bool:
        ...

    async def display_name(self, guild_id: str, user_id: str) -> str:
        ...

    async def create_private_room(
        self,
        guild_id: str,
        name: str,
        member_ids: Iterable[str],
        parent_id: Optional[str],
    ) -> RoomRef:
        ...

    async def delete_room(self, room_id: str, reason: str) -> None:
        ...


class SummarizerPort(Protocol):
    """Generative profile summarization. Output is untrusted."""

    async def summarize(self, name: str, narrative: str) -> ProfileDraft:
        ...
