"""Ephemeral room provisioning and reclamation (core domain).

Reclamation is driven by a persisted close_due_at timestamp and a periodic
sweep rather than an in-process timer, so rooms are still reclaimed after a
restart.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from core.config import RoomConfig
from core.errors import MissingCapabilityError, ProvisioningError
from core.models import MatchStatus, RoomRef, utc_now
from core.ports import ProfileStorePort, RoomHostPort

LOGGER = logging.getLogger(__name__)

ELLIPSIS = "…"
NAME_PLACEHOLDER = "member"


def clip_name(name: Optional[str], limit: int = 16) -> str:
    """Single-line display name, cut to ``limit`` chars with an ellipsis."""

    cleaned = str(name or "").replace("\r", " ").replace("\n", " ").strip()
    if not cleaned:
        return NAME_PLACEHOLDER
    if len(cleaned) > limit:
        return cleaned[: limit - 1] + ELLIPSIS
    return cleaned


def local_date(now: datetime, tz_name: str) -> str:
    return now.astimezone(ZoneInfo(tz_name)).strftime("%Y-%m-%d")


def build_room_name(requester_name: str, candidate_name: str, date_str: str, config: RoomConfig) -> str:
    parts = (
        clip_name(requester_name, config.name_clip),
        clip_name(candidate_name, config.name_clip),
        date_str,
    )
    return config.separator.join(parts)[: config.max_name_length]


class RoomProvisioner:
    """Creates the private two-member room and reclaims it when due."""

    def __init__(
        self,
        host: RoomHostPort,
        store: ProfileStorePort,
        config: RoomConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._host = host
        self._store = store
        self._config = config
        self._clock = clock
        # match_id -> confirmed fields whose durable write failed.
        self._unsynced: dict[str, dict] = {}

    @property
    def retention_hours(self) -> int:
        return int(self._config.retention.total_seconds() // 3600)

    @property
    def unsynced(self) -> dict[str, dict]:
        return dict(self._unsynced)

    async def provision(self, match_id: str, guild_id: str, requester_id: str, candidate_id: str) -> RoomRef:
        """Create the room and persist its reference and due-at timestamp."""

        # Every host failure surfaces as ProvisioningError.
        try:
            allowed = await self._host.has_manage_channels(guild_id)
        except Exception as exc:
            raise ProvisioningError(str(exc) or exc.__class__.__name__) from exc
        if not allowed:
            raise MissingCapabilityError("Missing Manage Channels permission")

        now = self._clock()
        try:
            requester_name = await self._host.display_name(guild_id, requester_id)
            candidate_name = await self._host.display_name(guild_id, candidate_id)
        except Exception as exc:
            raise ProvisioningError(str(exc) or exc.__class__.__name__) from exc
        name = build_room_name(requester_name, candidate_name, local_date(now, self._config.timezone), self._config)

        try:
            room = await self._host.create_private_room(
                guild_id,
                name,
                (requester_id, candidate_id),
                self._config.parent_id,
            )
        except Exception as exc:
            raise ProvisioningError(str(exc) or exc.__class__.__name__) from exc

        fields = {
            "status": MatchStatus.CONFIRMED,
            "voice_channel_id": room.id,
            "started_at": now,
            "close_due_at": now + self._config.retention,
        }
        try:
            self._store.update_match(match_id, **fields)
        except Exception:
            # The room stays usable; the sweep retries the write.
            LOGGER.exception("Room %s created but match %s was not updated", room.id, match_id)
            self._unsynced[match_id] = fields
        LOGGER.info("Room %s (%s) created for match %s", room.id, room.name, match_id)
        return room

    async def reclaim(self, match_id: str, room_id: Optional[str]) -> None:
        """Delete the room (best-effort) and persist the closed status."""

        if room_id:
            try:
                await self._host.delete_room(room_id, "Auto close after retention window")
            except Exception:
                LOGGER.exception("Failed to delete room %s for match %s", room_id, match_id)
        self._store.update_match(match_id, status=MatchStatus.CLOSED, closed_at=self._clock())
        LOGGER.info(
            "match/closed %s",
            match_id,
            extra={"match_event": "closed", "match_id": match_id, "room_id": room_id},
        )

    def _resync(self) -> None:
        for match_id, fields in list(self._unsynced.items()):
            try:
                self._store.update_match(match_id, **fields)
            except Exception:
                LOGGER.exception("Retry of confirmed write for match %s failed", match_id)
                continue
            del self._unsynced[match_id]

    async def sweep(self) -> int:
        """Reclaim every confirmed room whose retention window has elapsed."""

        self._resync()
        now = self._clock()
        reclaimed = 0
        # Rooms whose confirmed write still fails are reclaimed from memory.
        # They stay tracked until the closed write lands.
        for match_id, fields in list(self._unsynced.items()):
            if fields["close_due_at"] > now:
                continue
            if await self._reclaim_quietly(match_id, fields["voice_channel_id"]):
                del self._unsynced[match_id]
                reclaimed += 1

        for record in self._store.list_due_rooms(now):
            if await self._reclaim_quietly(record.id, record.voice_channel_id):
                reclaimed += 1
        if reclaimed:
            LOGGER.info("Sweep reclaimed %s rooms", reclaimed)
        return reclaimed

    async def _reclaim_quietly(self, match_id: str, room_id: Optional[str]) -> bool:
        try:
            await self.reclaim(match_id, room_id)
        except Exception:
            LOGGER.exception("Failed to close match %s", match_id)
            return False
        return True

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Run sweep() forever; one failed pass never stops the loop."""

        while True:
            try:
                await self.sweep()
            except Exception:
                LOGGER.exception("Room sweep failed")
            await asyncio.sleep(interval_seconds)
