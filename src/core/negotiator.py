"""Consent negotiation state machine (core domain).

A match moves proposed -> cand_accepted -> confirmed -> closed, or ends in
declined from either of the first two states. Only the candidate may act on a
proposed match and only the requester on a cand_accepted one.

Handlers run as independent coroutines and may interleave on the same match
id. Each handler validates its precondition and mutates the registry entry
before its first await, so a duplicate trigger always sees the new state and
is rejected instead of applied twice.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Iterable, Optional

from core.errors import ProvisioningError
from core.models import (
    OPEN_STATUSES,
    ActionResult,
    Match,
    MatchRecord,
    MatchStatus,
    ProposalResult,
    Profile,
    utc_now,
)
from core.notices import (
    CAND_ACCEPT,
    CAND_DECLINE,
    REQ_ACCEPT,
    REQ_DECLINE,
    candidate_declined_notice,
    confirmation_request_notice,
    proposal_notice,
    requester_declined_notice,
    room_failed_notice,
    room_opened_notice,
)
from core.ports import NotifierPort, ProfileStorePort

LOGGER = logging.getLogger(__name__)

EXPIRED_REPLY = "This request has expired or is unknown."
STALE_REPLY = "This request was already handled."
CANDIDATE_ONLY_REPLY = "Only the invited member can respond to this proposal."
REQUESTER_ONLY_REPLY = "Only the requester can respond to this confirmation."

CANDIDATE = "candidate"
REQUESTER = "requester"


def default_match_id() -> str:
    return f"m_{uuid.uuid4().hex[:16]}"


class MatchRegistry:
    """Authoritative in-process store of live negotiations keyed by match id."""

    def __init__(self) -> None:
        self._entries: dict[str, Match] = {}

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, match_id: str) -> Optional[Match]:
        return self._entries.get(match_id)

    def add(self, match: Match) -> None:
        if match.match_id in self._entries:
            raise KeyError(f"Match id already live: {match.match_id}")
        self._entries[match.match_id] = match

    def discard(self, match_id: str) -> None:
        self._entries.pop(match_id, None)

    def ids(self) -> list[str]:
        return list(self._entries)


class MatchNegotiator:
    """Drives proposals through mutual consent and hands off to the provisioner."""

    def __init__(
        self,
        store: ProfileStorePort,
        notifier: NotifierPort,
        provisioner,
        registry: Optional[MatchRegistry] = None,
        id_factory: Callable[[], str] = default_match_id,
        clock: Callable = utc_now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._provisioner = provisioner
        self._registry = registry if registry is not None else MatchRegistry()
        self._id_factory = id_factory
        self._clock = clock
        self._handlers = {
            CAND_ACCEPT: self.on_candidate_accept,
            CAND_DECLINE: self.on_candidate_decline,
            REQ_ACCEPT: self.on_requester_accept,
            REQ_DECLINE: self.on_requester_decline,
        }

    @property
    def registry(self) -> MatchRegistry:
        return self._registry

    # -- persistence ---------------------------------------------------------

    def _persist(self, match_id: str, **fields) -> None:
        # Durable writes never gate registry transitions.
        try:
            self._store.update_match(match_id, **fields)
        except Exception:
            LOGGER.exception("Failed to persist match %s (%s)", match_id, fields)

    def _lookup_profile(self, user_id: str) -> Optional[Profile]:
        try:
            return self._store.get_profile(user_id)
        except Exception:
            LOGGER.exception("Profile lookup failed for %s", user_id)
            return None

    def _log_event(self, entry: Match, room_id: Optional[str] = None) -> None:
        LOGGER.info(
            "match/%s %s",
            entry.status.value,
            entry.match_id,
            extra={
                "match_event": entry.status.value,
                "match_id": entry.match_id,
                "requester_id": entry.requester_id,
                "candidate_id": entry.candidate_id,
                "room_id": room_id,
            },
        )

    def _new_match_id(self) -> str:
        while True:
            match_id = self._id_factory()
            if match_id not in self._registry:
                return match_id

    # -- proposal ------------------------------------------------------------

    async def create_proposal(self, requester_id: str, candidate_id: str, guild_id: str) -> ProposalResult:
        """Register a new proposal and deliver it to the candidate."""

        if requester_id == candidate_id:
            raise ValueError("requester and candidate must be different members")

        now = self._clock()
        entry = Match(
            match_id=self._new_match_id(),
            requester_id=requester_id,
            candidate_id=candidate_id,
            guild_id=guild_id,
            status=MatchStatus.PROPOSED,
            created_at=now,
        )
        self._registry.add(entry)
        try:
            self._store.insert_match(
                MatchRecord(
                    id=entry.match_id,
                    guild_id=guild_id,
                    requester_id=requester_id,
                    candidate_id=candidate_id,
                    status=MatchStatus.PROPOSED,
                    created_at=now,
                )
            )
        except Exception:
            LOGGER.exception("Failed to insert match %s", entry.match_id)
        self._log_event(entry)

        requester = self._lookup_profile(requester_id)
        notice = proposal_notice(entry.match_id, self._notifier.mention(requester_id), requester)
        delivered = await self._notifier.notify(candidate_id, notice)
        if not delivered:
            # Neither DM nor fallback reached the candidate: abandon.
            entry.status = MatchStatus.DECLINED
            self._registry.discard(entry.match_id)
            self._persist(entry.match_id, status=MatchStatus.DECLINED)
            self._log_event(entry)
        return ProposalResult(match_id=entry.match_id, delivered=delivered)

    # -- transitions ---------------------------------------------------------

    def _claim(self, match_id: str, acting_id: str, role: str, expected: MatchStatus):
        """Return (entry, None) when the action may proceed, else (None, rejection)."""

        entry = self._registry.get(match_id)
        if entry is None:
            return None, ActionResult(False, EXPIRED_REPLY, reason="unknown")

        if role == CANDIDATE:
            owner, refusal = entry.candidate_id, CANDIDATE_ONLY_REPLY
        else:
            owner, refusal = entry.requester_id, REQUESTER_ONLY_REPLY
        if acting_id != owner:
            LOGGER.info("Rejected %s action on %s by %s", role, match_id, acting_id)
            return None, ActionResult(False, refusal, status=entry.status, reason="wrong_actor")

        if entry.status != expected or (role == REQUESTER and entry.requester_accepted):
            return None, ActionResult(False, STALE_REPLY, status=entry.status, reason="stale")
        return entry, None

    async def on_candidate_decline(self, match_id: str, acting_id: str) -> ActionResult:
        entry, rejection = self._claim(match_id, acting_id, CANDIDATE, MatchStatus.PROPOSED)
        if rejection:
            return rejection

        entry.status = MatchStatus.DECLINED
        self._registry.discard(match_id)
        self._persist(match_id, status=MatchStatus.DECLINED)
        self._log_event(entry)
        await self._notifier.notify(
            entry.requester_id, candidate_declined_notice(self._notifier.mention(entry.candidate_id))
        )
        return ActionResult(True, "❌ You declined the proposal.", status=MatchStatus.DECLINED)

    async def on_candidate_accept(self, match_id: str, acting_id: str) -> ActionResult:
        entry, rejection = self._claim(match_id, acting_id, CANDIDATE, MatchStatus.PROPOSED)
        if rejection:
            return rejection

        entry.candidate_accepted = True
        entry.status = MatchStatus.CAND_ACCEPTED
        self._persist(match_id, status=MatchStatus.CAND_ACCEPTED)
        self._log_event(entry)

        delivered = await self._notifier.notify(
            entry.requester_id,
            confirmation_request_notice(match_id, self._notifier.mention(entry.candidate_id)),
        )
        if not delivered and self._registry.get(match_id) is entry and entry.status == MatchStatus.CAND_ACCEPTED:
            entry.status = MatchStatus.DECLINED
            self._registry.discard(match_id)
            self._persist(match_id, status=MatchStatus.DECLINED)
            self._log_event(entry)
            return ActionResult(
                True,
                "⚠️ The requester could not be reached, so this proposal was closed.",
                status=MatchStatus.DECLINED,
                reason="undeliverable",
            )
        return ActionResult(
            True,
            "✅ Accepted! Waiting for the requester's final confirmation…",
            status=MatchStatus.CAND_ACCEPTED,
        )

    async def on_requester_decline(self, match_id: str, acting_id: str) -> ActionResult:
        entry, rejection = self._claim(match_id, acting_id, REQUESTER, MatchStatus.CAND_ACCEPTED)
        if rejection:
            return rejection

        entry.status = MatchStatus.DECLINED
        self._registry.discard(match_id)
        self._persist(match_id, status=MatchStatus.DECLINED)
        self._log_event(entry)
        await self._notifier.notify(
            entry.candidate_id, requester_declined_notice(self._notifier.mention(entry.requester_id))
        )
        return ActionResult(True, "❌ You declined at the final confirmation.", status=MatchStatus.DECLINED)

    async def on_requester_accept(self, match_id: str, acting_id: str) -> ActionResult:
        entry, rejection = self._claim(match_id, acting_id, REQUESTER, MatchStatus.CAND_ACCEPTED)
        if rejection:
            return rejection

        entry.requester_accepted = True
        if not entry.candidate_accepted:
            return ActionResult(True, "Waiting for the other member to accept…", status=entry.status)

        try:
            room = await self._provisioner.provision(
                match_id,
                entry.guild_id,
                entry.requester_id,
                entry.candidate_id,
            )
        except ProvisioningError as exc:
            LOGGER.error("Room provisioning failed for %s: %s", match_id, exc)
            entry.status = MatchStatus.DECLINED
            self._persist(match_id, status=MatchStatus.DECLINED)
            self._log_event(entry)
            notice = room_failed_notice(str(exc) or "check permissions and category")
            await self._notifier.notify(entry.requester_id, notice)
            await self._notifier.notify(entry.candidate_id, notice)
            return ActionResult(
                True,
                notice.text,
                status=MatchStatus.DECLINED,
                reason="provisioning_failed",
            )
        else:
            entry.status = MatchStatus.CONFIRMED
            self._log_event(entry, room_id=room.id)
            notice = room_opened_notice(room.name, self._provisioner.retention_hours)
            await self._notifier.notify(entry.requester_id, notice)
            await self._notifier.notify(entry.candidate_id, notice)
            return ActionResult(True, "✅ Confirmed! Your voice room is open.", status=MatchStatus.CONFIRMED)
        finally:
            self._registry.discard(match_id)

    async def handle_action(self, match_id: str, action: str, acting_id: str) -> ActionResult:
        """Dispatch a control activation to its transition handler."""

        handler = self._handlers.get(action)
        if handler is None:
            return ActionResult(False, EXPIRED_REPLY, reason="unknown_action")
        return await handler(match_id, acting_id)

    # -- lifecycle -----------------------------------------------------------

    def rehydrate(self, records: Iterable[MatchRecord]) -> int:
        """Rebuild registry entries from durable open records after a restart."""

        restored = 0
        for record in records:
            status = MatchStatus(record.status)
            if status not in OPEN_STATUSES or record.id in self._registry:
                continue
            self._registry.add(
                Match(
                    match_id=record.id,
                    requester_id=record.requester_id,
                    candidate_id=record.candidate_id,
                    guild_id=record.guild_id,
                    status=status,
                    created_at=record.created_at,
                    candidate_accepted=status == MatchStatus.CAND_ACCEPTED,
                )
            )
            restored += 1
        if restored:
            LOGGER.info("Rehydrated %s open negotiations", restored)
        return restored
