"""Request-match use case: rank, pick the top candidate, propose."""

from __future__ import annotations

import logging
from dataclasses import replace

from core.models import MatchRequest
from core.negotiator import MatchNegotiator
from core.ports import ProfileStorePort
from core.similarity import SimilarityEngine

LOGGER = logging.getLogger(__name__)

NO_PROFILE = "no_profile"
NO_CANDIDATES = "no_candidates"
PROPOSED = "proposed"
UNDELIVERABLE = "undeliverable"


class Matchmaker:
    """Always attempts a fresh proposal; repeated requests are not throttled."""

    def __init__(self, store: ProfileStorePort, engine: SimilarityEngine, negotiator: MatchNegotiator) -> None:
        self._store = store
        self._engine = engine
        self._negotiator = negotiator

    async def request_match(self, user_id: str, guild_id: str) -> MatchRequest:
        profile = self._store.get_profile(user_id)
        if profile is None:
            return MatchRequest(outcome=NO_PROFILE)

        # Rank within the guild the command came from.
        if profile.guild_id != guild_id:
            profile = replace(profile, guild_id=guild_id)

        ranked = await self._engine.rank(profile)
        if not ranked:
            return MatchRequest(outcome=NO_CANDIDATES)

        top = ranked[0]
        result = await self._negotiator.create_proposal(user_id, top.user_id, guild_id)
        LOGGER.info(
            "Proposal %s from %s to %s (score %.3f, delivered=%s)",
            result.match_id,
            user_id,
            top.user_id,
            top.score,
            result.delivered,
        )
        return MatchRequest(
            outcome=PROPOSED if result.delivered else UNDELIVERABLE,
            candidate=top,
            match_id=result.match_id,
            ranked=tuple(ranked),
        )
