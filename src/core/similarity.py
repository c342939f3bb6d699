"""Candidate scoring and ranking (core domain).

Scoring is pure: interest similarity is the Jaccard index over merged tag sets
and purpose similarity is the Jaccard index over purpose word tokens. Only the
history reads needed for tag derivation touch the store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AbstractSet, List

from core.config import MatchingConfig
from core.models import Profile, ScoredCandidate
from core.ports import ProfileStorePort
from core.tags import derive_tags, merge_tags, strip_symbols

LOGGER = logging.getLogger(__name__)


def tokenize(text: str) -> set[str]:
    """Lower-cased, Unicode-aware word tokens with punctuation removed."""

    return set(strip_symbols((text or "").lower()).split())


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|a & b| / |a | b|, defined as 0 when either set is empty."""

    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def interest_similarity(a_tags, b_tags) -> float:
    return jaccard(set(a_tags), set(b_tags))


def purpose_similarity(a_text: str, b_text: str) -> float:
    return jaccard(tokenize(a_text), tokenize(b_text))


def composite_score(interest: float, purpose: float, config: MatchingConfig) -> float:
    return config.interest_weight * interest + config.purpose_weight * purpose


def score_candidate(
    requester_tags,
    requester_purpose: str,
    candidate: Profile,
    candidate_tags,
    config: MatchingConfig,
) -> ScoredCandidate:
    """Score one candidate against already-merged requester tags."""

    interest = interest_similarity(requester_tags, candidate_tags)
    purpose = purpose_similarity(requester_purpose, candidate.purpose)
    return ScoredCandidate(
        profile=candidate,
        score=composite_score(interest, purpose, config),
        interest_score=interest,
        purpose_score=purpose,
    )


def rank_scored(scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
    """Sort descending by score. sorted() is stable, so ties keep input order."""

    return sorted(scored, key=lambda candidate: candidate.score, reverse=True)


class SimilarityEngine:
    """Ranks the other members of a guild for one requester."""

    def __init__(self, store: ProfileStorePort, config: MatchingConfig) -> None:
        self._store = store
        self._config = config

    async def _derived_tags(self, guild_id: str, user_id: str, gate: asyncio.Semaphore) -> tuple[str, ...]:
        if not self._config.history_enabled:
            return ()
        async with gate:
            text = await asyncio.to_thread(
                self._store.recent_texts, guild_id, user_id, self._config.history_limit
            )
        return derive_tags(text, self._config.keywords)

    async def rank(self, requester: Profile) -> List[ScoredCandidate]:
        """Return every other guild member's profile, best match first."""

        candidates = self._store.list_guild_profiles_except(requester.guild_id, requester.user_id)
        if not candidates:
            return []

        gate = asyncio.Semaphore(max(1, self._config.history_concurrency))
        # gather() preserves argument order, so fetch completion order never
        # leaks into the ranking.
        derived = await asyncio.gather(
            self._derived_tags(requester.guild_id, requester.user_id, gate),
            *(self._derived_tags(requester.guild_id, c.user_id, gate) for c in candidates),
        )
        requester_tags = merge_tags(requester.interests, derived[0])

        scored = [
            score_candidate(
                requester_tags,
                requester.purpose,
                candidate,
                merge_tags(candidate.interests, candidate_derived),
                self._config,
            )
            for candidate, candidate_derived in zip(candidates, derived[1:])
        ]
        ranked = rank_scored(scored)
        LOGGER.info(
            "Ranked %s candidates for %s in guild %s",
            len(ranked),
            requester.user_id,
            requester.guild_id,
        )
        return ranked
