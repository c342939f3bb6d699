"""Profile creation, editing and regeneration (core domain).

Summarizer output is untrusted: any error or unusable field falls back to a
deterministic keyword-based summary so a member always ends up with a profile.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import ProfileInputError, SummaryError
from core.models import Profile, ProfileDraft
from core.ports import ProfileStorePort, SummarizerPort
from core.tags import normalize_tags, parse_tag_list

LOGGER = logging.getLogger(__name__)

PURPOSE_CHARS = 140
FALLBACK_KEYWORDS = ("ai", "ml", "startup", "career", "fintech", "product", "design", "marketing", "security")
FALLBACK_TAG = "NETWORKING"
FALLBACK_INTRO = "Happy to talk about shared interests"
UNNAMED = "Anonymous"


def fallback_summary(name: str, narrative: str) -> ProfileDraft:
    """Deterministic summary used whenever the summarizer cannot be trusted."""

    lowered = (narrative or "").lower()
    tags = normalize_tags(keyword for keyword in FALLBACK_KEYWORDS if keyword in lowered)
    return ProfileDraft(
        name=name or UNNAMED,
        purpose=(narrative or "")[:PURPOSE_CHARS],
        interests=tags or (FALLBACK_TAG,),
        intro=FALLBACK_INTRO,
    )


def _coerce_draft(draft: ProfileDraft, name: str, narrative: str) -> ProfileDraft:
    """Fill gaps in summarizer output the same way the fallback would."""

    if not isinstance(draft, ProfileDraft):
        raise SummaryError(f"Unexpected summarizer output: {type(draft).__name__}")
    return ProfileDraft(
        name=(draft.name or "").strip() or name or UNNAMED,
        purpose=(draft.purpose or "").strip() or (narrative or "")[:PURPOSE_CHARS],
        interests=normalize_tags(draft.interests),
        intro=(draft.intro or "").strip(),
    )


class ProfileService:
    """Create, edit, regenerate and view member profiles."""

    def __init__(self, store: ProfileStorePort, summarizer: Optional[SummarizerPort]) -> None:
        self._store = store
        self._summarizer = summarizer

    async def summarize(self, name: str, narrative: str) -> ProfileDraft:
        if self._summarizer is None:
            return fallback_summary(name, narrative)
        try:
            draft = await self._summarizer.summarize(name, narrative)
            return _coerce_draft(draft, name, narrative)
        except Exception:
            LOGGER.warning("Profile summarizer failed; using fallback summary", exc_info=True)
            return fallback_summary(name, narrative)

    def _save(self, guild_id: str, user_id: str, draft: ProfileDraft) -> Profile:
        profile = Profile(
            user_id=user_id,
            guild_id=guild_id or "",
            name=draft.name,
            purpose=draft.purpose,
            intro=draft.intro,
            interests=normalize_tags(draft.interests),
        )
        self._store.upsert_profile(profile)
        LOGGER.info("Profile saved for %s", user_id)
        return profile

    async def create_profile(self, guild_id: str, user_id: str, name: str, narrative: str) -> Profile:
        name = (name or "").strip()
        narrative = (narrative or "").strip()
        if not name or not narrative:
            raise ProfileInputError("Name and narrative are required.")
        draft = await self.summarize(name, narrative)
        return self._save(guild_id, user_id, draft)

    def edit_profile(
        self,
        guild_id: str,
        user_id: str,
        name: str,
        purpose: str,
        interests_text: str = "",
        intro: str = "",
    ) -> Profile:
        name = (name or "").strip()
        purpose = (purpose or "").strip()
        if not name or not purpose:
            raise ProfileInputError("Name and purpose are required.")
        draft = ProfileDraft(
            name=name,
            purpose=purpose,
            interests=parse_tag_list(interests_text),
            intro=(intro or "").strip(),
        )
        return self._save(guild_id, user_id, draft)

    async def regenerate_profile(self, guild_id: str, user_id: str) -> Optional[Profile]:
        """Re-summarize an existing profile; None when there is nothing to regenerate."""

        base = self._store.get_profile(user_id)
        if base is None:
            return None
        draft = await self.summarize(base.name or UNNAMED, base.purpose or base.intro or "")
        return self._save(guild_id or base.guild_id, user_id, draft)

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self._store.get_profile(user_id)
