"""Shared notification formatting helpers.

Keeping formatting here prevents drift between the command handlers and the
gateway, and keeps messages consistent regardless of delivery channel.
"""

from __future__ import annotations

from typing import Iterable, Optional

from core.models import Notice, Profile, ScoredCandidate

CONTROL_PREFIX = "match"

TONE_COLORS = {
    "info": 0x5865F2,
    "proposal": 0x43B581,
    "success": 0x2B8A3E,
    "danger": 0xD83C3E,
}


def control_custom_id(match_id: str, action: str) -> str:
    return f"{CONTROL_PREFIX}:{match_id}:{action}"


def parse_control_id(custom_id: str) -> Optional[tuple[str, str]]:
    """Return (match_id, action) for a match control id, else None."""

    prefix, sep, rest = (custom_id or "").partition(":")
    if prefix != CONTROL_PREFIX or not sep:
        return None
    match_id, sep, action = rest.rpartition(":")
    if not sep or not match_id or not action:
        return None
    return match_id, action


def tone_color(tone: str) -> int:
    return TONE_COLORS.get(tone, TONE_COLORS["info"])


def fallback_text(user_ref: str, notice: Notice) -> str:
    """Body posted in the shared channel when a DM cannot be delivered."""

    return f"{user_ref} your DMs are closed, so this was posted here.\n{notice.text}"


def profile_fields(profile: Profile) -> list[tuple[str, str, bool]]:
    """(name, value, inline) rows describing a profile."""

    return [
        ("Name", profile.name or "-", True),
        ("Intro", profile.intro or "-", True),
        ("Interests", " · ".join(profile.interests) or "-", False),
        ("Purpose", profile.purpose or "-", False),
    ]


def percent(value: float) -> int:
    return int(value * 100)


def match_details(candidate: ScoredCandidate) -> str:
    return (
        f"Interest similarity: {percent(candidate.interest_score)}%\n"
        f"Purpose similarity: {percent(candidate.purpose_score)}%"
    )


def format_privacy_notice(channel_refs: Iterable[str]) -> str:
    refs = list(channel_refs)
    target = ", ".join(refs) if refs else "every text channel the bot can read"
    return "\n".join(
        [
            "- Messages in some text channels are stored to improve recommendations.",
            f"- Channels: {target}",
            "- Storage: the bot's own database (deleted on request)",
        ]
    )


START_HERE_TEXT = "\n".join(
    [
        "🎯 Quick start",
        "1) Create and confirm your profile with /profile_ai.",
        "2) Get a proposal with /match. When both of you accept, a private voice room opens.",
    ]
)
