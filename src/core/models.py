"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MatchStatus(str, Enum):
    """Lifecycle of a single proposed pairing."""

    PROPOSED = "proposed"
    CAND_ACCEPTED = "cand_accepted"
    CONFIRMED = "confirmed"
    CLOSED = "closed"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (MatchStatus.CLOSED, MatchStatus.DECLINED)


OPEN_STATUSES = (MatchStatus.PROPOSED, MatchStatus.CAND_ACCEPTED)


@dataclass(frozen=True)
class Profile:
    """Structured self-description of a member used as ranking input."""

    user_id: str
    guild_id: str
    name: str
    purpose: str
    intro: str
    interests: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProfileDraft:
    """Summarizer output before it is bound to a member."""

    name: str
    purpose: str
    interests: tuple[str, ...]
    intro: str


@dataclass(frozen=True)
class HistoryMessage:
    """One passively logged guild text message."""

    id: str
    guild_id: Optional[str]
    channel_id: str
    user_id: str
    content: str
    created_at: datetime
    author_is_bot: bool = False


@dataclass(frozen=True)
class ScoredCandidate:
    """A ranked candidate with the component similarities behind its score."""

    profile: Profile
    score: float
    interest_score: float
    purpose_score: float

    @property
    def user_id(self) -> str:
        return self.profile.user_id


@dataclass
class Match:
    """In-memory registry entry for a live negotiation."""

    match_id: str
    requester_id: str
    candidate_id: str
    guild_id: str
    status: MatchStatus
    created_at: datetime
    candidate_accepted: bool = False
    requester_accepted: bool = False


@dataclass(frozen=True)
class MatchRecord:
    """Durable representation of a match, authoritative for history/audit."""

    id: str
    guild_id: str
    requester_id: str
    candidate_id: str
    status: MatchStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    voice_channel_id: Optional[str] = None
    started_at: Optional[datetime] = None
    close_due_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoomRef:
    """Reference to a provisioned room on the hosting platform."""

    id: str
    name: str


@dataclass(frozen=True)
class Control:
    """An accept/decline style button attached to a notice."""

    action: str
    label: str
    style: str = "secondary"


@dataclass(frozen=True)
class Notice:
    """Platform-neutral message delivered to a member."""

    text: str
    title: Optional[str] = None
    fields: tuple[tuple[str, str], ...] = ()
    controls: tuple[Control, ...] = ()
    match_id: Optional[str] = None
    tone: str = "info"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a negotiation action, replied privately to the actor."""

    accepted: bool
    reply: str
    status: Optional[MatchStatus] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class ProposalResult:
    """Outcome of creating a proposal."""

    match_id: str
    delivered: bool


@dataclass(frozen=True)
class MatchRequest:
    """Outcome of the request-match use case."""

    outcome: str
    candidate: Optional[ScoredCandidate] = None
    match_id: Optional[str] = None
    ranked: tuple[ScoredCandidate, ...] = field(default=(), repr=False)
