"""Member-facing notices produced by the negotiation flow."""

from __future__ import annotations

from typing import Optional

from core.models import Control, Notice, Profile

CAND_ACCEPT = "cand_accept"
CAND_DECLINE = "cand_decline"
REQ_ACCEPT = "req_accept"
REQ_DECLINE = "req_decline"

ACTIONS = (CAND_ACCEPT, CAND_DECLINE, REQ_ACCEPT, REQ_DECLINE)


def _or_dash(value: Optional[str]) -> str:
    return value if value else "-"


def proposal_notice(match_id: str, requester_ref: str, requester: Optional[Profile]) -> Notice:
    interests = " · ".join(requester.interests) if requester else ""
    return Notice(
        title="☕ Coffee chat proposal",
        text=(
            f"Hi! {requester_ref} would like to have a coffee chat with you.\n"
            "Have a look below and choose **Accept** or **Decline**."
        ),
        fields=(
            ("Requester", requester_ref),
            ("Intro", _or_dash(requester.intro if requester else None)),
            ("Purpose", _or_dash(requester.purpose if requester else None)),
            ("Interests", _or_dash(interests)),
        ),
        controls=(
            Control(CAND_ACCEPT, "Accept", "success"),
            Control(CAND_DECLINE, "Decline", "danger"),
        ),
        match_id=match_id,
        tone="proposal",
    )


def confirmation_request_notice(match_id: str, candidate_ref: str) -> Notice:
    return Notice(
        text=f"✅ {candidate_ref} **accepted** your proposal. Do you want to confirm?",
        controls=(
            Control(REQ_ACCEPT, "Confirm", "success"),
            Control(REQ_DECLINE, "Decline", "danger"),
        ),
        match_id=match_id,
        tone="success",
    )


def candidate_declined_notice(candidate_ref: str) -> Notice:
    return Notice(text=f"❌ {candidate_ref} declined your proposal.", tone="danger")


def requester_declined_notice(requester_ref: str) -> Notice:
    return Notice(text=f"❌ {requester_ref} declined at the final confirmation.", tone="danger")


def room_opened_notice(room_name: str, retention_hours: int) -> Notice:
    return Notice(
        text=f"🔊 Your voice room is open: **{room_name}** (kept for {retention_hours} hours)",
        tone="success",
    )


def room_failed_notice(detail: str) -> Notice:
    return Notice(text=f"⚠️ Could not create the voice room: {detail}", tone="danger")
