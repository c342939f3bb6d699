"""Interest tag normalization and keyword-based derivation (core domain)."""

from __future__ import annotations

from typing import Iterable, List

from core.config import MAX_TAGS


def strip_symbols(text: str) -> str:
    """Replace every character that is not a letter, number or whitespace."""

    return "".join(ch if ch.isalnum() or ch.isspace() else " " for ch in text)


def normalize_tags(raw_tags: Iterable[object], limit: int = MAX_TAGS) -> tuple[str, ...]:
    """Strip, upper-case and deduplicate tags, keeping first-seen order.

    Non-list input (for example a summarizer returning a string) yields no tags.
    """

    if raw_tags is None or isinstance(raw_tags, (str, bytes)):
        return ()
    seen: List[str] = []
    for raw in raw_tags:
        tag = str(raw).strip().upper()
        if not tag or tag in seen:
            continue
        seen.append(tag)
        if len(seen) >= limit:
            break
    return tuple(seen)


def parse_tag_list(text: str) -> tuple[str, ...]:
    """Parse a comma separated tag field as typed by a member."""

    return normalize_tags((text or "").split(","))


def derive_tags(text: str, keywords: Iterable[str]) -> tuple[str, ...]:
    """Return dictionary keywords found in history text.

    Matching is substring based on the lower-cased, symbol-stripped text so
    that keywords inside longer words (common in Korean) still count.
    """

    lowered = strip_symbols((text or "").lower())
    if not lowered.strip():
        return ()
    hits = [keyword for keyword in keywords if keyword.lower() in lowered]
    return normalize_tags(hits)


def merge_tags(explicit: Iterable[str], derived: Iterable[str]) -> tuple[str, ...]:
    """Order-preserving set union of explicit and derived tags."""

    merged: List[str] = []
    for tag in list(explicit) + list(derived):
        if tag not in merged:
            merged.append(tag)
    return tuple(merged)
