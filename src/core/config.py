"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

# Keyword dictionary scanned against member history to derive interest tags.
DEFAULT_KEYWORDS: tuple[str, ...] = (
    "ai", "ml", "llm", "nlp", "cv", "데이터", "핀테크", "투자", "금융", "블록체인",
    "창업", "스타트업", "취업", "이직", "백엔드", "프론트엔드", "ios", "android", "pm", "디자인",
    "마케팅", "세일즈", "보안", "클라우드", "게임", "리서치", "infra", "devops", "mle", "product",
)

MAX_TAGS = 12


@dataclass(frozen=True)
class MatchingConfig:
    """Ranking weights and history window for the similarity engine."""

    interest_weight: float = 0.7
    purpose_weight: float = 0.3
    history_enabled: bool = True
    history_limit: int = 500
    history_concurrency: int = 4
    keywords: tuple[str, ...] = DEFAULT_KEYWORDS


@dataclass(frozen=True)
class RoomConfig:
    """Room naming and retention settings for the provisioner."""

    retention: timedelta = timedelta(days=2)
    timezone: str = "Asia/Seoul"
    name_clip: int = 16
    max_name_length: int = 96
    separator: str = " - "
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class HistoryConfig:
    """Passive history logging settings."""

    channel_whitelist: frozenset[str] = frozenset()
    max_chars: int = 2000
