"""Static configuration for coffeechat.

All user-editable settings (channels, history logging, matching weights, room
lifecycle) live in a single JSON file for quick edits without touching Python.
Secrets stay in the environment (.env).
"""

import json
import os
from datetime import timedelta

from dotenv import load_dotenv

from core.config import DEFAULT_KEYWORDS, HistoryConfig, MatchingConfig, RoomConfig

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("COFFEECHAT_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _id_or_none(value) -> str | None:
    # Snowflakes may be written as numbers or strings; empty means unset.
    if value in (None, "", 0):
        return None
    return str(value)


_CONFIG = _load_json_config()

CONFIG = _CONFIG

# Secrets and deployment-specific ids come from the environment.
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
GUILD_ID = _id_or_none(os.getenv("GUILD_ID"))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Where to store the SQLite database.
_storage = _CONFIG.get("storage", {})
DB_PATH = _storage.get("db_path", "coffeechat.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Channels used for DM fallback, onboarding and audit feeds.
_channels = _CONFIG.get("channels", {})
INTROS_HUB_CHANNEL_ID = _id_or_none(_channels.get("intros_hub"))
START_HERE_CHANNEL_ID = _id_or_none(_channels.get("start_here"))
MATCH_LOG_CHANNEL_ID = _id_or_none(_channels.get("match_logs"))
ERROR_LOG_CHANNEL_ID = _id_or_none(_channels.get("error_logs"))

# Parent category for match rooms (optional).
COFFEE_CATEGORY_ID = _id_or_none(_CONFIG.get("categories", {}).get("coffee"))

# Passive history logging. An empty whitelist logs every readable channel.
_history = _CONFIG.get("history", {})
HISTORY_CHANNEL_WHITELIST = [str(cid) for cid in _history.get("channel_whitelist", []) if cid]
HISTORY = HistoryConfig(
    channel_whitelist=frozenset(HISTORY_CHANNEL_WHITELIST),
    max_chars=int(_history.get("max_chars", 2000)),
)

_matching = _CONFIG.get("matching", {})
MATCHING = MatchingConfig(
    interest_weight=float(_matching.get("interest_weight", 0.7)),
    purpose_weight=float(_matching.get("purpose_weight", 0.3)),
    history_enabled=bool(_history.get("enabled", True)),
    history_limit=int(_history.get("limit", 500)),
    history_concurrency=int(_history.get("concurrency", 4)),
    keywords=tuple(_matching.get("keywords") or DEFAULT_KEYWORDS),
)

_rooms = _CONFIG.get("rooms", {})
ROOMS = RoomConfig(
    retention=timedelta(hours=float(_rooms.get("retention_hours", 48))),
    timezone=_rooms.get("timezone", "Asia/Seoul"),
    name_clip=int(_rooms.get("name_clip", 16)),
    max_name_length=int(_rooms.get("max_name_length", 96)),
    parent_id=COFFEE_CATEGORY_ID,
)
SWEEP_INTERVAL_SECONDS = float(_rooms.get("sweep_interval_seconds", 300))

_summarizer = _CONFIG.get("summarizer", {})
SUMMARIZER_MODEL = _summarizer.get("model", "gpt-4o-mini")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
