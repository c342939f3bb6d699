"""Passive message history logging (core domain).

History feeds interest-tag derivation during ranking. Logging is best-effort:
a store failure here must never interrupt anything user-facing.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from core.config import HistoryConfig
from core.models import HistoryMessage
from core.ports import ProfileStorePort

LOGGER = logging.getLogger(__name__)


class HistoryRecorder:
    """Filters incoming guild messages and appends them to member history."""

    def __init__(self, store: ProfileStorePort, config: HistoryConfig) -> None:
        self._store = store
        self._config = config

    def record(self, message: HistoryMessage) -> bool:
        """Store one message if it qualifies. Returns True when stored."""

        # Direct messages and bot output are never history.
        if not message.guild_id or message.author_is_bot:
            return False

        whitelist = self._config.channel_whitelist
        if whitelist and message.channel_id not in whitelist:
            return False

        # Attachment-only messages carry no text to derive tags from.
        if not (message.content or "").strip():
            return False

        clipped = replace(message, content=message.content[: self._config.max_chars])
        try:
            self._store.insert_message(clipped)
        except Exception:
            LOGGER.exception("Message logging failed for %s", message.id)
            return False
        return True
