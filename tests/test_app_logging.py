from __future__ import annotations

import logging
from types import SimpleNamespace

from adapters.discord_log import DiscordChannelLogHandler
from app import DEFAULT_REDACT_ENV, _RedactingFormatter, _redaction_values


def _record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.makeLogRecord(
        {"name": "coffeechat", "msg": message, "levelno": level, "levelname": logging.getLevelName(level)}
    )


def test_formatter_masks_longest_secret_first() -> None:
    formatter = _RedactingFormatter(["abc", "abcdef", ""], fmt="%(message)s")

    assert formatter.format(_record("token=abcdef other=abc")) == "token=*** other=***"


def test_redaction_defaults_to_bot_secrets(monkeypatch) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "discord-secret")
    monkeypatch.setenv("OPENAI_API_KEY", "openai-secret")

    assert set(_redaction_values({})) == {"discord-secret", "openai-secret"}
    assert "DISCORD_TOKEN" in DEFAULT_REDACT_ENV


def test_redaction_uses_configured_names_and_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("EXTRA_SECRET", "hunter2")
    monkeypatch.delenv("MISSING_SECRET", raising=False)

    assert _redaction_values({"redact": {"patterns": ["EXTRA_SECRET", "MISSING_SECRET"]}}) == ["hunter2"]
    assert _redaction_values({"redact": {"enabled": False}}) == []


def test_error_channel_post_is_redacted() -> None:
    handler = DiscordChannelLogHandler(SimpleNamespace(), None, "99")
    handler.setFormatter(_RedactingFormatter(["s3cret"], fmt="%(message)s"))

    channel_id, embed = handler._embed_for(_record("login failed with s3cret", logging.ERROR))

    assert channel_id == "99"
    assert "s3cret" not in embed.description
    assert "***" in embed.description


def test_info_records_without_match_event_are_not_mirrored() -> None:
    handler = DiscordChannelLogHandler(SimpleNamespace(), "98", "99")

    assert handler._embed_for(_record("ranked 3 candidates")) == (None, None)
