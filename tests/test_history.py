from __future__ import annotations

from core.config import HistoryConfig
from core.history import HistoryRecorder
from fakes import FakeStore, make_message


def test_records_guild_text_messages() -> None:
    store = FakeStore()
    recorder = HistoryRecorder(store, HistoryConfig())

    assert recorder.record(make_message("1", "alice", "hello devops")) is True
    assert store.messages["1"].content == "hello devops"


def test_skips_direct_messages_bots_and_empty_content() -> None:
    store = FakeStore()
    recorder = HistoryRecorder(store, HistoryConfig())

    assert recorder.record(make_message("1", "alice", "hi", guild_id=None)) is False
    assert recorder.record(make_message("2", "bot", "hi", author_is_bot=True)) is False
    assert recorder.record(make_message("3", "alice", "   ")) is False
    assert store.messages == {}


def test_channel_whitelist_limits_logging() -> None:
    store = FakeStore()
    recorder = HistoryRecorder(store, HistoryConfig(channel_whitelist=frozenset({"c-ok"})))

    assert recorder.record(make_message("1", "alice", "in", channel_id="c-ok")) is True
    assert recorder.record(make_message("2", "alice", "out", channel_id="c-other")) is False
    assert list(store.messages) == ["1"]


def test_long_content_is_clipped() -> None:
    store = FakeStore()
    recorder = HistoryRecorder(store, HistoryConfig(max_chars=10))

    recorder.record(make_message("1", "alice", "a" * 50))

    assert store.messages["1"].content == "a" * 10


def test_store_failure_is_swallowed_and_reported() -> None:
    store = FakeStore()
    store.fail_messages = True
    recorder = HistoryRecorder(store, HistoryConfig())

    assert recorder.record(make_message("1", "alice", "hello")) is False
