from __future__ import annotations

from datetime import datetime, timedelta, timezone

from adapters.sqlite_storage import SQLiteStorage
from core.models import MatchRecord, MatchStatus
from fakes import make_message, make_profile

T0 = datetime(2024, 5, 1, 3, 0, tzinfo=timezone.utc)


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "coffeechat.db"))
    storage.init_db()
    return storage


def test_profile_upsert_is_latest_wins(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.upsert_profile(make_profile("alice", purpose="first", interests=("AI", "데이터")))
    storage.upsert_profile(make_profile("alice", purpose="second", interests=("ML",)))

    profile = storage.get_profile("alice")

    assert profile.purpose == "second"
    assert profile.interests == ("ML",)
    assert storage.get_profile("nobody") is None


def test_guild_listing_excludes_requester_and_keeps_insert_order(tmp_path) -> None:
    storage = _storage(tmp_path)
    for user_id in ("carol", "alice", "bob"):
        storage.upsert_profile(make_profile(user_id))
    storage.upsert_profile(make_profile("dave", guild_id="g2"))
    storage.upsert_profile(make_profile("carol", purpose="updated"))

    listed = storage.list_guild_profiles_except("g1", "alice")

    assert [p.user_id for p in listed] == ["carol", "bob"]
    assert listed[0].purpose == "updated"


def test_recent_texts_returns_newest_first_within_limit(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_message(make_message("1", "alice", "oldest", minute=1))
    storage.insert_message(make_message("2", "alice", "middle", minute=2))
    storage.insert_message(make_message("3", "alice", "newest", minute=3))
    storage.insert_message(make_message("4", "bob", "not mine", minute=4))
    storage.insert_message(make_message("3", "alice", "duplicate", minute=5))

    assert storage.recent_texts("g1", "alice", 2) == "newest middle"
    assert storage.recent_texts("g2", "alice", 10) == ""


def test_match_lifecycle_round_trip(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_match(MatchRecord("m_1", "g1", "alice", "bob", MatchStatus.PROPOSED, T0))
    storage.insert_match(MatchRecord("m_1", "g1", "x", "y", MatchStatus.DECLINED, T0))

    storage.update_match(
        "m_1",
        status=MatchStatus.CONFIRMED,
        voice_channel_id="room-9",
        started_at=T0,
        close_due_at=T0 + timedelta(days=2),
    )
    record = storage.get_match("m_1")

    assert record.requester_id == "alice"
    assert record.status == MatchStatus.CONFIRMED
    assert record.voice_channel_id == "room-9"
    assert record.close_due_at == T0 + timedelta(days=2)
    assert record.updated_at is not None


def test_update_match_rejects_unknown_fields(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_match(MatchRecord("m_1", "g1", "alice", "bob", MatchStatus.PROPOSED, T0))

    try:
        storage.update_match("m_1", requester_id="mallory")
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")
    assert storage.get_match("m_1").requester_id == "alice"


def test_open_and_due_queries(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_match(MatchRecord("m_open", "g1", "a", "b", MatchStatus.PROPOSED, T0))
    storage.insert_match(MatchRecord("m_half", "g1", "a", "c", MatchStatus.CAND_ACCEPTED, T0))
    storage.insert_match(MatchRecord("m_room", "g1", "a", "d", MatchStatus.PROPOSED, T0))
    storage.insert_match(MatchRecord("m_done", "g1", "a", "e", MatchStatus.DECLINED, T0))
    storage.update_match("m_room", status=MatchStatus.CONFIRMED, close_due_at=T0 + timedelta(days=2))

    assert {r.id for r in storage.list_open_matches()} == {"m_open", "m_half"}
    assert storage.list_due_rooms(T0 + timedelta(days=1)) == []
    assert [r.id for r in storage.list_due_rooms(T0 + timedelta(days=2))] == ["m_room"]

    storage.update_match("m_room", status=MatchStatus.CLOSED, closed_at=T0 + timedelta(days=2))
    assert storage.list_due_rooms(T0 + timedelta(days=3)) == []


def test_due_query_compares_across_timezones(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_match(MatchRecord("m_1", "g1", "a", "b", MatchStatus.PROPOSED, T0))
    seoul = timezone(timedelta(hours=9))
    storage.update_match("m_1", status=MatchStatus.CONFIRMED, close_due_at=T0.astimezone(seoul))

    assert [r.id for r in storage.list_due_rooms(T0)] == ["m_1"]
    assert storage.list_due_rooms(T0 - timedelta(seconds=1)) == []
