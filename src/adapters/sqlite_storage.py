"""SQLite storage adapter.

Implements the core ProfileStorePort using a simple SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from core.config import MAX_TAGS
from core.models import HistoryMessage, MatchRecord, MatchStatus, Profile

# Columns a partial match update may touch.
MATCH_UPDATE_FIELDS = frozenset(
    {"status", "voice_channel_id", "started_at", "close_due_at", "closed_at"}
)


def _ts(value: Optional[datetime]) -> Optional[str]:
    # Normalized to UTC so ISO strings compare in time order.
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _column_value(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _ts(value)
    return value


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the ProfileStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - profiles: latest-wins member profile, one row per user
        - messages: append-only guild message history for tag derivation
        - matches: durable match records for history/audit and rehydration
        """

        with self._connect() as conn:
            # profiles is keyed by user only; guild_id records where the
            # profile was last submitted and scopes ranking.
            # Fields:
            # - interests: JSON array of normalized tags
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    guild_id TEXT NOT NULL DEFAULT '',
                    name TEXT NOT NULL DEFAULT '',
                    purpose TEXT NOT NULL DEFAULT '',
                    interests TEXT NOT NULL DEFAULT '[]',
                    intro TEXT NOT NULL DEFAULT '',
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            # messages uses the platform message id as primary key so that
            # redelivered events are ignored instead of duplicated.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    guild_id TEXT NOT NULL,
                    channel_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    ts TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS messages_member_ts ON messages (guild_id, user_id, ts)"
            )
            # matches mirrors the negotiation lifecycle.
            # Fields:
            # - status: proposed, cand_accepted, confirmed, closed, declined
            # - close_due_at: when the sweep should reclaim the room
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS matches (
                    id TEXT PRIMARY KEY,
                    guild_id TEXT NOT NULL,
                    requester_id TEXT NOT NULL,
                    candidate_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    voice_channel_id TEXT,
                    started_at TIMESTAMP,
                    close_due_at TIMESTAMP,
                    closed_at TIMESTAMP
                )
                """
            )

    # -- profiles ----------------------------------------------------------

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        try:
            interests = json.loads(row["interests"] or "[]")
        except json.JSONDecodeError:
            interests = []
        return Profile(
            user_id=row["user_id"],
            guild_id=row["guild_id"],
            name=row["name"],
            purpose=row["purpose"],
            intro=row["intro"],
            interests=tuple(str(tag) for tag in interests)[:MAX_TAGS],
        )

    def upsert_profile(self, profile: Profile) -> None:
        """Insert or overwrite the profile for profile.user_id."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO profiles (user_id, guild_id, name, purpose, interests, intro, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    guild_id = excluded.guild_id,
                    name = excluded.name,
                    purpose = excluded.purpose,
                    interests = excluded.interests,
                    intro = excluded.intro,
                    updated_at = excluded.updated_at
                """,
                (
                    profile.user_id,
                    profile.guild_id or "",
                    profile.name or "",
                    profile.purpose or "",
                    json.dumps(list(profile.interests), ensure_ascii=False),
                    profile.intro or "",
                    _ts(now),
                ),
            )

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        return self._row_to_profile(row) if row else None

    def list_guild_profiles_except(self, guild_id: str, user_id: str) -> list[Profile]:
        """Return guild profiles other than user_id, in first-insert order."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM profiles WHERE guild_id = ? AND user_id != ? ORDER BY rowid",
                (guild_id, user_id),
            ).fetchall()
        return [self._row_to_profile(row) for row in rows]

    # -- history -----------------------------------------------------------

    def insert_message(self, message: HistoryMessage) -> None:
        """Append a message; a retried insert of the same id is ignored."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO messages (id, guild_id, channel_id, user_id, content, ts)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.guild_id,
                    message.channel_id,
                    message.user_id,
                    message.content,
                    _ts(message.created_at),
                ),
            )

    def recent_texts(self, guild_id: str, user_id: str, limit: int) -> str:
        """Return the newest ``limit`` messages of a member joined by spaces."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT content FROM messages
                WHERE guild_id = ? AND user_id = ?
                ORDER BY ts DESC
                LIMIT ?
                """,
                (guild_id, user_id, limit),
            ).fetchall()
        return " ".join(row["content"] or "" for row in rows)

    # -- matches -----------------------------------------------------------

    @staticmethod
    def _row_to_match(row: sqlite3.Row) -> MatchRecord:
        return MatchRecord(
            id=row["id"],
            guild_id=row["guild_id"],
            requester_id=row["requester_id"],
            candidate_id=row["candidate_id"],
            status=MatchStatus(row["status"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
            voice_channel_id=row["voice_channel_id"],
            started_at=_parse_ts(row["started_at"]),
            close_due_at=_parse_ts(row["close_due_at"]),
            closed_at=_parse_ts(row["closed_at"]),
        )

    def insert_match(self, record: MatchRecord) -> None:
        """Insert a match record once; repeated inserts of the same id are ignored."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO matches (id, guild_id, requester_id, candidate_id, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.guild_id,
                    record.requester_id,
                    record.candidate_id,
                    _column_value(record.status),
                    _ts(record.created_at),
                ),
            )

    def update_match(self, match_id: str, **fields) -> None:
        """Apply a partial update to an existing match and bump updated_at."""

        unknown = set(fields) - MATCH_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported match fields: {', '.join(sorted(unknown))}")
        if not fields:
            return

        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        values = [_column_value(fields[column]) for column in columns]
        values.append(_ts(datetime.now(timezone.utc)))
        values.append(match_id)
        with self._connect() as conn:
            conn.execute(
                f"UPDATE matches SET {assignments}, updated_at = ? WHERE id = ?",
                values,
            )

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return self._row_to_match(row) if row else None

    def list_open_matches(self) -> list[MatchRecord]:
        """Return proposed/cand_accepted records for registry rehydration."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM matches WHERE status IN (?, ?) ORDER BY created_at",
                (MatchStatus.PROPOSED.value, MatchStatus.CAND_ACCEPTED.value),
            ).fetchall()
        return [self._row_to_match(row) for row in rows]

    def list_due_rooms(self, now: datetime) -> list[MatchRecord]:
        """Return confirmed records whose room retention has elapsed."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM matches
                WHERE status = ? AND close_due_at IS NOT NULL AND close_due_at <= ?
                ORDER BY close_due_at
                """,
                (MatchStatus.CONFIRMED.value, _ts(now)),
            ).fetchall()
        return [self._row_to_match(row) for row in rows]
