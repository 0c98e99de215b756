from __future__ import annotations

import logging
import os
import random
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from tellme.core.content import ContentUnit, Interaction, InteractionKind
from tellme.core.settings import Settings
from tellme.core.topics import Topic, parse_topic

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for stored data that cannot be read back."""


class MalformedTopicError(StorageError):
    """A stored topic identifier is not in the topic registry."""


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS content (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  topic TEXT NOT NULL,
  title TEXT NOT NULL,
  content TEXT NOT NULL,
  source_url TEXT NOT NULL,
  word_count INTEGER NOT NULL,
  created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_content_topic ON content(topic);

CREATE TABLE IF NOT EXISTS user_interactions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  content_id INTEGER NOT NULL REFERENCES content(id),
  interaction_type TEXT NOT NULL,
  timestamp TEXT NOT NULL,
  duration_seconds INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_interactions_content_id ON user_interactions(content_id);
"""

CONTENT_COLUMNS = "id, topic, title, content, source_url, word_count, created_at"


def _decode_topic(value: Any) -> Topic:
    try:
        return parse_topic(value)
    except ValueError as e:
        raise MalformedTopicError(f"Unknown topic in database: {value!r}") from e


def _format_datetime(value: datetime) -> str:
    # Stored as UTC so timestamps sort correctly as text
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_content(row: sqlite3.Row | tuple) -> ContentUnit:
    """Convert a content row (CONTENT_COLUMNS order) to a ContentUnit."""
    return ContentUnit(
        id=row[0],
        topic=_decode_topic(row[1]),
        title=row[2],
        body=row[3],
        source_url=row[4],
        created_at=_parse_datetime(row[6]),
    )


@dataclass
class DB:
    conn: sqlite3.Connection

    def init(self) -> None:
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    # ==================== Content ====================

    def insert_content(self, unit: ContentUnit) -> ContentUnit:
        """Store a content unit. Returns a copy carrying the assigned id."""
        cur = self.conn.execute(
            """
            INSERT INTO content (topic, title, content, source_url, word_count, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (
                unit.topic.value,
                unit.title,
                unit.body,
                unit.source_url,
                unit.word_count,
                _format_datetime(unit.created_at),
            ),
        )
        content_id = cur.fetchone()[0]
        self.conn.commit()
        return unit.with_id(content_id)

    def get_content(self, content_id: int) -> ContentUnit | None:
        cur = self.conn.execute(
            f"SELECT {CONTENT_COLUMNS} FROM content WHERE id = ?",
            (content_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        return _row_to_content(row)

    def content_count(self, topic: Topic | None = None) -> int:
        if topic is None:
            cur = self.conn.execute("SELECT COUNT(*) FROM content")
        else:
            cur = self.conn.execute(
                "SELECT COUNT(*) FROM content WHERE topic = ?", (topic.value,)
            )
        return cur.fetchone()[0]

    def random_content(self, rng: random.Random | None = None) -> ContentUnit | None:
        """Uniform pick across all stored content, or None if there is none."""
        return self._random_row(None, rng)

    def random_content_for_topic(
        self, topic: Topic, rng: random.Random | None = None
    ) -> ContentUnit | None:
        """Uniform pick among one topic's content, or None if it has none."""
        return self._random_row(topic, rng)

    def _random_row(
        self, topic: Topic | None, rng: random.Random | None
    ) -> ContentUnit | None:
        # Offset into an id-ordered scan so that a seeded rng is reproducible
        count = self.content_count(topic)
        if count == 0:
            return None
        offset = (rng or random).randrange(count)
        if topic is None:
            cur = self.conn.execute(
                f"SELECT {CONTENT_COLUMNS} FROM content ORDER BY id LIMIT 1 OFFSET ?",
                (offset,),
            )
        else:
            cur = self.conn.execute(
                f"""
                SELECT {CONTENT_COLUMNS} FROM content
                WHERE topic = ?
                ORDER BY id
                LIMIT 1 OFFSET ?
                """,
                (topic.value, offset),
            )
        row = cur.fetchone()
        if not row:
            return None
        return _row_to_content(row)

    def content_counts_by_topic(self) -> dict[Topic, int]:
        cur = self.conn.execute(
            "SELECT topic, COUNT(*) FROM content GROUP BY topic"
        )
        return {_decode_topic(r[0]): r[1] for r in cur.fetchall()}

    def has_content_for_all_topics(self) -> bool:
        cur = self.conn.execute("SELECT COUNT(DISTINCT topic) FROM content")
        return cur.fetchone()[0] == len(Topic.all())

    # ==================== Interactions ====================

    def record_interaction(self, interaction: Interaction) -> None:
        """Append an interaction to the log."""
        self.conn.execute(
            """
            INSERT INTO user_interactions (content_id, interaction_type, timestamp, duration_seconds)
            VALUES (?, ?, ?, ?)
            """,
            (
                interaction.content_id,
                interaction.kind.value,
                _format_datetime(interaction.timestamp),
                interaction.duration_seconds,
            ),
        )
        self.conn.commit()

    def interaction_count(self) -> int:
        cur = self.conn.execute("SELECT COUNT(*) FROM user_interactions")
        return cur.fetchone()[0]

    def recent_topics(self, limit: int) -> list[Topic]:
        """Topics of the most recent interactions, most recent first."""
        cur = self.conn.execute(
            """
            SELECT c.topic FROM user_interactions ui
            JOIN content c ON ui.content_id = c.id
            ORDER BY ui.timestamp DESC, ui.id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [_decode_topic(r[0]) for r in cur.fetchall()]

    def interaction_count_for_topic(self, topic: Topic) -> int:
        cur = self.conn.execute(
            """
            SELECT COUNT(*) FROM user_interactions ui
            JOIN content c ON ui.content_id = c.id
            WHERE c.topic = ?
            """,
            (topic.value,),
        )
        return cur.fetchone()[0]

    def interaction_counts_by_topic(self) -> dict[Topic, int]:
        """Total interactions per topic; topics without any are absent."""
        cur = self.conn.execute(
            """
            SELECT c.topic, COUNT(*) FROM user_interactions ui
            JOIN content c ON ui.content_id = c.id
            GROUP BY c.topic
            """
        )
        return {_decode_topic(r[0]): r[1] for r in cur.fetchall()}

    def interaction_aggregates(self) -> list[tuple[Topic, InteractionKind | str, int]]:
        """(topic, outcome, count) for every topic/outcome pair in the log.

        Unknown outcome strings are passed through as-is.
        """
        cur = self.conn.execute(
            """
            SELECT c.topic, ui.interaction_type, COUNT(*)
            FROM user_interactions ui
            JOIN content c ON ui.content_id = c.id
            GROUP BY c.topic, ui.interaction_type
            """
        )
        rows: list[tuple[Topic, InteractionKind | str, int]] = []
        for topic, kind, count in cur.fetchall():
            try:
                kind = InteractionKind(kind)
            except ValueError:
                logger.warning(f"Ignoring unknown interaction type {kind!r}")
            rows.append((_decode_topic(topic), kind, count))
        return rows

    def get_stats(self) -> dict[str, Any]:
        counts = self.content_counts_by_topic()
        return {
            "total_content": self.content_count(),
            "total_interactions": self.interaction_count(),
            "topics": {t.value: counts.get(t, 0) for t in Topic.all()},
        }

    def close(self) -> None:
        self.conn.close()


def open_db(db_path: str | None = None) -> DB:
    """Open (and create if needed) the SQLite database at ``db_path``.

    Defaults to ``Settings.from_env().db_path``. The connection may be used
    from several threads; callers serialize access (see ContentService).
    """
    path = db_path or Settings.from_env().db_path
    if path != ":memory:":
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    db = DB(conn=conn)
    db.init()
    logger.debug(f"Opened database at {path}")
    return db
