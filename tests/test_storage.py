"""Tests for storage.py"""

import random
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from tellme.core.content import ContentUnit, Interaction, InteractionKind
from tellme.core.storage import DB, MalformedTopicError, StorageError, open_db
from tellme.core.topics import Topic


@pytest.fixture
def db():
    """In-memory database with schema."""
    database = open_db(":memory:")
    yield database
    database.close()


def make_unit(topic: Topic = Topic.HISTORY, title: str = "Rome") -> ContentUnit:
    return ContentUnit(
        topic=topic,
        title=title,
        body="Rome was founded in 753 BC. " * 6,
        source_url=f"https://en.wikipedia.org/wiki/{title}",
    )


def insert_raw_topic(db: DB, topic: str) -> int:
    cur = db.conn.execute(
        """
        INSERT INTO content (topic, title, content, source_url, word_count, created_at)
        VALUES (?, 'Bad', 'text', 'u', 1, '2026-01-01T00:00:00+00:00')
        """,
        (topic,),
    )
    db.conn.commit()
    return cur.lastrowid


class TestOpenDb:
    """Tests for open_db()."""

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "tellme.db"
        database = open_db(str(path))
        try:
            assert path.exists()
            assert database.content_count() == 0
        finally:
            database.close()

    def test_init_is_idempotent(self, tmp_path):
        path = str(tmp_path / "tellme.db")
        first = open_db(path)
        first.insert_content(make_unit())
        first.close()

        second = open_db(path)
        try:
            assert second.content_count() == 1
        finally:
            second.close()

    def test_uses_settings_path_by_default(self, tmp_path, monkeypatch):
        path = tmp_path / "from_env.db"
        monkeypatch.setenv("DB_PATH", str(path))
        database = open_db()
        try:
            assert path.exists()
        finally:
            database.close()


class TestContent:
    """Tests for content rows."""

    def test_insert_assigns_id(self, db):
        stored = db.insert_content(make_unit())
        assert stored.id > 0
        assert db.content_count() == 1

    def test_ids_are_unique(self, db):
        ids = {db.insert_content(make_unit(title=f"t{i}")).id for i in range(5)}
        assert len(ids) == 5

    def test_get_content_round_trip(self, db):
        unit = make_unit(Topic.MYSTERIES, "Stonehenge")
        stored = db.insert_content(unit)
        loaded = db.get_content(stored.id)
        assert loaded == stored
        assert loaded.topic is Topic.MYSTERIES
        assert loaded.word_count == unit.word_count
        assert loaded.created_at.tzinfo is not None

    def test_get_missing_content(self, db):
        assert db.get_content(12345) is None

    def test_content_count_per_topic(self, db):
        db.insert_content(make_unit(Topic.HISTORY, "a"))
        db.insert_content(make_unit(Topic.HISTORY, "b"))
        db.insert_content(make_unit(Topic.SCIENCE, "c"))
        assert db.content_count(Topic.HISTORY) == 2
        assert db.content_count(Topic.SCIENCE) == 1
        assert db.content_count(Topic.CRIMES) == 0
        assert db.content_counts_by_topic() == {Topic.HISTORY: 2, Topic.SCIENCE: 1}

    def test_has_content_for_all_topics(self, db):
        for topic in Topic.all()[:-1]:
            db.insert_content(make_unit(topic, topic.value))
        assert db.has_content_for_all_topics() is False
        last = Topic.all()[-1]
        db.insert_content(make_unit(last, last.value))
        assert db.has_content_for_all_topics() is True

    def test_naive_timestamp_read_as_utc(self, db):
        cur = db.conn.execute(
            """
            INSERT INTO content (topic, title, content, source_url, word_count, created_at)
            VALUES ('facts', 'Naive', 'text', 'u', 1, '2026-01-01T12:00:00')
            """
        )
        db.conn.commit()
        unit = db.get_content(cur.lastrowid)
        assert unit.created_at == datetime(2026, 1, 1, 12, tzinfo=timezone.utc)


class TestRandomContent:
    """Tests for the uniform random picks."""

    def test_empty_database(self, db):
        assert db.random_content() is None
        assert db.random_content_for_topic(Topic.HISTORY) is None

    def test_topic_without_content(self, db):
        db.insert_content(make_unit(Topic.HISTORY))
        assert db.random_content_for_topic(Topic.SCIENCE) is None

    def test_pick_stays_within_topic(self, db):
        db.insert_content(make_unit(Topic.HISTORY, "h1"))
        db.insert_content(make_unit(Topic.HISTORY, "h2"))
        db.insert_content(make_unit(Topic.SCIENCE, "s1"))
        rng = random.Random(4)
        for _ in range(50):
            assert db.random_content_for_topic(Topic.HISTORY, rng).topic is Topic.HISTORY

    def test_every_unit_reachable(self, db):
        ids = {db.insert_content(make_unit(title=f"t{i}")).id for i in range(4)}
        rng = random.Random(17)
        seen = {db.random_content(rng).id for _ in range(200)}
        assert seen == ids

    def test_seeded_picks_reproducible(self, db):
        for i in range(10):
            db.insert_content(make_unit(title=f"t{i}"))
        first = [db.random_content(random.Random(2)).id for _ in range(5)]
        second = [db.random_content(random.Random(2)).id for _ in range(5)]
        assert first == second


class TestInteractions:
    """Tests for the interaction log."""

    def test_record_and_count(self, db):
        unit = db.insert_content(make_unit())
        db.record_interaction(Interaction.fully_read(unit.id, 20))
        db.record_interaction(Interaction.skipped(unit.id, 1))
        assert db.interaction_count() == 2

    def test_recent_topics_most_recent_first(self, db):
        history = db.insert_content(make_unit(Topic.HISTORY, "h"))
        science = db.insert_content(make_unit(Topic.SCIENCE, "s"))
        crimes = db.insert_content(make_unit(Topic.CRIMES, "c"))
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        for offset, unit in enumerate([history, science, crimes]):
            db.record_interaction(
                Interaction(InteractionKind.FULLY_READ, unit.id, 10, base + timedelta(minutes=offset))
            )
        assert db.recent_topics(5) == [Topic.CRIMES, Topic.SCIENCE, Topic.HISTORY]
        assert db.recent_topics(2) == [Topic.CRIMES, Topic.SCIENCE]

    def test_recent_topics_same_timestamp_uses_insert_order(self, db):
        history = db.insert_content(make_unit(Topic.HISTORY, "h"))
        science = db.insert_content(make_unit(Topic.SCIENCE, "s"))
        when = datetime(2026, 3, 1, tzinfo=timezone.utc)
        db.record_interaction(Interaction(InteractionKind.SKIPPED, history.id, 1, when))
        db.record_interaction(Interaction(InteractionKind.SKIPPED, science.id, 1, when))
        assert db.recent_topics(5) == [Topic.SCIENCE, Topic.HISTORY]

    def test_recent_topics_mixed_utc_offsets(self, db):
        history = db.insert_content(make_unit(Topic.HISTORY, "h"))
        science = db.insert_content(make_unit(Topic.SCIENCE, "s"))
        berlin = timezone(timedelta(hours=2))
        # 10:00+02:00 is 08:00Z, an hour before the science read
        db.record_interaction(
            Interaction(InteractionKind.FULLY_READ, history.id, 10, datetime(2026, 3, 1, 10, tzinfo=berlin))
        )
        db.record_interaction(
            Interaction(InteractionKind.FULLY_READ, science.id, 10, datetime(2026, 3, 1, 9, tzinfo=timezone.utc))
        )
        assert db.recent_topics(5) == [Topic.SCIENCE, Topic.HISTORY]

    def test_timestamps_stored_as_utc(self, db):
        unit = db.insert_content(make_unit())
        local = datetime(2026, 3, 1, 10, tzinfo=timezone(timedelta(hours=-5)))
        db.record_interaction(Interaction(InteractionKind.SKIPPED, unit.id, 1, local))
        stored = db.conn.execute("SELECT timestamp FROM user_interactions").fetchone()[0]
        assert stored == "2026-03-01T15:00:00+00:00"

    def test_recent_topics_empty(self, db):
        assert db.recent_topics(5) == []

    def test_interaction_counts_by_topic(self, db):
        history = db.insert_content(make_unit(Topic.HISTORY, "h"))
        science = db.insert_content(make_unit(Topic.SCIENCE, "s"))
        for _ in range(3):
            db.record_interaction(Interaction.fully_read(history.id, 10))
        db.record_interaction(Interaction.skipped(science.id, 1))
        assert db.interaction_counts_by_topic() == {Topic.HISTORY: 3, Topic.SCIENCE: 1}
        assert db.interaction_count_for_topic(Topic.HISTORY) == 3
        assert db.interaction_count_for_topic(Topic.FACTS) == 0

    def test_interaction_aggregates(self, db):
        history = db.insert_content(make_unit(Topic.HISTORY, "h"))
        db.record_interaction(Interaction.fully_read(history.id, 10))
        db.record_interaction(Interaction.fully_read(history.id, 12))
        db.record_interaction(Interaction.skipped(history.id, 1))
        rows = sorted(db.interaction_aggregates(), key=lambda r: r[1].value)
        assert rows == [
            (Topic.HISTORY, InteractionKind.FULLY_READ, 2),
            (Topic.HISTORY, InteractionKind.SKIPPED, 1),
        ]

    def test_unknown_interaction_type_passed_through(self, db):
        unit = db.insert_content(make_unit(Topic.FACTS, "f"))
        db.conn.execute(
            """
            INSERT INTO user_interactions (content_id, interaction_type, timestamp, duration_seconds)
            VALUES (?, 'bookmarked', '2026-01-01T00:00:00+00:00', 0)
            """,
            (unit.id,),
        )
        db.conn.commit()
        assert db.interaction_aggregates() == [(Topic.FACTS, "bookmarked", 1)]


class TestMalformedTopics:
    """Stored topic values outside the registry surface as storage errors."""

    def test_get_content(self, db):
        content_id = insert_raw_topic(db, "astrology")
        with pytest.raises(MalformedTopicError):
            db.get_content(content_id)

    def test_is_storage_error(self, db):
        insert_raw_topic(db, "astrology")
        with pytest.raises(StorageError):
            db.get_stats()

    def test_recent_topics(self, db):
        content_id = insert_raw_topic(db, "")
        db.record_interaction(Interaction.skipped(content_id, 0))
        with pytest.raises(MalformedTopicError):
            db.recent_topics(5)

    def test_closed_connection_raises_sqlite_error(self, db):
        db.close()
        with pytest.raises(sqlite3.ProgrammingError):
            db.content_count()


class TestStats:
    """Tests for get_stats()."""

    def test_empty(self, db):
        stats = db.get_stats()
        assert stats["total_content"] == 0
        assert stats["total_interactions"] == 0
        assert set(stats["topics"]) == {t.value for t in Topic}
        assert all(count == 0 for count in stats["topics"].values())

    def test_counts(self, db):
        unit = db.insert_content(make_unit(Topic.PHILOSOPHY, "p"))
        db.insert_content(make_unit(Topic.PHILOSOPHY, "q"))
        db.record_interaction(Interaction.fully_read(unit.id, 9))
        stats = db.get_stats()
        assert stats["total_content"] == 2
        assert stats["total_interactions"] == 1
        assert stats["topics"]["philosophy"] == 2
        assert stats["topics"]["history"] == 0
