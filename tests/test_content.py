"""Tests for content.py"""

import dataclasses
from datetime import datetime, timezone

import pytest

from tellme.core.content import (
    ContentUnit,
    Interaction,
    InteractionKind,
    clean_content,
    count_words,
)
from tellme.core.topics import Topic


def make_unit(body: str, topic: Topic = Topic.HISTORY) -> ContentUnit:
    return ContentUnit(
        topic=topic,
        title="Test Title",
        body=body,
        source_url="https://en.wikipedia.org/wiki/Test",
    )


def words(n: int) -> str:
    return " ".join(f"word{i}" for i in range(n))


class TestContentUnit:
    """Tests for ContentUnit construction and derived fields."""

    def test_word_count_from_body(self):
        unit = make_unit("one two\tthree\n\nfour   five")
        assert unit.word_count == 5

    def test_empty_body_has_zero_words(self):
        assert make_unit("").word_count == 0

    def test_new_unit_has_pending_id(self):
        unit = make_unit("some text")
        assert unit.id == 0

    def test_created_at_is_utc_now(self):
        before = datetime.now(timezone.utc)
        unit = make_unit("some text")
        after = datetime.now(timezone.utc)
        assert before <= unit.created_at <= after

    def test_word_count_not_settable(self):
        with pytest.raises(TypeError):
            ContentUnit(
                topic=Topic.SCIENCE,
                title="t",
                body="a b c",
                source_url="u",
                word_count=99,
            )

    def test_replace_body_recomputes_word_count(self):
        unit = make_unit("a b c")
        replaced = dataclasses.replace(unit, body="a b c d e")
        assert replaced.word_count == 5
        assert unit.word_count == 3

    def test_units_are_immutable(self):
        unit = make_unit("a b c")
        with pytest.raises(dataclasses.FrozenInstanceError):
            unit.body = "changed"

    def test_with_id(self):
        unit = make_unit("a b c")
        stored = unit.with_id(42)
        assert stored.id == 42
        assert stored.body == unit.body
        assert stored.created_at == unit.created_at
        assert unit.id == 0

    def test_to_dict(self):
        d = make_unit("a b c", topic=Topic.CRIMES).with_id(7).to_dict()
        assert d["id"] == 7
        assert d["topic"] == "crimes"
        assert d["topic_name"] == "Unsolved Crimes"
        assert d["content"] == "a b c"
        assert d["word_count"] == 3


class TestSuitability:
    """Word-count boundaries for suitable units."""

    @pytest.mark.parametrize(
        "n, expected",
        [(29, False), (30, True), (400, True), (800, True), (801, False)],
    )
    def test_boundaries(self, n, expected):
        assert make_unit(words(n)).is_suitable_length is expected


class TestCleanContent:
    """Tests for clean_content()."""

    def test_strips_citations(self):
        assert clean_content("Rome was founded[1] in 753 BC.[12]") == "Rome was founded in 753 BC."

    def test_keeps_non_numeric_brackets(self):
        assert clean_content("See [note] and [a1]") == "See [note] and [a1]"

    def test_trims_lines_and_drops_empty(self):
        text = "  First line.  \n\n\n   \nSecond line.\r\n\tThird line.\t"
        assert clean_content(text) == "First line.\n\nSecond line.\n\nThird line."

    def test_nested_citation_removed_completely(self):
        assert clean_content("Text[[1]2] here") == "Text here"

    def test_line_of_only_citations_dropped(self):
        assert clean_content("Intro\n[1][2]\nOutro") == "Intro\n\nOutro"

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "plain",
            "a[1]b\n\n\n c [2] ",
            "[[3]4]\n  [5]  \nend",
            "line one\nline two\n\nline three",
            " odd\x0bseparators\x1cin text\r\n",
            "[1[2]]",
        ],
    )
    def test_idempotent(self, text):
        once = clean_content(text)
        assert clean_content(once) == once

    def test_cleaned_unit_recomputes_word_count(self):
        unit = make_unit("alpha [1] beta [2]\n\n\ngamma")
        cleaned = unit.cleaned()
        assert cleaned.body == "alpha  beta\n\ngamma"
        assert cleaned.word_count == count_words(cleaned.body) == 3


class TestInteraction:
    """Tests for the read/skip interaction variant."""

    def test_fully_read(self):
        interaction = Interaction.fully_read(5, 42)
        assert interaction.kind == InteractionKind.FULLY_READ
        assert interaction.content_id == 5
        assert interaction.duration_seconds == 42
        assert interaction.is_positive is True

    def test_skipped(self):
        interaction = Interaction.skipped(6, 1)
        assert interaction.kind == InteractionKind.SKIPPED
        assert interaction.content_id == 6
        assert interaction.is_positive is False

    def test_timestamp_is_set(self):
        interaction = Interaction.skipped(1, 0)
        assert interaction.timestamp.tzinfo is not None

    def test_to_dict(self):
        d = Interaction.fully_read(3, 10).to_dict()
        assert d["kind"] == "fully_read"
        assert d["content_id"] == 3
        assert d["duration_seconds"] == 10
