"""Content units, cleanup rules and reader interactions."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from tellme.core.topics import Topic

# Bracketed numeric citation markers, e.g. "[12]"
CITATION_PATTERN = re.compile(r"\[\d+\]")

# A unit is one or two paragraphs
MIN_WORDS = 30
MAX_WORDS = 800


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def count_words(text: str) -> int:
    return len(text.split())


def clean_content(text: str) -> str:
    """Strip citation markers and normalize paragraph spacing.

    - Remove markers like "[1]" (repeated until none remain, so "[[1]2]" goes too)
    - Trim every line and drop empty ones
    - Rejoin lines with a blank line between them

    Applying it twice gives the same result as applying it once.
    """
    while CITATION_PATTERN.search(text):
        text = CITATION_PATTERN.sub("", text)
    lines = (line.strip() for line in text.splitlines())
    return "\n\n".join(line for line in lines if line)


@dataclass(frozen=True)
class ContentUnit:
    """One displayable piece of text.

    ``word_count`` is derived from ``body`` and cannot be passed in; use
    ``dataclasses.replace`` (or ``cleaned()``) to get a unit with a new body and
    a recomputed count. ``id`` stays 0 until storage assigns one.
    """

    topic: Topic
    title: str
    body: str
    source_url: str
    id: int = 0
    created_at: datetime = field(default_factory=utcnow)
    word_count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "word_count", count_words(self.body))

    @property
    def is_suitable_length(self) -> bool:
        """True if the unit has between 30 and 800 words (inclusive)."""
        return MIN_WORDS <= self.word_count <= MAX_WORDS

    def cleaned(self) -> ContentUnit:
        """Return a copy with ``clean_content`` applied to the body."""
        return dataclasses.replace(self, body=clean_content(self.body))

    def with_id(self, content_id: int) -> ContentUnit:
        return dataclasses.replace(self, id=content_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "id": self.id,
            "topic": self.topic.value,
            "topic_name": self.topic.display_name,
            "title": self.title,
            "content": self.body,
            "source_url": self.source_url,
            "word_count": self.word_count,
            "created_at": self.created_at.isoformat(),
        }


class InteractionKind(str, Enum):
    """Outcome of showing a content unit to the reader."""

    FULLY_READ = "fully_read"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Interaction:
    """A reader finishing or abandoning a content unit."""

    kind: InteractionKind
    content_id: int
    duration_seconds: int
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def fully_read(cls, content_id: int, reading_time_seconds: int) -> Interaction:
        return cls(InteractionKind.FULLY_READ, content_id, reading_time_seconds)

    @classmethod
    def skipped(cls, content_id: int, skip_time_seconds: int) -> Interaction:
        return cls(InteractionKind.SKIPPED, content_id, skip_time_seconds)

    @property
    def is_positive(self) -> bool:
        return self.kind == InteractionKind.FULLY_READ

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content_id": self.content_id,
            "duration_seconds": self.duration_seconds,
            "timestamp": self.timestamp.isoformat(),
        }
