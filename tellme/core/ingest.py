"""Ingestion of Wikipedia articles into content units.

Provides:
- split_article() turning one extract into suitable, cleaned units
- Quality policies deciding which units are worth storing
- fetch_topic_content() / run_ingest() driving the Wikipedia client
"""

from __future__ import annotations

import logging
import random
import re
import sqlite3
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tellme.core.content import ContentUnit
from tellme.core.topics import Topic
from tellme.providers.wikipedia import WikipediaClient, WikipediaError

if TYPE_CHECKING:
    from tellme.core.storage import DB

logger = logging.getLogger(__name__)

# Whole extracts within these bounds (chars) are tried as a single unit first
WHOLE_EXTRACT_MIN_CHARS = 100
WHOLE_EXTRACT_MAX_CHARS = 3000

# Paragraphs shorter than this are dropped before merging
MIN_PARAGRAPH_CHARS = 30

# Paragraphs are merged until a chunk reaches this size
TARGET_CHUNK_CHARS = 400

SEARCH_LIMIT = 50

SKIPPED_TITLE_MARKERS = ("disambiguation", "List of")

QualityPolicy = Callable[[ContentUnit], bool]


class SuitableLengthPolicy:
    """Keep units between 30 and 800 words."""

    def __call__(self, unit: ContentUnit) -> bool:
        return unit.is_suitable_length


DEFAULT_INTERESTING_WORDS = frozenset({
    "discovered", "mysterious", "legend", "secret", "unusual", "famous",
    "first", "largest", "oldest", "believed", "ancient", "revealed",
    "unknown", "theory", "remarkable", "strange",
})

DEFAULT_BORING_PHRASES = frozenset({
    "may refer to", "census", "population", "municipality", "commune",
    "railway station", "is a village", "is a town", "electoral district",
})

WORD_PATTERN = re.compile(r"[a-z']+")


class KeywordQualityPolicy:
    """Length check plus a keyword heuristic for "interesting" text.

    A unit passes if it is of suitable length, mentions at least
    ``min_interesting`` interesting words, and has no more boring phrases than
    ``max_boring``. Word lists and thresholds are arbitrary, so they are all
    constructor arguments.
    """

    def __init__(
        self,
        interesting_words: Iterable[str] = DEFAULT_INTERESTING_WORDS,
        boring_phrases: Iterable[str] = DEFAULT_BORING_PHRASES,
        *,
        min_interesting: int = 1,
        max_boring: int = 0,
    ) -> None:
        self.interesting_words = frozenset(w.lower() for w in interesting_words)
        self.boring_phrases = tuple(p.lower() for p in boring_phrases)
        self.min_interesting = min_interesting
        self.max_boring = max_boring

    def score(self, text: str) -> tuple[int, int]:
        """(interesting word hits, boring phrase hits) for ``text``."""
        lowered = text.lower()
        interesting = sum(1 for w in WORD_PATTERN.findall(lowered) if w in self.interesting_words)
        boring = sum(lowered.count(p) for p in self.boring_phrases)
        return interesting, boring

    def __call__(self, unit: ContentUnit) -> bool:
        if not unit.is_suitable_length:
            return False
        interesting, boring = self.score(f"{unit.title}\n{unit.body}")
        return interesting >= self.min_interesting and boring <= self.max_boring


def should_skip_title(title: str) -> bool:
    return any(marker in title for marker in SKIPPED_TITLE_MARKERS)


def _merge_paragraphs(paragraphs: Sequence[str]) -> list[str]:
    """Greedily join consecutive paragraphs until each chunk reaches TARGET_CHUNK_CHARS."""
    chunks: list[str] = []
    i = 0
    while i < len(paragraphs):
        chunk = paragraphs[i]
        j = i + 1
        while j < len(paragraphs) and len(chunk) < TARGET_CHUNK_CHARS:
            chunk = f"{chunk}\n\n{paragraphs[j]}"
            j += 1
        chunks.append(chunk)
        i = j
    return chunks


def split_article(
    topic: Topic,
    title: str,
    text: str,
    source_url: str,
    policy: QualityPolicy | None = None,
) -> list[ContentUnit]:
    """Turn one article extract into cleaned units accepted by ``policy``.

    A short enough extract is kept whole if it passes; otherwise its
    paragraphs are merged into chunks of roughly TARGET_CHUNK_CHARS.
    """
    policy = policy or SuitableLengthPolicy()

    if WHOLE_EXTRACT_MIN_CHARS < len(text) < WHOLE_EXTRACT_MAX_CHARS:
        whole = ContentUnit(topic=topic, title=title, body=text, source_url=source_url).cleaned()
        if policy(whole):
            return [whole]

    paragraphs = [
        p.strip()
        for p in text.split("\n\n")
        if p.strip() and len(p.strip()) > MIN_PARAGRAPH_CHARS
    ]

    units: list[ContentUnit] = []
    for chunk in _merge_paragraphs(paragraphs):
        unit = ContentUnit(topic=topic, title=title, body=chunk, source_url=source_url).cleaned()
        if policy(unit):
            units.append(unit)
    return units


@dataclass
class IngestResult:
    """Outcome of ingesting one topic."""

    topic: Topic
    units_added: int = 0
    articles_seen: int = 0
    articles_skipped: int = 0
    articles_failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic.value,
            "units_added": self.units_added,
            "articles_seen": self.articles_seen,
            "articles_skipped": self.articles_skipped,
            "articles_failed": self.articles_failed,
            "errors": list(self.errors),
        }


def fetch_topic_content(
    client: WikipediaClient,
    db: "DB",
    topic: Topic,
    target_count: int,
    *,
    policy: QualityPolicy | None = None,
    request_delay: float = 0.5,
    search_limit: int = SEARCH_LIMIT,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestResult:
    """Fetch and store up to ``target_count`` units for one topic.

    Walks the topic's search queries in order. A failing search aborts the
    topic; a failing article or insert is logged and skipped.

    Raises:
        WikipediaError: If a search request fails.
    """
    logger.info(f"Fetching content for {topic.display_name}")
    result = IngestResult(topic=topic)

    for query in topic.search_queries:
        if result.units_added >= target_count:
            break

        for title in client.search_articles(query, search_limit):
            if result.units_added >= target_count:
                break

            if should_skip_title(title):
                result.articles_skipped += 1
                continue

            sleep(request_delay)
            result.articles_seen += 1

            try:
                extract = client.get_article_extract(title)
            except WikipediaError as e:
                result.articles_failed += 1
                result.errors.append(f"{title}: {e}")
                logger.warning(f"Error fetching '{title}': {e}")
                continue

            if extract is None:
                logger.debug(f"No content found for '{title}'")
                continue

            units = split_article(topic, extract.title, extract.text, extract.url, policy)
            for unit in units:
                try:
                    stored = db.insert_content(unit)
                except sqlite3.Error as e:
                    result.errors.append(f"{title}: {e}")
                    logger.error(f"Failed to save unit from '{title}': {e}")
                    continue
                result.units_added += 1
                logger.debug(f"Added unit {stored.id} from '{title}'")
                if result.units_added >= target_count:
                    break

    logger.info(f"Fetched {result.units_added} units for {topic.display_name}")
    return result


def run_ingest(
    client: WikipediaClient,
    db: "DB",
    topics: Sequence[Topic] | None = None,
    units_per_topic: int = 150,
    *,
    policy: QualityPolicy | None = None,
    request_delay: float = 0.5,
    topic_delay: float = 1.0,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[IngestResult]:
    """Ingest every topic in shuffled order.

    A topic that fails (search error) is logged and the run moves on.
    """
    order = list(topics or Topic.all())
    (rng or random.Random()).shuffle(order)

    results: list[IngestResult] = []
    for topic in order:
        try:
            result = fetch_topic_content(
                client,
                db,
                topic,
                units_per_topic,
                policy=policy,
                request_delay=request_delay,
                sleep=sleep,
            )
        except WikipediaError as e:
            logger.error(f"Error fetching content for {topic.display_name}: {e}")
            result = IngestResult(topic=topic, errors=[str(e)])
        results.append(result)
        sleep(topic_delay)

    total = sum(r.units_added for r in results)
    logger.info(f"Ingest finished: {total} units added across {len(results)} topics")
    return results
