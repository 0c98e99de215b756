"""Diversity-weighted topic selection.

Turns preference scores into a sampling weight per topic:

1. Base score: the topic's completion ratio, or DEFAULT_SCORE if it has none
2. Recency penalty: multiplied by RECENCY_PENALTIES[i] if the topic was the
   i-th most recently shown (most recent match only)
3. Exploration bonus: +EXPLORATION_BONUS for topics with fewer than
   EXPLORATION_THRESHOLD interactions
4. Floor: never below SCORE_FLOOR, so every topic stays reachable

Then draws one topic proportionally to its weight. Topics are visited in
order of their stable identifier, so a seeded ``random.Random`` gives
reproducible picks.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from tellme.core.content import ContentUnit
from tellme.core.preferences import aggregate_preferences
from tellme.core.topics import Topic

if TYPE_CHECKING:
    from tellme.core.storage import DB

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 0.3  # Unrated topics beat disliked ones
RECENCY_PENALTIES = (0.1, 0.3, 0.6, 0.8, 0.9)
RECENT_WINDOW = len(RECENCY_PENALTIES)
EXPLORATION_THRESHOLD = 3
EXPLORATION_BONUS = 0.2
SCORE_FLOOR = 0.05


def recency_factor(topic: Topic, recent_topics: Sequence[Topic]) -> float:
    """Penalty multiplier for a topic given the recent list (most recent first)."""
    for position, recent in enumerate(recent_topics[:RECENT_WINDOW]):
        if recent == topic:
            return RECENCY_PENALTIES[position]
    return 1.0


def score_topics(
    preferences: Mapping[Topic, float],
    recent_topics: Sequence[Topic],
    interaction_counts: Mapping[Topic, int],
    topics: Sequence[Topic] | None = None,
) -> dict[Topic, float]:
    """Compute the sampling weight of every topic.

    Args:
        preferences: Completion ratio per topic (topics without history absent)
        recent_topics: Recently shown topics, most recent first
        interaction_counts: Total interactions per topic (missing means 0)
        topics: Candidate topics, defaults to the whole registry

    Returns:
        Weight per topic, ordered by stable identifier, each >= SCORE_FLOOR
    """
    candidates = sorted(Topic.all() if topics is None else topics, key=lambda t: t.value)
    scores: dict[Topic, float] = {}
    for topic in candidates:
        score = preferences.get(topic, DEFAULT_SCORE)
        score *= recency_factor(topic, recent_topics)
        if interaction_counts.get(topic, 0) < EXPLORATION_THRESHOLD:
            score += EXPLORATION_BONUS
        scores[topic] = max(score, SCORE_FLOOR)
    return scores


def weighted_choice(
    scores: Mapping[Topic, float],
    rng: random.Random | None = None,
) -> Topic:
    """Draw one topic with probability proportional to its weight.

    Walks the topics in identifier order, subtracting each weight from a
    uniform draw in [0, total) until the remainder drops to 0 or below.

    Raises:
        ValueError: If ``scores`` is empty.
    """
    if not scores:
        raise ValueError("Cannot choose from an empty score mapping")
    rng = rng or random.Random()

    ordered = sorted(scores.items(), key=lambda item: item[0].value)
    total = sum(weight for _, weight in ordered)
    remainder = rng.random() * total
    for topic, weight in ordered:
        remainder -= weight
        if remainder <= 0:
            return topic

    # Float rounding can leave a sliver after the last topic
    return ordered[-1][0]


def select_topic(
    preferences: Mapping[Topic, float],
    recent_topics: Sequence[Topic],
    interaction_counts: Mapping[Topic, int],
    rng: random.Random | None = None,
) -> Topic:
    """Score all topics and draw one."""
    scores = score_topics(preferences, recent_topics, interaction_counts)
    topic = weighted_choice(scores, rng)
    logger.debug(
        f"Selected topic {topic.value} (weight {scores[topic]:.2f} of {sum(scores.values()):.2f})"
    )
    return topic


def get_weighted_random_content(
    db: "DB",
    rng: random.Random | None = None,
) -> ContentUnit | None:
    """Pick the next content unit for the reader.

    With no interaction history at all, falls back to a uniform pick across
    all stored content. Otherwise draws a topic and a uniform unit from it.

    Returns:
        The unit, or None if nothing is stored (for the drawn topic, or at all
        on the unweighted path). Storage errors propagate unchanged.
    """
    preferences = aggregate_preferences(db.interaction_aggregates())
    if not preferences:
        return db.random_content(rng)

    recent = db.recent_topics(RECENT_WINDOW)
    counts = db.interaction_counts_by_topic()
    topic = select_topic(preferences, recent, counts, rng)
    return db.random_content_for_topic(topic, rng)
