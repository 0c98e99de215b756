"""Topic preference scores from the reader's interaction history."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from tellme.core.content import Interaction, InteractionKind
from tellme.core.topics import Topic


@dataclass
class TopicStats:
    """Completed vs. abandoned counts for one topic."""

    fully_read: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.fully_read + self.skipped

    @property
    def completion_ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.fully_read / self.total


def collect_topic_stats(
    aggregates: Iterable[tuple[Topic, InteractionKind | str, int]],
) -> dict[Topic, TopicStats]:
    """Fold (topic, outcome, count) rows into per-topic stats.

    Rows with an unknown outcome kind are ignored.
    """
    stats: dict[Topic, TopicStats] = defaultdict(TopicStats)
    for topic, kind, count in aggregates:
        if kind == InteractionKind.FULLY_READ:
            stats[topic].fully_read += count
        elif kind == InteractionKind.SKIPPED:
            stats[topic].skipped += count
    return dict(stats)


def aggregate_preferences(
    aggregates: Iterable[tuple[Topic, InteractionKind | str, int]],
) -> dict[Topic, float]:
    """Map each topic with history to its completion ratio in [0.0, 1.0].

    Topics without any interaction are left out of the result rather than
    scored 0, so callers can tell "never shown" from "always skipped".
    """
    return {
        topic: topic_stats.completion_ratio
        for topic, topic_stats in collect_topic_stats(aggregates).items()
        if topic_stats.total > 0
    }


def preferences_from_interactions(
    interactions: Iterable[Interaction],
    topic_of: dict[int, Topic],
) -> dict[Topic, float]:
    """Same as ``aggregate_preferences`` for raw interactions.

    ``topic_of`` maps content ids to their topic; interactions on unknown
    content are ignored.
    """
    rows = [
        (topic_of[i.content_id], i.kind, 1)
        for i in interactions
        if i.content_id in topic_of
    ]
    return aggregate_preferences(rows)
