"""ContentService: the one entry point front ends use to read and record.

Wraps a storage handle in a lock so the web app's worker threads (or any
other concurrent caller) never have two requests in flight against the same
SQLite connection.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Any

from tellme.core.content import ContentUnit, Interaction
from tellme.core.selector import get_weighted_random_content
from tellme.core.storage import DB

logger = logging.getLogger(__name__)

# Reading for at least this long after the text was fully shown counts as read
MIN_READING_SECONDS = 3


class ContentNotFoundError(Exception):
    """Interaction refers to content that is not stored."""


def classify_reading(content_id: int, fully_displayed: bool, reading_time_seconds: int) -> Interaction:
    """Build the interaction for a unit the reader is leaving."""
    if fully_displayed and reading_time_seconds >= MIN_READING_SECONDS:
        return Interaction.fully_read(content_id, reading_time_seconds)
    return Interaction.skipped(content_id, reading_time_seconds)


class ContentService:
    """Serialized access to content selection and the interaction log. Thread-safe."""

    def __init__(self, db: DB, rng: random.Random | None = None) -> None:
        self._db = db
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    @property
    def db(self) -> DB:
        return self._db

    def get_weighted_random_content(self) -> ContentUnit | None:
        """Selector path only; None when the drawn topic has no content."""
        with self._lock:
            return get_weighted_random_content(self._db, self._rng)

    def next_content(self) -> ContentUnit | None:
        """Next unit to show, falling back to a uniform pick.

        Returns None only when nothing is stored at all.
        """
        with self._lock:
            unit = get_weighted_random_content(self._db, self._rng)
            if unit is None:
                logger.debug("Weighted pick found no content, falling back to random")
                unit = self._db.random_content(self._rng)
            return unit

    def record_interaction(
        self,
        content_id: int,
        fully_read: bool,
        duration_seconds: int,
    ) -> Interaction:
        """Append one interaction for a stored unit.

        Raises:
            ContentNotFoundError: If ``content_id`` is not stored.
        """
        if fully_read:
            interaction = Interaction.fully_read(content_id, duration_seconds)
        else:
            interaction = Interaction.skipped(content_id, duration_seconds)
        self.record(interaction)
        return interaction

    def record(self, interaction: Interaction) -> None:
        with self._lock:
            if self._db.get_content(interaction.content_id) is None:
                raise ContentNotFoundError(f"Content {interaction.content_id} not found")
            self._db.record_interaction(interaction)
        logger.info(
            f"Recorded {interaction.kind.value} for content {interaction.content_id} "
            f"({interaction.duration_seconds}s)"
        )

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return self._db.get_stats()

    def close(self) -> None:
        with self._lock:
            self._db.close()
