"""
Pattern store: the operations the tool layer calls.

The store composes one ``PatternBackend`` with the relevance, reinforcement
and extraction rules. Scoring and synthesis never run inside a backend.
"""

from __future__ import annotations

from typing import Optional, Sequence

import shelf.config as config
from shelf.backends import PatternBackend, create_backend
from shelf.entities import (
    Episode,
    Pattern,
    PatternRelation,
    PatternSearchResult,
    RelationType,
    utcnow,
)
from shelf.services import extraction, relevance
from shelf.services.reinforcement import (
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    confidence_adjustment,
)
from shelf.services.seeds import sample_patterns

EXTRACTED_RELATION_STRENGTH = 0.5


class PatternStore:
    """Owns the canonical copy of every pattern and episode."""

    def __init__(self, backend: PatternBackend):
        self.backend = backend
        self._initialized = False

    @classmethod
    def create(cls, backend: Optional[PatternBackend] = None) -> "PatternStore":
        store = cls(backend or create_backend())
        store.initialize()
        return store

    def initialize(self) -> None:
        """Open the backend and seed sample patterns into an empty store."""
        if self._initialized:
            return
        self.backend.initialize()
        if self.backend.count_patterns() == 0:
            for pattern in sample_patterns():
                self.backend.save_pattern(pattern)
            config.logger.info(
                "sample_patterns_seeded",
                extra={"backend": self.backend.name},
            )
        self._initialized = True

    def close(self) -> None:
        self.backend.close()
        self._initialized = False

    # Patterns

    def save_pattern(self, pattern: Pattern) -> None:
        self.backend.save_pattern(pattern)

    def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        return self.backend.get_pattern(pattern_id)

    def get_all_patterns(self) -> list[Pattern]:
        return self.backend.list_patterns()

    def search_patterns(self, context: str) -> list[PatternSearchResult]:
        return relevance.search_patterns(self.backend.list_patterns(), context)

    def apply_pattern(self, pattern_id: str) -> Optional[Pattern]:
        """Record one use of a pattern; None when the id is unknown."""
        return self.backend.touch_pattern(pattern_id, utcnow())

    def reinforce_pattern(self, pattern_id: str, success: bool) -> None:
        self.backend.adjust_confidence(
            pattern_id,
            confidence_adjustment(success),
            CONFIDENCE_MIN,
            CONFIDENCE_MAX,
        )

    # Episodes

    def save_episode(self, episode: Episode) -> None:
        self.backend.save_episode(episode)

    def find_similar_episodes(
        self,
        context: str,
        limit: int = relevance.SIMILAR_EPISODES_DEFAULT_LIMIT,
    ) -> list[Episode]:
        return relevance.rank_similar_episodes(self.backend.list_episodes(), context, limit)

    def extract_pattern_from_episodes(
        self,
        episode_ids: Sequence[str],
        pattern_name: str,
        problem_statement: str,
    ) -> Optional[Pattern]:
        """Synthesize a pattern from stored episodes, link it to related patterns and save it.

        Unknown episode ids are skipped. Returns None when fewer than two
        episodes remain.
        """
        episodes = self.backend.get_episodes(episode_ids)
        pattern = extraction.extract_pattern(episodes, pattern_name, problem_statement)
        if pattern is None:
            return None

        related_ids = extraction.find_related_patterns(pattern, self.backend.list_patterns())
        pattern.relations = [
            PatternRelation(
                type=RelationType.leads_to,
                pattern_id=related_id,
                strength=EXTRACTED_RELATION_STRENGTH,
            )
            for related_id in related_ids
        ]
        self.backend.save_pattern(pattern)
        config.logger.info(
            "pattern_extracted",
            extra={
                "pattern_id": pattern.id,
                "episode_count": len(episodes),
                "related_count": len(related_ids),
            },
        )
        return pattern
