"""
Shelf Database Models
PostgreSQL / SQLite schema for patterns and episodes
"""

from sqlalchemy import (
    Column, Integer, String, Text, Float, DateTime, CheckConstraint, Index, JSON
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

from shelf.entities import (
    Episode,
    Pattern,
    PatternExample,
    PatternRelation,
    utcnow,
)

JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")

Base = declarative_base()


# =============================================================================
# Patterns
# =============================================================================

class PatternRecord(Base):
    __tablename__ = "patterns"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    context = Column(JSON_TYPE, nullable=False, default=list)
    problem = Column(Text, nullable=False)
    solution = Column(Text, nullable=False)
    examples = Column(JSON_TYPE, nullable=False, default=list)
    relations = Column(JSON_TYPE, nullable=False, default=list)
    confidence = Column(Float, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_used_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_patterns_confidence_range"),
        Index("ix_patterns_confidence", "confidence"),
        Index("ix_patterns_usage_count", "usage_count"),
    )

    def to_entity(self) -> Pattern:
        return Pattern(
            id=self.id,
            name=self.name,
            context=list(self.context or []),
            problem=self.problem,
            solution=self.solution,
            examples=[PatternExample.from_dict(item) for item in self.examples or []],
            relations=[PatternRelation.from_dict(item) for item in self.relations or []],
            confidence=float(self.confidence),
            usage_count=self.usage_count or 0,
            created_at=self.created_at,
            last_used_at=self.last_used_at,
        )


def pattern_row_values(pattern: Pattern) -> dict:
    """Column values for an upsert of ``pattern``."""
    return {
        "id": pattern.id,
        "name": pattern.name,
        "context": list(pattern.context),
        "problem": pattern.problem,
        "solution": pattern.solution,
        "examples": [example.to_dict() for example in pattern.examples],
        "relations": [relation.to_dict() for relation in pattern.relations],
        "confidence": pattern.confidence,
        "usage_count": pattern.usage_count,
        "created_at": pattern.created_at,
        "last_used_at": pattern.last_used_at,
        "updated_at": utcnow(),
    }


# =============================================================================
# Episodes
# =============================================================================

class EpisodeRecord(Base):
    __tablename__ = "episodes"

    id = Column(String(255), primary_key=True)
    timestamp = Column(DateTime, nullable=False)
    context = Column(Text, nullable=False)
    actions = Column(JSON_TYPE, nullable=False, default=list)
    outcome = Column(Text, nullable=False)
    pattern_ids = Column(JSON_TYPE, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_episodes_timestamp", "timestamp"),
    )

    def to_entity(self) -> Episode:
        return Episode(
            id=self.id,
            timestamp=self.timestamp,
            context=self.context,
            actions=list(self.actions or []),
            outcome=self.outcome,
            pattern_ids=list(self.pattern_ids or []),
        )


def episode_row_values(episode: Episode) -> dict:
    """Column values for an upsert of ``episode``."""
    return {
        "id": episode.id,
        "timestamp": episode.timestamp,
        "context": episode.context,
        "actions": list(episode.actions),
        "outcome": episode.outcome,
        "pattern_ids": list(episode.pattern_ids),
    }
