"""
Pattern and episode entities shared by every storage backend.

Entities are plain dataclasses. ``to_dict`` produces the JSON wire form
(camelCase keys, ISO-8601 timestamps) used by the snapshot files and the tool
layer; ``from_dict`` accepts the same form back.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional


class Outcome(str, PyEnum):
    success = "success"
    failure = "failure"
    partial = "partial"


class RelationType(str, PyEnum):
    leads_to = "leads_to"
    refined_by = "refined_by"
    conflicts_with = "conflicts_with"
    requires = "requires"


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass
class PatternExample:
    input: str
    output: str
    outcome: Outcome = Outcome.partial

    def to_dict(self) -> dict:
        return {
            "input": self.input,
            "output": self.output,
            "outcome": Outcome(self.outcome).value,
        }

    @staticmethod
    def from_dict(data: dict) -> "PatternExample":
        return PatternExample(
            input=data["input"],
            output=data["output"],
            outcome=Outcome(data.get("outcome", Outcome.partial.value)),
        )


@dataclass
class PatternRelation:
    type: RelationType
    pattern_id: str
    strength: float

    def to_dict(self) -> dict:
        return {
            "type": RelationType(self.type).value,
            "patternId": self.pattern_id,
            "strength": self.strength,
        }

    @staticmethod
    def from_dict(data: dict) -> "PatternRelation":
        return PatternRelation(
            type=RelationType(data["type"]),
            pattern_id=data.get("patternId", data.get("pattern_id")),
            strength=float(data.get("strength", 0.0)),
        )


@dataclass
class Pattern:
    id: str
    name: str
    context: list[str]
    problem: str
    solution: str
    examples: list[PatternExample] = field(default_factory=list)
    relations: list[PatternRelation] = field(default_factory=list)
    confidence: float = 0.5
    usage_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: Optional[datetime] = None

    def copy(self) -> "Pattern":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "context": list(self.context),
            "problem": self.problem,
            "solution": self.solution,
            "examples": [example.to_dict() for example in self.examples],
            "relations": [relation.to_dict() for relation in self.relations],
            "confidence": self.confidence,
            "usageCount": self.usage_count,
            "createdAt": format_timestamp(self.created_at),
            "lastUsedAt": format_timestamp(self.last_used_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "Pattern":
        return Pattern(
            id=data["id"],
            name=data["name"],
            context=list(data.get("context") or []),
            problem=data.get("problem", ""),
            solution=data.get("solution", ""),
            examples=[PatternExample.from_dict(item) for item in data.get("examples") or []],
            relations=[PatternRelation.from_dict(item) for item in data.get("relations") or []],
            confidence=float(data.get("confidence", 0.5)),
            usage_count=int(data.get("usageCount", 0)),
            created_at=parse_timestamp(data.get("createdAt")) or utcnow(),
            last_used_at=parse_timestamp(data.get("lastUsedAt")),
        )


@dataclass
class Episode:
    id: str
    context: str
    actions: list[str]
    outcome: str
    pattern_ids: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    def copy(self) -> "Episode":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "context": self.context,
            "actions": list(self.actions),
            "outcome": self.outcome,
            "patternIds": list(self.pattern_ids),
        }

    @staticmethod
    def from_dict(data: dict) -> "Episode":
        return Episode(
            id=data["id"],
            timestamp=parse_timestamp(data.get("timestamp")) or utcnow(),
            context=data.get("context", ""),
            actions=list(data.get("actions") or []),
            outcome=data.get("outcome", ""),
            pattern_ids=list(data.get("patternIds") or []),
        )


@dataclass
class PatternSearchResult:
    pattern: Pattern
    relevance: float
    reason: str

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern.to_dict(),
            "relevance": self.relevance,
            "reason": self.reason,
        }
