"""
Sample patterns seeded into an empty store.
"""

from __future__ import annotations

from shelf.entities import (
    Outcome,
    Pattern,
    PatternExample,
    PatternRelation,
    RelationType,
    utcnow,
)


def sample_patterns() -> list[Pattern]:
    created_at = utcnow()
    return [
        Pattern(
            id="progressive-disclosure",
            name="Progressive Disclosure",
            context=["user is learning", "complex topic", "beginner level"],
            problem="Too much information at once overwhelms the learner",
            solution="Reveal complexity gradually, starting with core concepts",
            examples=[
                PatternExample(
                    input="Explain recursion",
                    output="Start with simple counting down, then factorial, then tree traversal",
                    outcome=Outcome.success,
                ),
            ],
            relations=[],
            confidence=0.85,
            usage_count=0,
            created_at=created_at,
        ),
        Pattern(
            id="concrete-before-abstract",
            name="Concrete Before Abstract",
            context=["teaching concept", "abstract idea", "user struggling"],
            problem="Abstract concepts are hard to grasp without grounding",
            solution="Provide concrete examples before explaining the abstraction",
            examples=[
                PatternExample(
                    input="Explain interfaces",
                    output="Show USB ports, electrical outlets, then programming interfaces",
                    outcome=Outcome.success,
                ),
            ],
            relations=[
                PatternRelation(
                    type=RelationType.leads_to,
                    pattern_id="progressive-disclosure",
                    strength=0.7,
                ),
            ],
            confidence=0.9,
            usage_count=0,
            created_at=created_at,
        ),
    ]
