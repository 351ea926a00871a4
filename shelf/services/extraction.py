"""
Pattern extraction: synthesize a candidate pattern from a cluster of episodes.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Optional, Sequence

from shelf.entities import Episode, Outcome, Pattern, PatternExample, utcnow

MIN_EPISODES = 2
MIN_CONTEXT_TOKEN_LENGTH = 4
CONTEXT_FREQUENCY_THRESHOLD = 0.5
MAX_CONTEXT_TERMS = 5
DEFAULT_CONTEXT = "general"
ACTION_FREQUENCY_THRESHOLD = 0.3
MAX_ACTION_SEQUENCES = 3
MAX_EXAMPLES = 3
MAX_INITIAL_CONFIDENCE = 0.9

ACTION_SEPARATOR = " → "
SUCCESS_TERMS = ("success", "understood", "completed", "solved")
FAILURE_TERMS = ("fail", "error", "confused", "stuck")
FALLBACK_SOLUTION = "Analyze the context and apply appropriate actions based on examples"


def derive_pattern_id(name: str) -> str:
    """``"Debug Loop!"`` -> ``"debug-loop"``."""
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def categorize_outcome(outcome: str) -> Outcome:
    lower = outcome.lower()
    if any(term in lower for term in SUCCESS_TERMS):
        return Outcome.success
    if any(term in lower for term in FAILURE_TERMS):
        return Outcome.failure
    return Outcome.partial


def common_context_terms(episodes: Sequence[Episode]) -> list[str]:
    """Context words (longer than 3 chars) counted in at least half the episodes."""
    counts: Counter[str] = Counter()
    for episode in episodes:
        for word in episode.context.lower().split():
            if len(word) >= MIN_CONTEXT_TOKEN_LENGTH:
                counts[word] += 1

    threshold = len(episodes) * CONTEXT_FREQUENCY_THRESHOLD
    common = [word for word, count in counts.items() if count >= threshold]
    return common[:MAX_CONTEXT_TERMS]


def common_action_sequences(episodes: Sequence[Episode]) -> list[str]:
    """Adjacent action pairs seen in at least 30% of the episodes."""
    counts: Counter[str] = Counter()
    for episode in episodes:
        for first, second in zip(episode.actions, episode.actions[1:]):
            counts[f"{first}{ACTION_SEPARATOR}{second}"] += 1

    threshold = len(episodes) * ACTION_FREQUENCY_THRESHOLD
    common = [sequence for sequence, count in counts.items() if count >= threshold]
    return common[:MAX_ACTION_SEQUENCES]


def build_solution(action_sequences: Sequence[str], episodes: Sequence[Episode]) -> str:
    if action_sequences:
        return f"Apply the following action sequence: {action_sequences[0]}"

    for episode in episodes:
        if categorize_outcome(episode.outcome) == Outcome.success:
            return f"Follow approach: {', then '.join(episode.actions)}"

    return FALLBACK_SOLUTION


def extract_pattern(
    episodes: Sequence[Episode],
    name: str,
    problem_statement: str,
) -> Optional[Pattern]:
    """Build a new, unsaved pattern from ``episodes``; None for fewer than two."""
    if len(episodes) < MIN_EPISODES:
        return None

    context = common_context_terms(episodes)
    examples = [
        PatternExample(
            input=episode.context,
            output=ACTION_SEPARATOR.join(episode.actions),
            outcome=categorize_outcome(episode.outcome),
        )
        for episode in episodes[:MAX_EXAMPLES]
    ]
    successes = sum(
        1 for episode in episodes if categorize_outcome(episode.outcome) == Outcome.success
    )
    success_rate = successes / len(episodes)

    return Pattern(
        id=derive_pattern_id(name),
        name=name,
        context=context or [DEFAULT_CONTEXT],
        problem=problem_statement,
        solution=build_solution(common_action_sequences(episodes), episodes),
        examples=examples,
        relations=[],
        confidence=min(MAX_INITIAL_CONFIDENCE, success_rate),
        usage_count=0,
        created_at=utcnow(),
    )


def find_related_patterns(pattern: Pattern, all_patterns: Sequence[Pattern]) -> list[str]:
    """Ids of other patterns sharing a context tag by substring, in either direction.

    Tags are compared exactly as stored; no case folding.
    """
    related = []
    for other in all_patterns:
        if other.id == pattern.id:
            continue
        if any(
            tag in other_tag or other_tag in tag
            for tag in pattern.context
            for other_tag in other.context
        ):
            related.append(other.id)
    return related
