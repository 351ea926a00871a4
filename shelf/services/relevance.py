"""
Relevance heuristics for pattern search and episode similarity.

Both scorers are literal substring / shared-token heuristics. They are not
semantic search and must stay that simple.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from shelf.entities import Episode, Pattern, PatternSearchResult

CONTEXT_MATCH_WEIGHT = 0.3
NAME_MATCH_WEIGHT = 0.2
PROBLEM_MATCH_WEIGHT = 0.2
MAX_RELEVANCE = 1.0

EPISODE_CONTAINMENT_SCORE = 0.5
EPISODE_SHARED_TOKEN_WEIGHT = 0.1
SIMILAR_EPISODES_DEFAULT_LIMIT = 5


def score_pattern(pattern: Pattern, query: str) -> Optional[PatternSearchResult]:
    """Score one pattern against a free-text query; None when nothing matches."""
    query_lower = query.lower()
    raw_score = 0.0
    matched_contexts: list[str] = []

    for tag in pattern.context:
        if tag.lower() in query_lower:
            raw_score += CONTEXT_MATCH_WEIGHT
            matched_contexts.append(tag)

    if pattern.name.lower() in query_lower:
        raw_score += NAME_MATCH_WEIGHT

    problem_lower = pattern.problem.lower()
    if problem_lower in query_lower or query_lower in problem_lower:
        raw_score += PROBLEM_MATCH_WEIGHT

    relevance = raw_score * pattern.confidence
    if relevance <= 0:
        return None

    if matched_contexts:
        reason = f"Matches contexts: {', '.join(matched_contexts)}"
    else:
        reason = "Partial match on name or problem"
    return PatternSearchResult(
        pattern=pattern,
        relevance=min(relevance, MAX_RELEVANCE),
        reason=reason,
    )


def search_patterns(patterns: Iterable[Pattern], query: str) -> list[PatternSearchResult]:
    """Rank patterns by relevance to ``query``, best first, zero scores dropped."""
    results = [
        result
        for result in (score_pattern(pattern, query) for pattern in patterns)
        if result is not None
    ]
    results.sort(key=lambda result: result.relevance, reverse=True)
    return results


def score_episode(episode: Episode, query: str) -> float:
    query_lower = query.lower()
    context_lower = episode.context.lower()

    score = 0.0
    if query_lower in context_lower or context_lower in query_lower:
        score = EPISODE_CONTAINMENT_SCORE

    shared_tokens = set(query_lower.split()) & set(context_lower.split())
    score += len(shared_tokens) * EPISODE_SHARED_TOKEN_WEIGHT
    return score


def rank_similar_episodes(
    episodes: Sequence[Episode],
    query: str,
    limit: int = SIMILAR_EPISODES_DEFAULT_LIMIT,
) -> list[Episode]:
    """Most similar episodes first; truncated to ``limit`` before zero scores are dropped."""
    scored = [(score_episode(episode, query), episode) for episode in episodes]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [episode for score, episode in scored[:limit] if score > 0]
