"""
Pattern and episode tools.

Each tool validates its input, calls the bound ``PatternStore`` and returns a
JSON-ready dict. Validation problems come back as error payloads; storage
failures propagate.
"""

from __future__ import annotations

import time
from typing import List, Optional

from shelf.errors import ValidationIssue
from shelf.entities import (
    Episode,
    Pattern,
    PatternExample,
    PatternRelation,
    utcnow,
)
from shelf.services.markdown_shelf import store_markdown_pattern
from shelf.services.pattern_store import PatternStore
from shelf.services.reinforcement import CONFIDENCE_MAX, CONFIDENCE_MIN
from shelf.services.shared import (
    MAX_LIST_ITEM_LENGTH,
    MAX_LIST_ITEMS,
    MAX_MARKDOWN_LENGTH,
    MAX_QUERY_LENGTH,
    MAX_RESULT_LIMIT,
    MAX_SHORT_TEXT_LENGTH,
    MAX_TEXT_LENGTH,
    SEARCH_LIMIT_DEFAULT,
    SIMILAR_LIMIT_DEFAULT,
    resolve_store,
    service_tool,
)
from shelf.validators import (
    validate_examples as _validate_examples,
    validate_limit as _validate_limit,
    validate_optional_text as _validate_optional_text,
    validate_relations as _validate_relations,
    validate_required_text as _validate_required_text,
    validate_string_list as _validate_string_list,
)


def _pattern_summary(pattern: Pattern) -> dict:
    return {
        "id": pattern.id,
        "name": pattern.name,
        "context": list(pattern.context),
        "confidence": pattern.confidence,
        "usageCount": pattern.usage_count,
    }


def _not_found(pattern_id: str) -> dict:
    return {
        "status": "not_found",
        "pattern_id": pattern_id,
        "message": f"Pattern '{pattern_id}' not found",
    }


@service_tool
def shelf_search_patterns(
    context: str,
    limit: int = SEARCH_LIMIT_DEFAULT,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Search for patterns relevant to the current situation.

    Args:
        context: Current situation or context to find patterns for
        limit: Maximum number of patterns to return (default 5)

    Returns:
        Matches ordered by relevance, each with the pattern and a reason
    """
    _validate_required_text(context, "context", MAX_QUERY_LENGTH)
    _validate_limit(limit, "limit", MAX_RESULT_LIMIT)

    results = resolve_store(store).search_patterns(context)[:limit]
    return {
        "status": "ok",
        "count": len(results),
        "query": context,
        "results": [result.to_dict() for result in results],
    }


@service_tool
def shelf_apply_pattern(
    pattern_id: str,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Apply a pattern and track its usage.

    Args:
        pattern_id: ID of the pattern to apply

    Returns:
        The updated pattern, or not_found status
    """
    _validate_required_text(pattern_id, "pattern_id", MAX_SHORT_TEXT_LENGTH)

    pattern = resolve_store(store).apply_pattern(pattern_id)
    if pattern is None:
        return _not_found(pattern_id)
    return {
        "status": "applied",
        "pattern": pattern.to_dict(),
        "example": pattern.examples[0].to_dict() if pattern.examples else None,
    }


@service_tool
def shelf_reinforce_pattern(
    pattern_id: str,
    success: bool,
    notes: Optional[str] = None,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Record whether applying a pattern worked, adjusting its confidence.

    Args:
        pattern_id: ID of the pattern to reinforce
        success: Whether the pattern application was successful
        notes: Additional notes about the outcome (echoed back, not stored)

    Returns:
        The pattern's new confidence, or not_found status
    """
    _validate_required_text(pattern_id, "pattern_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(notes, "notes", MAX_TEXT_LENGTH)
    if not isinstance(success, bool):
        raise ValidationIssue("success must be a boolean", field="success", error_type="invalid_type")

    resolved = resolve_store(store)
    resolved.reinforce_pattern(pattern_id, success)
    pattern = resolved.get_pattern(pattern_id)
    if pattern is None:
        return _not_found(pattern_id)
    return {
        "status": "reinforced",
        "pattern_id": pattern.id,
        "name": pattern.name,
        "outcome": "successful" if success else "unsuccessful",
        "confidence": pattern.confidence,
        "notes": notes,
    }


@service_tool
def shelf_list_patterns(store: Optional[PatternStore] = None) -> dict:
    """List all patterns, highest confidence first."""
    patterns = resolve_store(store).get_all_patterns()
    return {
        "status": "ok",
        "count": len(patterns),
        "results": [_pattern_summary(pattern) for pattern in patterns],
    }


@service_tool
def shelf_get_pattern(
    pattern_id: str,
    store: Optional[PatternStore] = None,
) -> dict:
    """Get a single pattern by id."""
    _validate_required_text(pattern_id, "pattern_id", MAX_SHORT_TEXT_LENGTH)

    pattern = resolve_store(store).get_pattern(pattern_id)
    if pattern is None:
        return _not_found(pattern_id)
    return {"status": "found", "pattern": pattern.to_dict()}


@service_tool
def shelf_save_pattern(
    pattern_id: str,
    name: str,
    context: List[str],
    problem: str,
    solution: str,
    examples: Optional[List[dict]] = None,
    relations: Optional[List[dict]] = None,
    confidence: float = 0.5,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Create or replace a pattern.

    Usage history (usage count, creation and last-used times) is kept when a
    pattern with the same id already exists.

    Args:
        pattern_id: Unique pattern id
        name: Human-readable name
        context: Situations the pattern applies to
        problem: The tension the pattern resolves
        solution: The prescription
        examples: Optional list of {input, output, outcome}
        relations: Optional list of {type, patternId, strength}
        confidence: Initial confidence, 0.1-1.0 (default 0.5)

    Returns:
        The stored pattern with status (created/updated)
    """
    _validate_required_text(pattern_id, "pattern_id", MAX_SHORT_TEXT_LENGTH)
    _validate_required_text(name, "name", MAX_SHORT_TEXT_LENGTH)
    _validate_string_list(context, "context", MAX_LIST_ITEMS, MAX_LIST_ITEM_LENGTH, required=True)
    _validate_required_text(problem, "problem", MAX_TEXT_LENGTH)
    _validate_required_text(solution, "solution", MAX_TEXT_LENGTH)
    _validate_examples(examples, "examples", MAX_LIST_ITEMS)
    _validate_relations(relations, "relations", MAX_LIST_ITEMS)
    if confidence < CONFIDENCE_MIN or confidence > CONFIDENCE_MAX:
        raise ValidationIssue(
            f"confidence must be between {CONFIDENCE_MIN} and {CONFIDENCE_MAX}",
            field="confidence",
            error_type="out_of_range",
        )

    resolved = resolve_store(store)
    existing = resolved.get_pattern(pattern_id)
    pattern = Pattern(
        id=pattern_id,
        name=name,
        context=list(context),
        problem=problem,
        solution=solution,
        examples=[PatternExample.from_dict(item) for item in examples or []],
        relations=[PatternRelation.from_dict(item) for item in relations or []],
        confidence=confidence,
    )
    if existing:
        pattern.usage_count = existing.usage_count
        pattern.created_at = existing.created_at
        pattern.last_used_at = existing.last_used_at
    resolved.save_pattern(pattern)
    return {
        "ack": "SUCCESS",
        "status": "updated" if existing else "created",
        "pattern": pattern.to_dict(),
    }


@service_tool
def shelf_save_episode(
    context: str,
    actions: List[str],
    outcome: str,
    pattern_ids: Optional[List[str]] = None,
    episode_id: Optional[str] = None,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Save an interaction episode for pattern learning.

    Args:
        context: Context of the interaction
        actions: Actions taken during the interaction, in order
        outcome: Outcome of the interaction
        pattern_ids: Patterns used in this episode
        episode_id: Optional id; generated as ``ep-<epoch millis>`` when omitted

    Returns:
        The stored episode
    """
    _validate_required_text(context, "context", MAX_TEXT_LENGTH)
    _validate_string_list(actions, "actions", MAX_LIST_ITEMS, MAX_LIST_ITEM_LENGTH)
    _validate_required_text(outcome, "outcome", MAX_TEXT_LENGTH)
    _validate_string_list(pattern_ids, "pattern_ids", MAX_LIST_ITEMS, MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(episode_id, "episode_id", MAX_SHORT_TEXT_LENGTH)

    episode = Episode(
        id=episode_id or f"ep-{int(time.time() * 1000)}",
        timestamp=utcnow(),
        context=context,
        actions=list(actions or []),
        outcome=outcome,
        pattern_ids=list(pattern_ids or []),
    )
    resolve_store(store).save_episode(episode)
    return {
        "ack": "SUCCESS",
        "status": "stored",
        "message": f"Episode saved: {episode.id}",
        "episode": episode.to_dict(),
    }


@service_tool
def shelf_find_similar(
    context: str,
    limit: int = SIMILAR_LIMIT_DEFAULT,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Find past episodes similar to a context.

    Args:
        context: Context to find similar episodes for
        limit: Maximum number of episodes to return (default 3)

    Returns:
        Matching episodes, most similar first
    """
    _validate_required_text(context, "context", MAX_QUERY_LENGTH)
    _validate_limit(limit, "limit", MAX_RESULT_LIMIT)

    episodes = resolve_store(store).find_similar_episodes(context, limit)
    return {
        "status": "ok",
        "count": len(episodes),
        "results": [episode.to_dict() for episode in episodes],
    }


@service_tool
def shelf_extract_pattern(
    episode_ids: List[str],
    pattern_name: str,
    problem_statement: str,
    store: Optional[PatternStore] = None,
) -> dict:
    """
    Extract a new pattern from similar episodes and save it.

    Args:
        episode_ids: IDs of similar episodes to extract the pattern from
        pattern_name: Name for the new pattern
        problem_statement: The problem this pattern solves

    Returns:
        The extracted pattern, or insufficient_episodes status
    """
    _validate_string_list(episode_ids, "episode_ids", MAX_LIST_ITEMS, MAX_SHORT_TEXT_LENGTH, required=True)
    _validate_required_text(pattern_name, "pattern_name", MAX_SHORT_TEXT_LENGTH)
    _validate_required_text(problem_statement, "problem_statement", MAX_TEXT_LENGTH)

    pattern = resolve_store(store).extract_pattern_from_episodes(
        episode_ids,
        pattern_name,
        problem_statement,
    )
    if pattern is None:
        return {
            "status": "insufficient_episodes",
            "message": "Could not extract pattern. Need at least 2 valid episodes.",
            "episode_ids": list(episode_ids),
        }
    return {
        "ack": "SUCCESS",
        "status": "extracted",
        "pattern": pattern.to_dict(),
        "related_pattern_ids": [relation.pattern_id for relation in pattern.relations],
    }


@service_tool
def shelf_store_markdown_pattern(
    category: str,
    pattern: str,
    append: bool = True,
) -> dict:
    """
    Store a pattern written in markdown on the shelf.

    Args:
        category: Category name (webhooks, caching, debugging, etc)
        pattern: Pattern content in markdown format
        append: Append to the existing category file (true) or replace it (false)

    Returns:
        Where the pattern was written and whether a git snapshot was taken
    """
    _validate_required_text(category, "category", MAX_SHORT_TEXT_LENGTH)
    _validate_required_text(pattern, "pattern", MAX_MARKDOWN_LENGTH)
    if "/" in category or "\\" in category or category.startswith("."):
        raise ValidationIssue(
            "category must be a plain file name",
            field="category",
            error_type="invalid_value",
        )

    result = store_markdown_pattern(category, pattern, append=append)
    result["message"] = f"Pattern stored in {result['filename']}"
    return result
