"""
Shared validation helpers for Shelf tools.
"""

from __future__ import annotations

from typing import Optional, Sequence

from shelf.entities import Outcome, RelationType
from shelf.errors import ValidationIssue


def validate_required_text(value: str, field: str, max_len: int) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationIssue(f"{field} must be a non-empty string", field=field, error_type="required")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_optional_text(value: Optional[str], field: str, max_len: int) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_limit(value: int, field: str, max_value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationIssue(f"{field} must be an integer", field=field, error_type="invalid_type")
    if value <= 0 or value > max_value:
        raise ValidationIssue(f"{field} must be between 1 and {max_value}", field=field, error_type="out_of_range")


def validate_confidence(value: float, field: str) -> None:
    if value < 0.0 or value > 1.0:
        raise ValidationIssue(f"{field} must be between 0.0 and 1.0", field=field, error_type="out_of_range")


def validate_string_list(
    values: Optional[Sequence[str]],
    field: str,
    max_items: int,
    max_item_length: int,
    required: bool = False,
) -> None:
    if values is None or len(values) == 0:
        if required:
            raise ValidationIssue(f"{field} must not be empty", field=field, error_type="required")
        return
    if len(values) > max_items:
        raise ValidationIssue(f"{field} exceeds max items {max_items}", field=field, error_type="max_items")
    for item in values:
        if not isinstance(item, str):
            raise ValidationIssue(f"{field} must contain only strings", field=field, error_type="invalid_type")
        if len(item) > max_item_length:
            raise ValidationIssue(
                f"{field} item exceeds max length {max_item_length}",
                field=field,
                error_type="max_length",
            )


def validate_examples(examples: Optional[Sequence[dict]], field: str, max_items: int) -> None:
    if not examples:
        return
    if len(examples) > max_items:
        raise ValidationIssue(f"{field} exceeds max items {max_items}", field=field, error_type="max_items")
    allowed = {outcome.value for outcome in Outcome}
    for item in examples:
        if not isinstance(item, dict) or "input" not in item or "output" not in item:
            raise ValidationIssue(
                f"{field} items need 'input' and 'output'",
                field=field,
                error_type="invalid_type",
            )
        if item.get("outcome", Outcome.partial.value) not in allowed:
            raise ValidationIssue(
                f"{field} outcome must be one of: {'|'.join(sorted(allowed))}",
                field=field,
                error_type="invalid_value",
            )


def validate_relations(relations: Optional[Sequence[dict]], field: str, max_items: int) -> None:
    if not relations:
        return
    if len(relations) > max_items:
        raise ValidationIssue(f"{field} exceeds max items {max_items}", field=field, error_type="max_items")
    allowed = {relation_type.value for relation_type in RelationType}
    for item in relations:
        if not isinstance(item, dict) or not item.get("patternId"):
            raise ValidationIssue(
                f"{field} items need a 'patternId'",
                field=field,
                error_type="invalid_type",
            )
        if item.get("type") not in allowed:
            raise ValidationIssue(
                f"{field} type must be one of: {'|'.join(sorted(allowed))}",
                field=field,
                error_type="invalid_value",
            )
        validate_confidence(float(item.get("strength", 0.0)), f"{field}.strength")
