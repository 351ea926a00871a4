"""
Confidence reinforcement rules.
"""

from __future__ import annotations

CONFIDENCE_MIN = 0.1
CONFIDENCE_MAX = 1.0
SUCCESS_ADJUSTMENT = 0.05
FAILURE_ADJUSTMENT = -0.02


def clamp_confidence(
    confidence: float,
    min_value: float = CONFIDENCE_MIN,
    max_value: float = CONFIDENCE_MAX,
) -> float:
    if confidence < min_value:
        return min_value
    if confidence > max_value:
        return max_value
    return confidence


def confidence_adjustment(success: bool) -> float:
    return SUCCESS_ADJUSTMENT if success else FAILURE_ADJUSTMENT

