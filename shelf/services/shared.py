"""
Shared helpers and configuration for Shelf tools.
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

import shelf.config as config
from shelf.errors import StorageUnavailableError, ValidationIssue
from shelf.services.pattern_store import PatternStore

# =============================================================================
# Configuration
# =============================================================================

logger = config.logger

MAX_RESULT_LIMIT = config.MAX_RESULT_LIMIT
MAX_QUERY_LENGTH = config.MAX_QUERY_LENGTH
MAX_TEXT_LENGTH = config.MAX_TEXT_LENGTH
MAX_SHORT_TEXT_LENGTH = config.MAX_SHORT_TEXT_LENGTH
MAX_LIST_ITEMS = config.MAX_LIST_ITEMS
MAX_LIST_ITEM_LENGTH = config.MAX_LIST_ITEM_LENGTH
MAX_MARKDOWN_LENGTH = config.MAX_MARKDOWN_LENGTH
SEARCH_LIMIT_DEFAULT = config.SEARCH_LIMIT_DEFAULT
SIMILAR_LIMIT_DEFAULT = config.SIMILAR_LIMIT_DEFAULT


class Store:
    """Store bound to the tool layer (set by the app lifespan)."""

    current: Optional[PatternStore] = None


def bind_store(store: Optional[PatternStore]) -> None:
    Store.current = store


def resolve_store(store: Optional[PatternStore] = None) -> PatternStore:
    if store is not None:
        return store
    if Store.current is None:
        raise StorageUnavailableError("Pattern store not initialized - no store bound")
    return Store.current


# =============================================================================
# Helper Functions
# =============================================================================

def _tool_error_payload(tool_name: str, exc: ValidationIssue) -> dict:
    return {
        "status": "error",
        "error_type": "validation_error",
        "tool": tool_name,
        "field": exc.field,
        "message": str(exc),
    }


def _log_validation_issue(tool_name: str, exc: ValidationIssue, warn: bool = False) -> None:
    payload = {
        "tool": tool_name,
        "field": exc.field,
        "error_type": exc.error_type,
        "detail": str(exc),
    }
    if warn:
        logger.warning("tool_validation_error", extra=payload)
    else:
        logger.info("tool_validation_error", extra=payload)


def _tool_error_handler(fn: Callable[..., dict]) -> Callable[..., dict]:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationIssue as exc:
            _log_validation_issue(fn.__name__, exc, warn=False)
            return _tool_error_payload(fn.__name__, exc)
        except ValueError as exc:
            issue = ValidationIssue(str(exc), field="unknown", error_type="value_error")
            _log_validation_issue(fn.__name__, issue, warn=True)
            return _tool_error_payload(fn.__name__, issue)
    return wrapper


def service_tool(fn: Callable[..., dict]) -> Callable[..., dict]:
    return _tool_error_handler(fn)
