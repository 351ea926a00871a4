"""
Shared configuration for Shelf.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("shelf")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Storage selection
STORAGE_BACKEND = os.environ.get("SHELF_STORAGE", "json").strip().lower()
DATA_DIR = os.environ.get("SHELF_DATA_DIR", os.path.join(os.getcwd(), "data"))

# Database settings (SHELF_STORAGE=sql)
DB_BACKEND = os.environ.get("DB_BACKEND", "sqlite").strip().lower()
SQLITE_PATH = os.environ.get("SQLITE_PATH", os.path.join(DATA_DIR, "shelf.db"))
DATABASE_URL = os.environ.get("DATABASE_URL")

# Database initialization controls
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)

# Markdown shelf
SHELF_ROOT = os.path.expanduser(os.environ.get("SHELF_ROOT", os.path.join("~", ".shelf")))
PATTERNS_DIR = os.path.expanduser(
    os.environ.get("SHELF_PATTERNS_DIR", os.path.join(SHELF_ROOT, "patterns"))
)
GIT_SNAPSHOTS_ENABLED = _get_bool("SHELF_GIT_SNAPSHOTS", True)

# Request/input limits
MAX_RESULT_LIMIT = _get_int("SHELF_MAX_RESULT_LIMIT", 100)
MAX_QUERY_LENGTH = _get_int("SHELF_MAX_QUERY_LENGTH", 4000)
MAX_TEXT_LENGTH = _get_int("SHELF_MAX_TEXT_LENGTH", 8000)
MAX_SHORT_TEXT_LENGTH = _get_int("SHELF_MAX_SHORT_TEXT_LENGTH", 255)
MAX_LIST_ITEMS = _get_int("SHELF_MAX_LIST_ITEMS", 50)
MAX_LIST_ITEM_LENGTH = _get_int("SHELF_MAX_LIST_ITEM_LENGTH", 1000)
MAX_MARKDOWN_LENGTH = _get_int("SHELF_MAX_MARKDOWN_LENGTH", 100_000)

# Tool defaults
SEARCH_LIMIT_DEFAULT = _get_int("SHELF_SEARCH_LIMIT_DEFAULT", 5)
SIMILAR_LIMIT_DEFAULT = _get_int("SHELF_SIMILAR_LIMIT_DEFAULT", 3)


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL

    errors = []
    if STORAGE_BACKEND not in {"json", "sql"}:
        errors.append("SHELF_STORAGE must be 'json' or 'sql'")

    if STORAGE_BACKEND == "json" and not DATA_DIR:
        errors.append("SHELF_DATA_DIR is required for json storage")

    if STORAGE_BACKEND == "sql":
        if DB_BACKEND not in {"postgres", "sqlite"}:
            errors.append("DB_BACKEND must be 'postgres' or 'sqlite'")

        if not DATABASE_URL:
            if DB_BACKEND == "sqlite":
                if not SQLITE_PATH:
                    errors.append("SQLITE_PATH environment variable is required for sqlite")
                else:
                    DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
            else:
                errors.append("DATABASE_URL environment variable is required")
        else:
            url_lower = DATABASE_URL.lower()
            is_sqlite_url = url_lower.startswith("sqlite")
            if DB_BACKEND == "sqlite" and not is_sqlite_url:
                errors.append("DATABASE_URL must be a sqlite URL when DB_BACKEND=sqlite")
            if DB_BACKEND == "postgres" and is_sqlite_url:
                errors.append("DATABASE_URL must be a postgres URL when DB_BACKEND=postgres")

    if MAX_RESULT_LIMIT <= 0:
        errors.append("SHELF_MAX_RESULT_LIMIT must be positive")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
