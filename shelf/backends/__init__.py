"""
Persistence backends for patterns and episodes.

Both implementations satisfy ``PatternBackend``; the store picks one at
construction time and never reaches past the protocol.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

import shelf.config as config
from shelf.entities import Episode, Pattern


class PatternBackend(Protocol):
    name: str

    def initialize(self) -> None: ...

    def close(self) -> None: ...

    def save_pattern(self, pattern: Pattern) -> None: ...

    def get_pattern(self, pattern_id: str) -> Optional[Pattern]: ...

    def list_patterns(self) -> list[Pattern]: ...

    def count_patterns(self) -> int: ...

    def touch_pattern(self, pattern_id: str, used_at: datetime) -> Optional[Pattern]: ...

    def adjust_confidence(
        self,
        pattern_id: str,
        delta: float,
        minimum: float,
        maximum: float,
    ) -> bool: ...

    def save_episode(self, episode: Episode) -> None: ...

    def get_episodes(self, episode_ids: Sequence[str]) -> list[Episode]: ...

    def list_episodes(self) -> list[Episode]: ...

    def health(self) -> dict: ...


def create_backend(storage: Optional[str] = None) -> PatternBackend:
    """Build the backend selected by configuration (or ``storage``)."""
    from shelf.backends.json_file import JsonFileBackend
    from shelf.backends.sql import SqlBackend
    from shelf.db import Database

    config.validate_and_prepare_config()
    selected = (storage or config.STORAGE_BACKEND).strip().lower()
    if selected == "json":
        return JsonFileBackend(config.DATA_DIR)
    if selected == "sql":
        return SqlBackend(Database(config.DATABASE_URL or f"sqlite:///{config.SQLITE_PATH}"))
    raise RuntimeError(f"Unknown storage backend: {selected}")


__all__ = ["PatternBackend", "create_backend"]
