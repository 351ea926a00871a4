"""
Flat-file backend: in-process mappings persisted as JSON snapshot files.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Optional, Sequence

import shelf.config as config
from shelf.entities import Episode, Pattern
from shelf.errors import StorageError, StorageUnavailableError
from shelf.services.reinforcement import clamp_confidence

PATTERNS_FILE = "patterns.json"
EPISODES_FILE = "episodes.json"


class JsonFileBackend:
    """Keeps patterns and episodes in memory, rewriting a snapshot on each change.

    A missing snapshot file is an empty store. A snapshot that exists but
    cannot be read or parsed is an error. Concurrent writers are not
    coordinated; the last snapshot written wins.
    """

    name = "json"

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.patterns_file = os.path.join(data_dir, PATTERNS_FILE)
        self.episodes_file = os.path.join(data_dir, EPISODES_FILE)
        self._patterns: dict[str, Pattern] = {}
        self._episodes: dict[str, Episode] = {}
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot create data directory {self.data_dir}: {exc}") from exc

        self._patterns = {
            pattern.id: pattern
            for pattern in (Pattern.from_dict(item) for item in self._read_snapshot(self.patterns_file))
        }
        self._episodes = {
            episode.id: episode
            for episode in (Episode.from_dict(item) for item in self._read_snapshot(self.episodes_file))
        }
        self._initialized = True
        config.logger.info(
            "json_store_loaded",
            extra={"patterns": len(self._patterns), "episodes": len(self._episodes)},
        )

    def _read_snapshot(self, path: str) -> list[dict]:
        if not os.path.exists(path):
            config.logger.info(f"No existing snapshot at {path}, starting fresh")
            return []
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StorageUnavailableError(f"Cannot read snapshot {path}: {exc}") from exc
        if not isinstance(data, list):
            raise StorageUnavailableError(f"Snapshot {path} must contain a JSON list")
        return data

    def _write_snapshot(self, path: str, items: list[dict]) -> None:
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(items, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Cannot write snapshot {path}: {exc}") from exc

    def _commit_pattern(self, pattern: Pattern) -> None:
        """Write the snapshot with ``pattern`` in place; memory changes only once the write succeeds."""
        updated = dict(self._patterns)
        updated[pattern.id] = pattern
        self._write_snapshot(self.patterns_file, [p.to_dict() for p in updated.values()])
        self._patterns = updated

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageUnavailableError("JSON store not initialized")

    def health(self) -> dict:
        ok = self._initialized and os.path.isdir(self.data_dir)
        return {
            "ok": ok,
            "backend": self.name,
            "data_dir": self.data_dir,
            "patterns": len(self._patterns),
            "episodes": len(self._episodes),
        }

    def close(self) -> None:
        self._initialized = False
        self._patterns = {}
        self._episodes = {}

    # Patterns

    def save_pattern(self, pattern: Pattern) -> None:
        self._require_initialized()
        self._commit_pattern(pattern.copy())

    def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        self._require_initialized()
        pattern = self._patterns.get(pattern_id)
        return pattern.copy() if pattern else None

    def list_patterns(self) -> list[Pattern]:
        self._require_initialized()
        ordered = sorted(self._patterns.values(), key=lambda p: p.confidence, reverse=True)
        return [pattern.copy() for pattern in ordered]

    def count_patterns(self) -> int:
        self._require_initialized()
        return len(self._patterns)

    def touch_pattern(self, pattern_id: str, used_at: datetime) -> Optional[Pattern]:
        self._require_initialized()
        current = self._patterns.get(pattern_id)
        if current is None:
            return None
        pattern = current.copy()
        pattern.usage_count += 1
        if pattern.last_used_at is None or used_at > pattern.last_used_at:
            pattern.last_used_at = used_at
        self._commit_pattern(pattern)
        return pattern.copy()

    def adjust_confidence(
        self,
        pattern_id: str,
        delta: float,
        minimum: float,
        maximum: float,
    ) -> bool:
        self._require_initialized()
        current = self._patterns.get(pattern_id)
        if current is None:
            return False
        pattern = current.copy()
        pattern.confidence = clamp_confidence(pattern.confidence + delta, minimum, maximum)
        self._commit_pattern(pattern)
        return True

    # Episodes

    def save_episode(self, episode: Episode) -> None:
        self._require_initialized()
        updated = dict(self._episodes)
        updated[episode.id] = episode.copy()
        self._write_snapshot(self.episodes_file, [e.to_dict() for e in updated.values()])
        self._episodes = updated

    def get_episodes(self, episode_ids: Sequence[str]) -> list[Episode]:
        self._require_initialized()
        return [
            self._episodes[episode_id].copy()
            for episode_id in dict.fromkeys(episode_ids)
            if episode_id in self._episodes
        ]

    def list_episodes(self) -> list[Episode]:
        self._require_initialized()
        ordered = sorted(self._episodes.values(), key=lambda e: e.timestamp, reverse=True)
        return [episode.copy() for episode in ordered]
