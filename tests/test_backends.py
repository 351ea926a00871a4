import json
import logging
from datetime import timedelta

import pytest

from shelf.backends import create_backend
from shelf.backends.json_file import JsonFileBackend
from shelf.backends.sql import SqlBackend
from shelf.db import Database
from shelf.entities import Episode, Pattern, utcnow
from shelf.errors import StorageError, StorageUnavailableError
from shelf.services.pattern_store import PatternStore


def make_pattern(pattern_id="p1", confidence=0.5):
    return Pattern(
        id=pattern_id,
        name=pattern_id,
        context=["testing"],
        problem="problem",
        solution="solution",
        confidence=confidence,
    )


def test_touch_keeps_last_used_monotonic(backend):
    backend.save_pattern(make_pattern())
    later = utcnow()
    earlier = later - timedelta(hours=1)

    backend.touch_pattern("p1", later)
    touched = backend.touch_pattern("p1", earlier)

    assert touched.usage_count == 2
    assert touched.last_used_at == later


def test_touch_unknown_pattern(backend):
    assert backend.touch_pattern("missing", utcnow()) is None


def test_adjust_confidence(backend):
    backend.save_pattern(make_pattern(confidence=0.95))

    assert backend.adjust_confidence("p1", 0.1, 0.1, 1.0) is True
    assert backend.get_pattern("p1").confidence == pytest.approx(1.0)
    assert backend.adjust_confidence("p1", -0.5, 0.1, 1.0) is True
    assert backend.get_pattern("p1").confidence == pytest.approx(0.5)
    assert backend.adjust_confidence("missing", 0.1, 0.1, 1.0) is False


def test_count_patterns(backend):
    assert backend.count_patterns() == 0
    backend.save_pattern(make_pattern("a"))
    backend.save_pattern(make_pattern("b"))
    backend.save_pattern(make_pattern("a"))
    assert backend.count_patterns() == 2


def test_get_episodes_keeps_request_order_and_skips_unknown(backend):
    for episode_id in ("e1", "e2", "e3"):
        backend.save_episode(Episode(id=episode_id, context=episode_id, actions=[], outcome=""))

    episodes = backend.get_episodes(["e3", "missing", "e1", "e3"])
    assert [episode.id for episode in episodes] == ["e3", "e1"]
    assert backend.get_episodes([]) == []


def test_list_episodes_newest_first(backend):
    now = utcnow()
    backend.save_episode(Episode(id="old", context="", actions=[], outcome="", timestamp=now - timedelta(days=1)))
    backend.save_episode(Episode(id="new", context="", actions=[], outcome="", timestamp=now))
    backend.save_episode(Episode(id="mid", context="", actions=[], outcome="", timestamp=now - timedelta(hours=1)))

    assert [episode.id for episode in backend.list_episodes()] == ["new", "mid", "old"]


def test_save_episode_upserts(backend):
    backend.save_episode(Episode(id="e1", context="first", actions=["a"], outcome="ok"))
    backend.save_episode(Episode(id="e1", context="second", actions=["b"], outcome="ok"))

    episodes = backend.list_episodes()
    assert len(episodes) == 1
    assert episodes[0].context == "second"
    assert episodes[0].actions == ["b"]


def test_health_reports_ok(backend):
    health = backend.health()
    assert health["ok"] is True
    assert health["backend"] == backend.name


def test_json_missing_files_start_empty(tmp_path):
    backend = JsonFileBackend(str(tmp_path / "fresh"))
    backend.initialize()
    assert backend.list_patterns() == []
    assert backend.list_episodes() == []


def test_json_corrupt_file_is_an_error(tmp_path):
    (tmp_path / "patterns.json").write_text("{not json", encoding="utf-8")
    backend = JsonFileBackend(str(tmp_path))
    with pytest.raises(StorageUnavailableError):
        backend.initialize()


def test_json_non_list_snapshot_is_an_error(tmp_path):
    (tmp_path / "episodes.json").write_text('{"id": "e1"}', encoding="utf-8")
    backend = JsonFileBackend(str(tmp_path))
    with pytest.raises(StorageUnavailableError):
        backend.initialize()


def test_json_requires_initialize(tmp_path):
    backend = JsonFileBackend(str(tmp_path))
    with pytest.raises(StorageUnavailableError):
        backend.list_patterns()


def test_json_snapshot_survives_reopen(tmp_path):
    backend = JsonFileBackend(str(tmp_path))
    backend.initialize()
    backend.save_pattern(make_pattern())
    backend.touch_pattern("p1", utcnow())
    backend.save_episode(Episode(id="e1", context="ctx", actions=["a"], outcome="ok", pattern_ids=["p1"]))
    backend.close()

    data = json.loads((tmp_path / "patterns.json").read_text(encoding="utf-8"))
    assert data[0]["usageCount"] == 1
    assert "lastUsedAt" in data[0]
    episodes = json.loads((tmp_path / "episodes.json").read_text(encoding="utf-8"))
    assert episodes[0]["patternIds"] == ["p1"]

    reopened = JsonFileBackend(str(tmp_path))
    reopened.initialize()
    assert reopened.get_pattern("p1").usage_count == 1
    assert reopened.get_episodes(["e1"])[0].pattern_ids == ["p1"]


def test_seeding_skipped_when_store_has_patterns(tmp_path):
    first = PatternStore(JsonFileBackend(str(tmp_path)))
    first.initialize()
    first.save_pattern(make_pattern())
    first.close()

    second = PatternStore(JsonFileBackend(str(tmp_path)))
    second.initialize()
    assert len(second.get_all_patterns()) == 3
    second.close()


def test_sql_schema_migrated_to_head(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'shelf.db'}")
    database.initialize()
    database.initialize()

    current_rev, head_rev = database.schema_revisions()
    assert current_rev == head_rev == "0001_patterns_episodes"
    database.close()
    assert database.initialized is False


def test_sql_schema_out_of_date_without_auto_migrate(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'shelf.db'}", auto_migrate=False)
    with pytest.raises(StorageUnavailableError):
        database.initialize()


def test_sql_list_patterns_by_confidence(tmp_path):
    backend = SqlBackend(Database(f"sqlite:///{tmp_path / 'shelf.db'}"))
    backend.initialize()
    backend.save_pattern(make_pattern("low", confidence=0.2))
    backend.save_pattern(make_pattern("high", confidence=0.8))
    backend.save_pattern(make_pattern("mid", confidence=0.5))

    assert [pattern.id for pattern in backend.list_patterns()] == ["high", "mid", "low"]
    backend.close()


def test_sql_backend_requires_initialize(tmp_path):
    backend = SqlBackend(Database(f"sqlite:///{tmp_path / 'shelf.db'}"))
    with pytest.raises(StorageUnavailableError):
        backend.list_patterns()
    assert backend.health()["ok"] is False


def test_create_backend_selects_implementation(tmp_path, monkeypatch):
    import shelf.config as config

    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(config, "SQLITE_PATH", str(tmp_path / "shelf.db"))
    monkeypatch.setattr(config, "DATABASE_URL", None)

    assert isinstance(create_backend("json"), JsonFileBackend)
    assert isinstance(create_backend("sql"), SqlBackend)


def test_json_failed_write_leaves_memory_unchanged(tmp_path, monkeypatch):
    backend = JsonFileBackend(str(tmp_path))
    backend.initialize()
    backend.save_pattern(make_pattern(confidence=0.5))

    def fail_write(path, items):
        raise StorageError(f"Cannot write snapshot {path}: disk full")

    monkeypatch.setattr(backend, "_write_snapshot", fail_write)

    with pytest.raises(StorageError):
        backend.touch_pattern("p1", utcnow())
    with pytest.raises(StorageError):
        backend.adjust_confidence("p1", 0.2, 0.1, 1.0)
    with pytest.raises(StorageError):
        backend.save_pattern(make_pattern("p2"))
    with pytest.raises(StorageError):
        backend.save_episode(Episode(id="e1", context="", actions=[], outcome=""))

    pattern = backend.get_pattern("p1")
    assert pattern.usage_count == 0
    assert pattern.last_used_at is None
    assert pattern.confidence == 0.5
    assert backend.get_pattern("p2") is None
    assert backend.list_episodes() == []


def test_sql_migration_keeps_process_logging(tmp_path):
    root = logging.getLogger()
    handlers_before = list(root.handlers)
    level_before = root.level

    database = Database(f"sqlite:///{tmp_path / 'shelf.db'}")
    database.initialize()
    database.close()

    assert root.handlers == handlers_before
    assert root.level == level_before
