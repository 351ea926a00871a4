import os

os.environ.setdefault("DB_BACKEND", "sqlite")

from shelf.backends.json_file import JsonFileBackend
from shelf.backends.sql import SqlBackend
from shelf.db import Database
from shelf.entities import Episode, utcnow
from shelf.services.migration import copy_store, main
from shelf.services.pattern_store import PatternStore


def test_copy_store_moves_everything(tmp_path):
    source_store = PatternStore(JsonFileBackend(str(tmp_path / "data")))
    source_store.initialize()
    source_store.apply_pattern("progressive-disclosure")
    source_store.save_episode(Episode(id="e1", context="ctx", actions=["a", "b"], outcome="ok", timestamp=utcnow()))

    target = SqlBackend(Database(f"sqlite:///{tmp_path / 'shelf.db'}"))
    target.initialize()

    result = copy_store(source_store.backend, target)

    assert result == {"status": "migrated", "patterns": 2, "episodes": 1}
    copied = target.get_pattern("progressive-disclosure")
    assert copied.to_dict() == source_store.get_pattern("progressive-disclosure").to_dict()
    assert target.get_episodes(["e1"])[0].actions == ["a", "b"]

    source_store.close()
    target.close()


def test_migration_main(tmp_path, capsys):
    seed = PatternStore(JsonFileBackend(str(tmp_path / "data")))
    seed.initialize()
    seed.close()

    exit_code = main([
        "--source-dir", str(tmp_path / "data"),
        "--database-url", f"sqlite:///{tmp_path / 'shelf.db'}",
    ])

    assert exit_code == 0
    assert "Migrated 2 patterns and 0 episodes" in capsys.readouterr().out
