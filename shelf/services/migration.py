"""
Copy patterns and episodes between storage backends.

Typical use is moving an existing JSON snapshot store into the database::

    python -m shelf.services.migration --source-dir ./data --database-url sqlite:///data/shelf.db
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

import shelf.config as config
from shelf.backends import PatternBackend
from shelf.backends.json_file import JsonFileBackend
from shelf.backends.sql import SqlBackend
from shelf.db import Database


def copy_store(source: PatternBackend, target: PatternBackend) -> dict:
    """Upsert every pattern and episode of ``source`` into ``target``.

    Both backends must already be initialized. Records are copied as-is, so
    confidence, usage counts and timestamps survive the move.
    """
    patterns = source.list_patterns()
    for pattern in patterns:
        target.save_pattern(pattern)
        config.logger.info("pattern_migrated", extra={"pattern_id": pattern.id})

    episodes = source.list_episodes()
    for episode in reversed(episodes):
        target.save_episode(episode)

    config.logger.info(
        "migration_complete",
        extra={"patterns": len(patterns), "episodes": len(episodes)},
    )
    return {
        "status": "migrated",
        "patterns": len(patterns),
        "episodes": len(episodes),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate a JSON pattern store into the database.")
    parser.add_argument("--source-dir", default=config.DATA_DIR, help="Directory holding patterns.json/episodes.json")
    parser.add_argument(
        "--database-url",
        default=config.DATABASE_URL or f"sqlite:///{config.SQLITE_PATH}",
        help="Target database URL",
    )
    args = parser.parse_args(argv)

    source = JsonFileBackend(args.source_dir)
    target = SqlBackend(Database(args.database_url))
    source.initialize()
    target.initialize()
    try:
        result = copy_store(source, target)
    finally:
        target.close()
        source.close()
    print(f"Migrated {result['patterns']} patterns and {result['episodes']} episodes")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
