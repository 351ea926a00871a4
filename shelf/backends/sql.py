"""
Relational backend: patterns and episodes as SQLAlchemy tables.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional, Sequence

from sqlalchemy import case, desc, func, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

import shelf.config as config
from shelf.db import Database
from shelf.entities import Episode, Pattern
from shelf.errors import StorageError
from shelf.models import (
    EpisodeRecord,
    PatternRecord,
    episode_row_values,
    pattern_row_values,
)


class SqlBackend:
    """Stores patterns and episodes through an injected ``Database`` handle.

    Upserts, usage tracking and confidence adjustment are each a single
    statement, so no logical operation depends on a read-then-write pair.
    """

    name = "sql"

    def __init__(self, database: Database):
        self.database = database

    def initialize(self) -> None:
        self.database.initialize()

    def close(self) -> None:
        self.database.close()

    def health(self) -> dict:
        if not self.database.initialized:
            return {"ok": False, "backend": self.name, "error": "db_not_initialized"}

        try:
            with self.database.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            current_rev, head_rev = self.database.schema_revisions()
        except SQLAlchemyError as exc:
            return {"ok": False, "backend": self.name, "error": str(exc)}

        schema_ok = head_rev is None or current_rev == head_rev
        return {
            "ok": schema_ok,
            "backend": self.name,
            "dialect": self.database.engine.dialect.name,
            "schema_revision": current_rev,
            "schema_expected": head_rev,
            "schema_up_to_date": schema_ok,
        }

    @contextmanager
    def _session(self, operation: str) -> Iterator:
        with self.database.session() as db:
            try:
                yield db
            except SQLAlchemyError as exc:
                db.rollback()
                config.logger.warning(
                    "storage_error",
                    extra={"operation": operation, "detail": str(exc)},
                )
                raise StorageError(f"{operation} failed: {exc}") from exc

    def _insert(self, table):
        if self.database.engine.dialect.name == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    # Patterns

    def save_pattern(self, pattern: Pattern) -> None:
        values = pattern_row_values(pattern)
        stmt = self._insert(PatternRecord.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={key: stmt.excluded[key] for key in values if key not in {"id", "created_at"}},
        )
        with self._session("save_pattern") as db:
            db.execute(stmt)
            db.commit()

    def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        with self._session("get_pattern") as db:
            record = db.get(PatternRecord, pattern_id)
            return record.to_entity() if record else None

    def list_patterns(self) -> list[Pattern]:
        query = select(PatternRecord).order_by(
            desc(PatternRecord.confidence),
            PatternRecord.created_at,
            PatternRecord.id,
        )
        with self._session("list_patterns") as db:
            return [record.to_entity() for record in db.scalars(query).all()]

    def count_patterns(self) -> int:
        with self._session("count_patterns") as db:
            return db.scalar(select(func.count()).select_from(PatternRecord)) or 0

    def touch_pattern(self, pattern_id: str, used_at: datetime) -> Optional[Pattern]:
        stmt = (
            update(PatternRecord)
            .where(PatternRecord.id == pattern_id)
            .values(
                usage_count=PatternRecord.usage_count + 1,
                last_used_at=case(
                    (PatternRecord.last_used_at > used_at, PatternRecord.last_used_at),
                    else_=used_at,
                ),
                updated_at=used_at,
            )
            .execution_options(synchronize_session=False)
        )
        with self._session("touch_pattern") as db:
            result = db.execute(stmt)
            db.commit()
            if result.rowcount == 0:
                return None
            record = db.get(PatternRecord, pattern_id)
            return record.to_entity() if record else None

    def adjust_confidence(
        self,
        pattern_id: str,
        delta: float,
        minimum: float,
        maximum: float,
    ) -> bool:
        adjusted = PatternRecord.confidence + delta
        stmt = (
            update(PatternRecord)
            .where(PatternRecord.id == pattern_id)
            .values(
                confidence=case(
                    (adjusted > maximum, maximum),
                    (adjusted < minimum, minimum),
                    else_=adjusted,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        with self._session("adjust_confidence") as db:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount > 0

    # Episodes

    def save_episode(self, episode: Episode) -> None:
        values = episode_row_values(episode)
        stmt = self._insert(EpisodeRecord.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={key: stmt.excluded[key] for key in values if key != "id"},
        )
        with self._session("save_episode") as db:
            db.execute(stmt)
            db.commit()

    def get_episodes(self, episode_ids: Sequence[str]) -> list[Episode]:
        requested = list(dict.fromkeys(episode_ids))
        if not requested:
            return []
        query = select(EpisodeRecord).where(EpisodeRecord.id.in_(requested))
        with self._session("get_episodes") as db:
            by_id = {record.id: record.to_entity() for record in db.scalars(query).all()}
        return [by_id[episode_id] for episode_id in requested if episode_id in by_id]

    def list_episodes(self) -> list[Episode]:
        query = select(EpisodeRecord).order_by(
            desc(EpisodeRecord.timestamp),
            EpisodeRecord.created_at,
        )
        with self._session("list_episodes") as db:
            return [record.to_entity() for record in db.scalars(query).all()]
