"""
Database handle, initialization and migration helpers.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

import shelf.config as config
from shelf.errors import StorageUnavailableError
from shelf.models import Base

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _get_alembic_config(database_url: str):
    try:
        from alembic.config import Config
    except ImportError as exc:
        raise RuntimeError("Alembic is required for migrations") from exc

    alembic_cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(BASE_DIR, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    return alembic_cfg


def _get_schema_revisions(engine, database_url: str) -> tuple[Optional[str], Optional[str]]:
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    alembic_cfg = _get_alembic_config(database_url)
    script = ScriptDirectory.from_config(alembic_cfg)
    head_revision = script.get_current_head()
    with engine.connect() as conn:
        context = MigrationContext.configure(conn)
        current_revision = context.get_current_revision()
    return current_revision, head_revision


class Database:
    """Explicitly owned database handle: create, initialize, use, close."""

    def __init__(
        self,
        database_url: str,
        auto_migrate: Optional[bool] = None,
        use_migrations: bool = True,
    ):
        self.database_url = database_url
        self.auto_migrate = config.AUTO_MIGRATE_ON_STARTUP if auto_migrate is None else auto_migrate
        self.use_migrations = use_migrations
        self.engine = None
        self.SessionLocal = None

    @property
    def initialized(self) -> bool:
        return self.engine is not None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.lower().startswith("sqlite")

    def initialize(self) -> None:
        """Connect and bring the schema up to date. Safe to call repeatedly."""
        if self.initialized:
            return

        config.logger.info("Connecting to database...")
        engine_kwargs = {"pool_pre_ping": True}
        if self.is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(self.database_url, **engine_kwargs)

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if self.use_migrations:
                self._ensure_schema_up_to_date(engine)
            else:
                Base.metadata.create_all(engine)
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StorageUnavailableError(f"Database unavailable: {exc}") from exc
        except RuntimeError as exc:
            engine.dispose()
            raise StorageUnavailableError(str(exc)) from exc

        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine)
        config.logger.info("Database initialized")

    def _ensure_schema_up_to_date(self, engine) -> None:
        from alembic import command

        current_rev, head_rev = _get_schema_revisions(engine, self.database_url)
        if current_rev == head_rev:
            return

        if self.auto_migrate:
            alembic_cfg = _get_alembic_config(self.database_url)
            command.upgrade(alembic_cfg, "head")
            new_current, _ = _get_schema_revisions(engine, self.database_url)
            if new_current != head_rev:
                raise RuntimeError("Database migration did not reach expected revision")
            config.logger.info(
                "schema_migrated",
                extra={"from_revision": current_rev, "to_revision": head_rev},
            )
        else:
            raise RuntimeError(
                f"Database schema out of date (current={current_rev}, expected={head_rev}). "
                "Run 'alembic upgrade head' or set AUTO_MIGRATE_ON_STARTUP=true for dev."
            )

    @contextmanager
    def session(self) -> Iterator[Session]:
        if self.SessionLocal is None:
            raise StorageUnavailableError("Database not initialized - SessionLocal is None")
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def schema_revisions(self) -> tuple[Optional[str], Optional[str]]:
        if self.engine is None:
            raise StorageUnavailableError("Database not initialized")
        return _get_schema_revisions(self.engine, self.database_url)

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
