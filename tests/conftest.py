import os

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("SHELF_GIT_SNAPSHOTS", "false")

import pytest

from shelf.backends.json_file import JsonFileBackend
from shelf.backends.sql import SqlBackend
from shelf.db import Database
from shelf.services.pattern_store import PatternStore


def build_json_backend(tmp_path):
    return JsonFileBackend(str(tmp_path / "data"))


def build_sql_backend(tmp_path):
    return SqlBackend(Database(f"sqlite:///{tmp_path / 'shelf.db'}"))


BACKEND_BUILDERS = {
    "json": build_json_backend,
    "sql": build_sql_backend,
}


@pytest.fixture(params=sorted(BACKEND_BUILDERS))
def backend(request, tmp_path):
    backend = BACKEND_BUILDERS[request.param](tmp_path)
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture(params=sorted(BACKEND_BUILDERS))
def store(request, tmp_path):
    store = PatternStore(BACKEND_BUILDERS[request.param](tmp_path))
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def json_store(tmp_path):
    store = PatternStore(build_json_backend(tmp_path))
    store.initialize()
    yield store
    store.close()
