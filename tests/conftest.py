"""Shared test fixtures for the gist store test suite.

Every test gets its own store on a fresh SQLite file under ``tmp_path``,
so tests are isolated without truncating tables. API tests go through a
FastAPI TestClient whose lifespan opens that same kind of store.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from giststore.core.config import PersistenceMode, Settings
from giststore.database import Database
from giststore.main import create_app
from giststore.services import DiagramService


def make_settings(tmp_path, **overrides) -> Settings:
    """Settings pointing at per-test storage."""
    values = {
        "database_url": f"sqlite:///{tmp_path / 'giststore.db'}",
        "snapshot_path": str(tmp_path / "image.sqlite"),
        "persistence_mode": PersistenceMode.ENGINE,
        "log_format": "text",
        "operation_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def info_logging(caplog):
    """Run every test with INFO records enabled, as the app does by default."""
    caplog.set_level(logging.INFO)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def database(settings):
    """Opened store handle; disposed after the test."""
    db = Database(settings)
    db.open()
    yield db
    db.close()


@pytest.fixture()
def service(database) -> DiagramService:
    return DiagramService(database)


@pytest.fixture()
def client(settings):
    """FastAPI TestClient running the full app against per-test storage."""
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def snapshot_client(tmp_path):
    """TestClient over an app that keeps its store in memory with an image on disk."""
    app = create_app(make_settings(tmp_path, persistence_mode=PersistenceMode.SNAPSHOT))
    with TestClient(app) as c:
        yield c


def make_diagram(
    filename: str = "diagram.json",
    content: str = '{"tables": []}',
    **overrides,
) -> dict:
    """Factory for diagram creation payloads."""
    payload = {
        "public": False,
        "description": "Test diagram",
        "filename": filename,
        "content": content,
    }
    payload.update(overrides)
    return payload
