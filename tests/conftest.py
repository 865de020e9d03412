"""Pytest configuration and fixtures.

Every test gets its own SQLite file under pytest's tmp_path. The application
is built with ``create_app`` from explicit settings, so nothing depends on the
developer's environment or .env file.
"""

import pytest
from fastapi.testclient import TestClient

from api_gate.config import Settings
from api_gate.database import build_engine, build_session_factory, create_tables
from api_gate.main import create_app
from api_gate.store.api_keys import APIKeyStore
from api_gate.store.request_logs import RequestLogStore

from .helpers import MASTER_KEY


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)
    create_tables(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def broken_session_factory(tmp_path):
    """Session factory whose database can never be opened."""
    engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'nope.db'}")
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def api_key_store(session_factory) -> APIKeyStore:
    return APIKeyStore(session_factory)


@pytest.fixture
def log_store(session_factory) -> RequestLogStore:
    return RequestLogStore(session_factory)


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(
        _env_file=None,
        database_url=database_url,
        master_api_key=MASTER_KEY,
        redis_url=None,
        log_write_timeout_seconds=2.0,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
