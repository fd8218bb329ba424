import os
import sys

import pytest
from fastapi.testclient import TestClient

# make the app package importable without installing it
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from app.config import Settings
from app.database import Database
from app.main import create_app
from app.db_init import init_db


def make_settings(database_url, **overrides):
    values = dict(
        database_url=database_url,
        environment="test",
        version="9.9.9",
        log_level="DEBUG",
        rate_limit_max=10_000,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test_tasks.db'}"


@pytest.fixture
def database(database_url):
    db = Database(database_url)
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    init_db(database)
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(database, database_url):
    return create_app(make_settings(database_url), database)


@pytest.fixture
def client(app):
    # entering the context runs startup, which creates the schema
    with TestClient(app) as test_client:
        yield test_client
