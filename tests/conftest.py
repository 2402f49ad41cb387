import importlib
import os
from pathlib import Path

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["JOIN_INVALID_CODE_DELAY_SECONDS"] = "0"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "true"
os.environ["MAINTENANCE_TOKEN"] = "maintenance-secret"

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient

from tests.helpers import create_postgres_test_database

ROOT_DIR = Path(__file__).resolve().parents[1]


def _run_migrations(database_url: str) -> None:
    config = Config(str(ROOT_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT_DIR / "migrations"))
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def _setup_app(database_url: str):
    from app.tally.core.config import settings
    import app.tally.db.session as session
    from app.main import create_app

    settings.DATABASE_URL = database_url
    importlib.reload(session)
    return create_app(), session


@pytest.fixture()
def database_url(tmp_path: Path):
    url = os.getenv("TEST_DATABASE_URL", "")
    cleanup = None
    if url.startswith("postgres"):
        url, cleanup = create_postgres_test_database(url)
    else:
        url = f"sqlite+pysqlite:///{tmp_path / 'test.db'}"
    _run_migrations(url)
    yield url
    if cleanup:
        cleanup()


@pytest.fixture()
def client(database_url):
    app, session = _setup_app(database_url)
    with TestClient(app) as test_client:
        yield test_client
    session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.tally.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def session_factory(client):
    from app.tally.db.session import SessionLocal

    return SessionLocal
