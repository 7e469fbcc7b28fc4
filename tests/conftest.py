import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from compass.core.settings import get_settings
from compass.db.session import init_schema


@pytest.fixture()
def engine():
    """In-memory SQLite engine shared across sessions via ``StaticPool``."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def clean_settings(monkeypatch: pytest.MonkeyPatch):
    """Clear the cached settings around a test that edits the environment."""
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
