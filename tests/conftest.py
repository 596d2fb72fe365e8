"""
Pytest configuration for tests.

Points the board at a throwaway data directory and an in-memory SQLite
database BEFORE any rantboard module is imported, then gives every test a
fresh schema.
"""
import os
import tempfile

os.environ["RANTBOARD_DATA_DIR"] = tempfile.mkdtemp(prefix="rantboard-test-")
os.environ["RANTBOARD_DATABASE_URL"] = "sqlite:///:memory:"
for _name in ("DEV_ENV", "RANTBOARD_ENFORCE_OWNERSHIP", "RANTBOARD_DEDUPE_UPVOTES",
              "STYTCH_PROJECT_ID", "STYTCH_SECRET", "RANTBOARD_PUBLIC_URL", "LISTEN_ADDR"):
    os.environ.pop(_name, None)

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import rantboard.database as db_module
from rantboard.auth_provider import reset_identity_provider
from rantboard.config import clear_config_cache
from rantboard.database import init_db


@pytest.fixture(autouse=True)
def board_db():
    """Set up an in-memory SQLite database for each test."""
    db_module.reset_engine()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    db_module._engine = engine
    db_module._SessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine
    )

    init_db(engine)

    yield engine

    db_module.reset_engine()


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from freshly loaded configuration."""
    clear_config_cache()
    reset_identity_provider()
    yield
    clear_config_cache()
    reset_identity_provider()


@pytest.fixture
def db_session():
    """Get a database session for direct DB manipulation in tests."""
    session = db_module.get_session()
    yield session
    session.close()
