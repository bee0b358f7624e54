# src/cikapi/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
This file provides fixtures available to all tests in the package.

Integration tests need a PostgreSQL server reachable with the settings in
.env.test (or the DB_* environment variables). The test database is dropped
and recreated once per session; tests are skipped when the server cannot be
reached.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["CIKAPI_ENV"] = "test"

import psycopg
import pytest
from psycopg import sql
from psycopg.conninfo import conninfo_to_dict, make_conninfo

from cikapi.config import Config

# Never point the suite at a non-test database by accident
os.environ.setdefault("DB_NAME", "cik_database_test")

from cikapi.app import create_app
from cikapi.db import DataStore
from cikapi.stock import StockRepository, StockService

SAMPLE_STOCKS = [
    {"symbol": "AAPL", "name": "Apple Inc.", "price": 150.00, "cik": 320193},
    {"symbol": "GOOGL", "name": "Alphabet Inc.", "price": 2800.00, "cik": 1652044},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "price": 300.00, "cik": 789019},
]

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_config() -> Config:
    return Config.from_env()


@pytest.fixture(scope="session")
def test_db(test_config):
    """
    Create the test database and schema once per test session.

    This fixture:
    1. Drops the test database if it exists (clean slate)
    2. Creates a fresh test database
    3. Bootstraps the schema through DataStore.initialize()

    Yields the Config pointing at the test database.
    """
    db_name = conninfo_to_dict(test_config.database_url).get("dbname", "")
    if "test" not in db_name:
        pytest.skip(f"Refusing to recreate non-test database {db_name!r}")

    admin_url = make_conninfo(test_config.database_url, dbname="postgres", connect_timeout=5)

    try:
        with psycopg.connect(admin_url, autocommit=True) as conn:
            with conn.cursor() as cur:
                # Terminate existing connections to test database
                cur.execute(
                    """
                    SELECT pg_terminate_backend(pg_stat_activity.pid)
                    FROM pg_stat_activity
                    WHERE pg_stat_activity.datname = %s
                    AND pid <> pg_backend_pid()
                    """,
                    (db_name,),
                )
                cur.execute(sql.SQL("DROP DATABASE IF EXISTS {}").format(sql.Identifier(db_name)))
                cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL test server not available: {e}")

    store = DataStore(test_config)
    store.initialize()
    store.close()

    yield test_config


@pytest.fixture
def db_connection(test_db):
    """
    Provide a database connection with transaction rollback.

    The stocks table is truncated (and committed) before each test; the
    test itself runs in a transaction that is rolled back at the end.
    """
    conn = psycopg.connect(test_db.database_url)

    with conn.cursor() as cur:
        cur.execute("TRUNCATE stocks RESTART IDENTITY")
    conn.commit()

    # Open the test transaction; store statements then run as savepoints in it
    conn.execute("SELECT 1")

    yield conn

    conn.rollback()
    conn.close()


@pytest.fixture
def store(test_db, db_connection):
    """Provide a DataStore whose statements all run on db_connection."""
    store = DataStore(test_db)
    store.set_connection_override(db_connection)

    yield store

    store.clear_connection_override()


# =============================================================================
# Repository / Service Fixtures
# =============================================================================


@pytest.fixture
def stock_repo(store):
    """Provide a StockRepository instance."""
    return StockRepository(store)


@pytest.fixture
def stock_service(stock_repo):
    """Provide a StockService instance."""
    return StockService(stock_repo)


# =============================================================================
# Seed Data Fixtures
# =============================================================================


@pytest.fixture
def sample_stocks(store) -> list[dict]:
    """Insert the three sample stocks, in id order."""
    return [store.create("stocks", s) for s in SAMPLE_STOCKS]


# =============================================================================
# Flask App Fixtures
# =============================================================================


@pytest.fixture
def app(store, test_db):
    """Create Flask application backed by the test database."""
    app = create_app(store, test_db)
    app.config["TESTING"] = True

    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
