"""Shared Postgres fixtures for integration tests.

The fixtures create a temporary test database and drop it on teardown.
Tests that need Postgres should use the ``db_url`` or ``db_conn`` fixtures
and be marked with ``@pytest.mark.postgres``.

Connection target:
    DATABASE_URL_TEST env var, default ``postgresql://localhost:5433/postgres``.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import pytest

# Try importing psycopg; if missing the fixtures will skip gracefully.
try:
    import psycopg
    from psycopg import sql

    HAS_PSYCOPG = True
except ImportError:
    HAS_PSYCOPG = False


ADMIN_URL = os.environ.get("DATABASE_URL_TEST", "postgresql://localhost:5433/postgres")
FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _postgres_available() -> bool:
    """Return True if we can connect to the test Postgres instance."""
    if not HAS_PSYCOPG:
        return False
    try:
        conn = psycopg.connect(ADMIN_URL, connect_timeout=3, autocommit=True)
        conn.close()
        return True
    except psycopg.OperationalError:
        return False


@pytest.fixture(scope="session")
def sample_dump() -> Path:
    """Path to the checked-in sample dump."""
    return FIXTURES_DIR / "sample_dump.sql"


@pytest.fixture(scope="module")
def db_url():
    """Create a temporary test database, yield its URL, and drop it on teardown.

    Skips the entire module if Postgres is not reachable.
    """
    if not _postgres_available():
        pytest.skip("PostgreSQL not available (set DATABASE_URL_TEST)")

    db_name = f"pgdump_inserts_test_{uuid.uuid4().hex[:8]}"
    admin_conn = psycopg.connect(ADMIN_URL, autocommit=True)

    with admin_conn.cursor() as cur:
        cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))

    # Replace the database name in the admin URL.
    base = ADMIN_URL.rsplit("/", 1)[0]
    test_url = f"{base}/{db_name}"

    yield test_url

    # Force-disconnect any remaining connections first.
    with admin_conn.cursor() as cur:
        cur.execute(
            sql.SQL(
                "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                "WHERE datname = {} AND pid <> pg_backend_pid()"
            ).format(sql.Literal(db_name))
        )
        cur.execute(sql.SQL("DROP DATABASE IF EXISTS {}").format(sql.Identifier(db_name)))
    admin_conn.close()


@pytest.fixture()
def db_conn(db_url):
    """Provide a connection to the test database with rollback on teardown."""
    conn = psycopg.connect(db_url)
    yield conn
    conn.rollback()
    conn.close()
