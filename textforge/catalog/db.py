"""Database layer for persisted transformation definitions.

Supports two backends:
- PostgreSQL (production, set TEXTFORGE_DATABASE_URL to a postgres:// URL)
- SQLite (local development, default)

Uses raw SQL via psycopg2 (Postgres) or sqlite3 (SQLite).
No ORM.

Thread-safety: Postgres uses a ThreadedConnectionPool for connection reuse.
SQLite uses per-call connections with check_same_thread=False. Name
uniqueness is enforced by the UNIQUE constraint on transformations.name.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Database URL: postgres://... for Postgres, or empty/sqlite for SQLite
DATABASE_URL = os.environ.get("TEXTFORGE_DATABASE_URL", "")

# SQLite default path
SQLITE_PATH = Path(
    os.environ.get(
        "TEXTFORGE_SQLITE_PATH", str(Path(__file__).parent / "textforge.db")
    )
)

_initialized = False
_pg_pool = None


def _is_postgres() -> bool:
    """Check if we're using Postgres."""
    return DATABASE_URL.startswith("postgres")


def _get_pg_pool():
    """Get or create the Postgres connection pool (lazy singleton)."""
    global _pg_pool
    if _pg_pool is None:
        import psycopg2.pool
        _pg_pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=1,
            maxconn=5,
            dsn=DATABASE_URL,
        )
        logger.info("PostgreSQL connection pool initialized (1-5 connections)")
    return _pg_pool


@contextmanager
def get_connection():
    """Get a database connection (Postgres or SQLite).

    Usage:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(...)
            conn.commit()
    """
    if _is_postgres():
        pool = _get_pg_pool()
        conn = pool.getconn()
        try:
            yield conn
        finally:
            pool.putconn(conn)
    else:
        conn = sqlite3.connect(str(SQLITE_PATH), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            yield conn
        finally:
            conn.close()


def json_dumps(data: Any) -> str:
    """Serialize data to JSON string for storage."""
    if data is None:
        return "[]"
    return json.dumps(data, ensure_ascii=False, default=str)


def json_loads(text: Any) -> Any:
    """Deserialize JSON string from storage."""
    if not text:
        return []
    if isinstance(text, (dict, list)):
        return text  # Already parsed (Postgres JSONB)
    return json.loads(text)


def is_integrity_error(exc: BaseException) -> bool:
    """True for unique/constraint violations on either backend."""
    if isinstance(exc, sqlite3.IntegrityError):
        return True
    return type(exc).__name__ in ("IntegrityError", "UniqueViolation")


def execute(sql: str, params: tuple = (), fetch: str = "none") -> Any:
    """Execute a SQL statement.

    Args:
        sql: SQL statement (use %s placeholders; adapted for SQLite)
        params: Parameters tuple
        fetch: "none", "one", "all"

    Returns:
        None for "none", dict for "one", list[dict] for "all"
    """
    init_db()

    if _is_postgres():
        adapted_sql = sql
    else:
        adapted_sql = sql.replace("%s", "?")

    with get_connection() as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(adapted_sql, params)
        except Exception:
            conn.rollback()
            raise

        if fetch == "none":
            conn.commit()
            return None
        elif fetch == "one":
            row = cursor.fetchone()
            if row is None:
                return None
            if _is_postgres():
                columns = [desc[0] for desc in cursor.description]
                return dict(zip(columns, row))
            return dict(row)
        elif fetch == "all":
            rows = cursor.fetchall()
            if _is_postgres():
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row)) for row in rows]
            return [dict(row) for row in rows]

        conn.commit()
        return None


def init_db():
    """Create tables if they don't exist."""
    global _initialized
    if _initialized:
        return

    if _is_postgres():
        _init_postgres()
    else:
        SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)
        _init_sqlite()

    _initialized = True
    backend = "PostgreSQL" if _is_postgres() else f"SQLite ({SQLITE_PATH})"
    logger.info(f"Definitions database initialized: {backend}")


def reset_db_state():
    """Forget the initialized flag so the next call re-runs init_db()."""
    global _initialized
    _initialized = False


def _init_postgres():
    """Create Postgres tables."""
    ddl = """
    CREATE TABLE IF NOT EXISTS transformations (
        id VARCHAR(100) PRIMARY KEY,
        name VARCHAR(100) NOT NULL UNIQUE CHECK (length(name) > 0),
        description TEXT DEFAULT '',
        version VARCHAR(50) NOT NULL DEFAULT '1.0.0',
        steps JSONB NOT NULL,
        transformation_type VARCHAR(20) NOT NULL DEFAULT 'yaml',
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS idx_transformations_type
        ON transformations(transformation_type);
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(ddl)
        conn.commit()


def _init_sqlite():
    """Create SQLite tables."""
    ddl = """
    CREATE TABLE IF NOT EXISTS transformations (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE CHECK (length(name) > 0),
        description TEXT DEFAULT '',
        version TEXT NOT NULL DEFAULT '1.0.0',
        steps TEXT NOT NULL,
        transformation_type TEXT NOT NULL DEFAULT 'yaml',
        created_at TEXT,
        updated_at TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_transformations_type
        ON transformations(transformation_type);
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.executescript(ddl)
        conn.commit()
