from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiosqlite

from hrapi.services.config import get_settings
from hrapi.services.errors import StoreError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS departments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS employees (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    department_id INTEGER REFERENCES departments(id) ON DELETE SET NULL,
    position TEXT,
    hire_date TEXT,
    email TEXT,
    phone TEXT,
    age INTEGER,
    address TEXT,
    applied_part TEXT,
    birth_date TEXT,
    status TEXT NOT NULL DEFAULT '대기',
    gender TEXT,
    current_company TEXT,
    current_applied_part TEXT,
    current_position TEXT,
    project_history TEXT,
    work_history TEXT,
    work_period TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    client_name TEXT,
    address TEXT,
    contract_start TEXT,
    contract_end TEXT,
    status TEXT,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    employee_id INTEGER NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
    site_id INTEGER NOT NULL REFERENCES sites(id),
    start_date TEXT,
    end_date TEXT,
    monthly_rate REAL,
    status TEXT NOT NULL DEFAULT '진행중',
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_assignments_one_open
    ON assignments(employee_id) WHERE status = '진행중';
CREATE INDEX IF NOT EXISTS ix_assignments_site ON assignments(site_id);

CREATE TABLE IF NOT EXISTS skills (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE
);

CREATE TABLE IF NOT EXISTS employee_skills (
    employee_id INTEGER NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
    skill_id INTEGER NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
    PRIMARY KEY (employee_id, skill_id)
);

CREATE TABLE IF NOT EXISTS servers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    host TEXT NOT NULL,
    port INTEGER,
    purpose TEXT,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS ai_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    subject_id INTEGER,
    prompt TEXT NOT NULL,
    content TEXT NOT NULL,
    model TEXT,
    created_at TEXT NOT NULL
);
"""


async def connect_db() -> aiosqlite.Connection:
    settings = get_settings()
    try:
        # Autocommit mode: multi-statement writes open their own transaction().
        conn = await aiosqlite.connect(
            settings.resolved_database_path,
            timeout=settings.db_busy_timeout_seconds,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as exc:
        raise StoreError(f"Cannot open database: {exc}") from exc
    return conn


async def init_db() -> None:
    path = get_settings().resolved_database_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await connect_db()
    try:
        await conn.executescript(SCHEMA_SQL)
    finally:
        await conn.close()
    logger.info("Database ready at %s", path)


def _store_error(exc: sqlite3.Error) -> StoreError:
    logger.error("Store failure: %s", exc)
    return StoreError(str(exc))


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block under the SQLite write lock; roll back on any error.

    ``sqlite3.Error`` raised while taking the lock, inside the block or on
    commit (other than integrity violations, which callers translate
    themselves) surfaces as :class:`StoreError`.
    """
    try:
        await conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as exc:
        raise _store_error(exc) from exc

    try:
        yield conn
    except BaseException as exc:
        await conn.execute("ROLLBACK")
        if isinstance(exc, sqlite3.Error) and not isinstance(exc, sqlite3.IntegrityError):
            logger.exception("Store failure, transaction rolled back")
            raise StoreError(str(exc)) from exc
        raise

    try:
        await conn.execute("COMMIT")
    except sqlite3.Error as exc:
        if conn.in_transaction:
            await conn.execute("ROLLBACK")
        raise _store_error(exc) from exc


async def fetchall(conn, query: str, params: tuple[Any, ...] = ()) -> list[Any]:
    try:
        cursor = await conn.execute(query, params)
        return await cursor.fetchall()
    except sqlite3.Error as exc:
        raise _store_error(exc) from exc


async def fetchone(conn, query: str, params: tuple[Any, ...] = ()) -> Optional[Any]:
    try:
        cursor = await conn.execute(query, params)
        return await cursor.fetchone()
    except sqlite3.Error as exc:
        raise _store_error(exc) from exc
