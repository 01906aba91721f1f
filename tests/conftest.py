"""
Shared fixtures: every test runs against its own temporary SQLite file.
"""
from __future__ import annotations

import asyncio
import sqlite3
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from hrapi.services.config import get_settings
from hrapi.services.database import connect_db, init_db

TODAY = date(2024, 6, 15)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "hr.db"
    monkeypatch.setenv("DATABASE_PATH", str(path))
    monkeypatch.setenv("TIMEZONE", "Asia/Seoul")
    monkeypatch.setenv("USE_REAL_LLM", "false")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    asyncio.run(init_db())
    yield path
    get_settings.cache_clear()


@pytest.fixture
def insert(database):
    """Insert a row directly, bypassing the lifecycle engine."""

    def _insert(table: str, **values: Any) -> int:
        if table in {"employees", "assignments"}:
            values.setdefault("created_at", "2024-01-01T00:00:00Z")
        conn = sqlite3.connect(database)
        try:
            columns = ", ".join(values)
            placeholders = ", ".join("?" for _ in values)
            cursor = conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    return _insert


@pytest.fixture
def query(database):
    def _query(sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        conn = sqlite3.connect(database)
        conn.row_factory = sqlite3.Row
        try:
            return [dict(row) for row in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    return _query


@pytest.fixture
def with_conn():
    """Run ``fn(conn)`` on a fresh aiosqlite connection and return its result."""

    def _run(fn):
        async def _inner():
            conn = await connect_db()
            try:
                return await fn(conn)
            finally:
                await conn.close()

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def staff(insert) -> dict[str, int]:
    department = insert("departments", name="개발팀")
    return {
        "department": department,
        "waiting": insert("employees", name="김민준", department_id=department, status="대기", position="대리"),
        "resigned": insert("employees", name="이서연", status="퇴사"),
        "active": insert("employees", name="박도윤", status="재직"),
        "site_a": insert("sites", name="한빛은행 차세대", contract_start="2024-01-01", contract_end="2024-12-31"),
        "site_b": insert("sites", name="미래카드 운영", contract_start="2024-07-01"),
    }
