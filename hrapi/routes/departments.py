from __future__ import annotations

import sqlite3
from typing import Any

from fastapi import APIRouter, HTTPException

from hrapi.services.database import connect_db, fetchall
from hrapi.services.patches import DepartmentCreate

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get("")
async def list_departments() -> list[dict[str, Any]]:
    conn = await connect_db()
    try:
        rows = await fetchall(
            conn,
            """
            SELECT d.id, d.name, COUNT(e.id) AS employee_count
            FROM departments d
            LEFT JOIN employees e ON e.department_id = d.id
            GROUP BY d.id, d.name
            ORDER BY d.name
            """,
        )
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.post("")
async def create_department(body: DepartmentCreate) -> dict[str, Any]:
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="부서명은 필수입니다.")

    conn = await connect_db()
    try:
        try:
            cursor = await conn.execute("INSERT INTO departments (name) VALUES (?)", (name,))
        except sqlite3.IntegrityError:
            raise HTTPException(status_code=409, detail="Department already exists")
        return {"id": cursor.lastrowid, "name": name}
    finally:
        await conn.close()
