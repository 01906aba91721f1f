from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter

from hrapi.services import lifecycle
from hrapi.services.database import connect_db, fetchall
from hrapi.services.patches import AssignmentCreate, AssignmentPatch
from hrapi.services.statuses import AssignmentStatus

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.get("")
async def list_assignments(
    status: Optional[AssignmentStatus] = None,
    employee_id: Optional[int] = None,
    site_id: Optional[int] = None,
) -> list[dict[str, Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if status is not None:
        clauses.append("a.status = ?")
        params.append(status.value)
    if employee_id is not None:
        clauses.append("a.employee_id = ?")
        params.append(employee_id)
    if site_id is not None:
        clauses.append("a.site_id = ?")
        params.append(site_id)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

    conn = await connect_db()
    try:
        rows = await fetchall(conn, lifecycle.ASSIGNMENT_SELECT + where + " ORDER BY a.id DESC", tuple(params))
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: int) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await lifecycle.get_assignment(conn, assignment_id)
    finally:
        await conn.close()


@router.post("")
async def create_assignment(body: AssignmentCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await lifecycle.create_assignment(
            conn,
            body.employee_id,
            body.site_id,
            start_date=body.start_date,
            end_date=body.end_date,
            monthly_rate=body.monthly_rate,
        )
    finally:
        await conn.close()


@router.put("/{assignment_id}")
@router.patch("/{assignment_id}")
async def update_assignment(assignment_id: int, body: AssignmentPatch) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await lifecycle.update_assignment(conn, assignment_id, body)
    finally:
        await conn.close()


@router.delete("/{assignment_id}")
async def delete_assignment(assignment_id: int) -> dict[str, str]:
    conn = await connect_db()
    try:
        await lifecycle.delete_assignment(conn, assignment_id)
        return {"status": "ok"}
    finally:
        await conn.close()
