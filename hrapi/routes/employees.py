from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel

from hrapi.services import lifecycle
from hrapi.services.database import connect_db, fetchall
from hrapi.services.llm import llm_enabled
from hrapi.services.patches import EmployeeCreate, EmployeePatch
from hrapi.services.reports import generate_employee_comment, parse_resume
from hrapi.services.skills import read_skills, write_skills
from hrapi.services.statuses import EmploymentStatus

router = APIRouter(prefix="/api/employees", tags=["employees"])

LLM_DISABLED = "AI features require USE_REAL_LLM=true and OPENAI_API_KEY configured."


class SkillsUpdateRequest(BaseModel):
    skills: list[str]


@router.get("")
async def list_employees(
    status: Optional[EmploymentStatus] = None,
    department_id: Optional[int] = None,
) -> list[dict[str, Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if status is not None:
        clauses.append("e.status = ?")
        params.append(status.value)
    if department_id is not None:
        clauses.append("e.department_id = ?")
        params.append(department_id)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

    conn = await connect_db()
    try:
        rows = await fetchall(conn, lifecycle.EMPLOYEE_SELECT + where + " ORDER BY e.id", tuple(params))
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.post("")
async def create_employee(body: EmployeeCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        employee = await lifecycle.create_employee(conn, body)
        return {"message": "직원 추가 성공", "id": employee["id"]}
    finally:
        await conn.close()


@router.post("/parse-resume")
async def parse_resume_upload(file: UploadFile = File(...)) -> dict[str, Any]:
    if not llm_enabled():
        raise HTTPException(status_code=400, detail=LLM_DISABLED)
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    conn = await connect_db()
    try:
        return await parse_resume(conn, file.filename or "resume", data)
    finally:
        await conn.close()


@router.get("/{employee_id}")
async def get_employee(employee_id: int) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await lifecycle.get_employee(conn, employee_id)
    finally:
        await conn.close()


@router.put("/{employee_id}")
@router.patch("/{employee_id}")
async def update_employee(employee_id: int, body: EmployeePatch) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await lifecycle.update_employee(conn, employee_id, body)
    finally:
        await conn.close()


@router.delete("/{employee_id}")
async def delete_employee(employee_id: int) -> dict[str, str]:
    conn = await connect_db()
    try:
        await lifecycle.delete_employee(conn, employee_id)
        return {"status": "ok"}
    finally:
        await conn.close()


@router.get("/{employee_id}/assignments")
async def list_employee_assignments(employee_id: int) -> list[dict[str, Any]]:
    conn = await connect_db()
    try:
        await lifecycle.get_employee(conn, employee_id)
        rows = await fetchall(
            conn,
            lifecycle.ASSIGNMENT_SELECT + " WHERE a.employee_id = ? ORDER BY a.id DESC",
            (employee_id,),
        )
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.get("/{employee_id}/skills")
async def get_skills(employee_id: int) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return {"employee_id": employee_id, "skills": await read_skills(conn, employee_id)}
    finally:
        await conn.close()


@router.put("/{employee_id}/skills")
async def put_skills(employee_id: int, body: SkillsUpdateRequest) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return {"employee_id": employee_id, "skills": await write_skills(conn, employee_id, body.skills)}
    finally:
        await conn.close()


@router.post("/{employee_id}/ai-comment")
async def ai_comment(employee_id: int) -> dict[str, Any]:
    if not llm_enabled():
        raise HTTPException(status_code=400, detail=LLM_DISABLED)

    conn = await connect_db()
    try:
        return await generate_employee_comment(conn, employee_id)
    finally:
        await conn.close()
