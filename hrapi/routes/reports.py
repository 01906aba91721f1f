from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from hrapi.services.database import connect_db, fetchall
from hrapi.services.dates import local_today
from hrapi.services.llm import llm_enabled
from hrapi.services.reports import REPORT_KINDS, collect_staffing_facts, generate_status_report, get_report

router = APIRouter(tags=["reports"])


@router.get("/api/dashboard")
async def dashboard() -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await collect_staffing_facts(conn, local_today())
    finally:
        await conn.close()


@router.post("/api/reports/status")
async def create_status_report() -> dict[str, Any]:
    if not llm_enabled():
        raise HTTPException(
            status_code=400,
            detail="AI features require USE_REAL_LLM=true and OPENAI_API_KEY configured.",
        )

    conn = await connect_db()
    try:
        return await generate_status_report(conn, local_today())
    finally:
        await conn.close()


@router.get("/api/reports")
async def list_reports(kind: Optional[str] = None, limit: int = 100) -> list[dict[str, Any]]:
    if kind is not None and kind not in REPORT_KINDS:
        raise HTTPException(status_code=400, detail=f"kind must be one of {', '.join(REPORT_KINDS)}")

    conn = await connect_db()
    try:
        if kind:
            rows = await fetchall(
                conn,
                """
                SELECT id, kind, subject_id, content, model, created_at
                FROM ai_reports
                WHERE kind = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (kind, limit),
            )
        else:
            rows = await fetchall(
                conn,
                """
                SELECT id, kind, subject_id, content, model, created_at
                FROM ai_reports
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            )
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.get("/api/reports/{report_id}")
async def read_report(report_id: int) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await get_report(conn, report_id)
    finally:
        await conn.close()
