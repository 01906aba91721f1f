from __future__ import annotations

import io
import json
import logging
from datetime import date
from typing import Any, Optional

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from hrapi.services.database import fetchall, fetchone
from hrapi.services.dates import format_date, utc_now
from hrapi.services.errors import NotFound, ValidationError
from hrapi.services.lifecycle import get_employee, with_derived_status
from hrapi.services.llm import LLMError, llm_chat_with_usage, try_parse_json_object
from hrapi.services.patches import EMPLOYEE_FIELDS
from hrapi.services.statuses import AssignmentStatus, EmploymentStatus, SiteStatus

logger = logging.getLogger(__name__)

REPORT_KINDS = ("employee_comment", "status_report", "resume_parse")

# Fields a resume can fill in; status and department stay with HR.
RESUME_FIELDS = tuple(field for field in EMPLOYEE_FIELDS if field not in {"status", "department_id"})
RESUME_DATE_FIELDS = {"hire_date", "birth_date"}
MAX_RESUME_CHARS = 12000


async def collect_staffing_facts(conn, today: date) -> dict[str, Any]:
    """Counts and open placements as of ``today``, with site status derived."""
    employee_counts = {status.value: 0 for status in EmploymentStatus}
    for row in await fetchall(conn, "SELECT status, COUNT(*) AS n FROM employees GROUP BY status"):
        employee_counts[row["status"]] = row["n"]

    site_counts = {status.value: 0 for status in SiteStatus}
    sites = [with_derived_status(row, today) for row in await fetchall(conn, "SELECT * FROM sites ORDER BY id")]
    for site in sites:
        site_counts[site["status"]] += 1

    open_rows = await fetchall(
        conn,
        """
        SELECT e.name AS employee, s.name AS site, a.start_date, a.end_date, a.monthly_rate
        FROM assignments a
        JOIN employees e ON e.id = a.employee_id
        JOIN sites s ON s.id = a.site_id
        WHERE a.status = ?
        ORDER BY a.start_date, a.id
        """,
        (AssignmentStatus.IN_PROGRESS.value,),
    )
    server_row = await fetchone(conn, "SELECT COUNT(*) AS n FROM servers")

    return {
        "as_of": today.isoformat(),
        "employees": employee_counts,
        "sites": site_counts,
        "ending_sites": [
            {"name": site["name"], "contract_end": site["contract_end"]}
            for site in sites
            if site["status"] == SiteStatus.IN_PROGRESS.value and site.get("contract_end")
        ],
        "open_assignments": [dict(row) for row in open_rows],
        "servers": server_row["n"] if server_row else 0,
    }


def employee_comment_prompt(employee: dict[str, Any]) -> str:
    return (
        "한국 회사 인사담당자처럼 아래 직원 소개를 2~3줄 한국어로 작성:\n"
        f"이름:{employee['name']}, 부서:{employee.get('department') or '미배정'}, "
        f"직급:{employee.get('position') or '직원'},\n"
        f"입사일:{employee.get('hire_date') or '미상'}, 재직상태:{employee['status']}. "
        "따뜻하고 존중하는 톤."
    )


def status_report_prompt(facts: dict[str, Any]) -> str:
    return (
        "아래 인력 운영 현황 데이터를 바탕으로 경영진에게 보고할 현황 보고서를 한국어로 작성하세요. "
        "인원 현황, 현장 계약 현황, 진행 중인 파견, 곧 종료되는 계약의 위험 요소를 짧은 단락으로 정리하고 "
        "데이터에 없는 내용은 추측하지 마세요.\n\n"
        + json.dumps(facts, ensure_ascii=False, indent=2, default=str)
    )


def resume_prompt(text: str) -> str:
    return (
        "Extract candidate details from the resume below. Return only a JSON object whose keys are a subset of: "
        + ", ".join(RESUME_FIELDS)
        + ". Dates must be YYYY-MM-DD. age must be an integer. Use plain text for the history fields. "
        "Omit keys you cannot find.\n\nRESUME:\n"
        + text[:MAX_RESUME_CHARS]
    )


def extract_resume_text(filename: str, data: bytes) -> str:
    if filename.lower().endswith(".pdf") or data[:5] == b"%PDF-":
        try:
            reader = PdfReader(io.BytesIO(data))
        except PdfReadError as exc:
            raise ValidationError(f"Could not read PDF: {exc}") from exc
        text = "\n".join(page.extract_text() or "" for page in reader.pages)
    else:
        text = data.decode("utf-8", errors="replace")
    text = "\n".join(line.strip() for line in text.splitlines() if line.strip())
    if not text:
        raise ValidationError("Resume contains no readable text")
    return text


def clean_resume_fields(payload: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key in RESUME_FIELDS:
        value = payload.get(key)
        if value in (None, "", [], {}):
            continue
        if key in RESUME_DATE_FIELDS:
            value = format_date(value)
        elif key == "age":
            try:
                value = int(value)
            except (TypeError, ValueError):
                value = None
        elif isinstance(value, (list, dict)):
            value = json.dumps(value, ensure_ascii=False)
        else:
            value = str(value).strip()
        if value:
            fields[key] = value
    return fields


async def save_report(
    conn,
    kind: str,
    subject_id: Optional[int],
    prompt: str,
    content: str,
    model: Optional[str],
) -> int:
    cursor = await conn.execute(
        """
        INSERT INTO ai_reports (kind, subject_id, prompt, content, model, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (kind, subject_id, prompt, content, model, utc_now()),
    )
    return cursor.lastrowid


async def get_report(conn, report_id: int) -> dict[str, Any]:
    row = await fetchone(conn, "SELECT * FROM ai_reports WHERE id = ?", (report_id,))
    if row is None:
        raise NotFound(f"Report {report_id} not found")
    return dict(row)


async def generate_employee_comment(conn, employee_id: int) -> dict[str, Any]:
    employee = await get_employee(conn, employee_id)
    prompt = employee_comment_prompt(employee)
    response = await llm_chat_with_usage([{"role": "user", "content": prompt}], max_tokens=300)
    report_id = await save_report(conn, "employee_comment", employee_id, prompt, response.text, response.model)
    return {"comment": response.text, "report_id": report_id}


async def generate_status_report(conn, today: date) -> dict[str, Any]:
    facts = await collect_staffing_facts(conn, today)
    prompt = status_report_prompt(facts)
    response = await llm_chat_with_usage(
        [
            {"role": "system", "content": "You are an HR operations analyst writing concise internal reports."},
            {"role": "user", "content": prompt},
        ],
        temperature=0.3,
        max_tokens=900,
    )
    report_id = await save_report(conn, "status_report", None, prompt, response.text, response.model)
    logger.info("Status report %s generated as of %s", report_id, facts["as_of"])
    return {"report_id": report_id, "content": response.text, "facts": facts}


async def parse_resume(conn, filename: str, data: bytes) -> dict[str, Any]:
    text = extract_resume_text(filename, data)
    prompt = resume_prompt(text)
    response = await llm_chat_with_usage(
        [
            {"role": "system", "content": "You convert resumes into structured HR records. Reply with JSON only."},
            {"role": "user", "content": prompt},
        ],
        temperature=0.0,
        max_tokens=1200,
    )
    payload = try_parse_json_object(response.text)
    if payload is None:
        raise LLMError("Resume parser did not return a JSON object")
    fields = clean_resume_fields(payload)
    report_id = await save_report(
        conn,
        "resume_parse",
        None,
        prompt,
        json.dumps(fields, ensure_ascii=False),
        response.model,
    )
    return {"fields": fields, "raw_text_chars": len(text), "report_id": report_id}
