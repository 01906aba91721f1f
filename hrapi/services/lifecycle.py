"""Employee / assignment status lifecycle and site status derivation.

An employee is 파견중 (dispatched) exactly while it holds one open
(진행중) assignment. Every multi-statement operation below runs inside a
single write-locked transaction, so a failure part way leaves nothing
behind and two concurrent dispatches of the same employee cannot both
succeed.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from hrapi.services.database import fetchall, fetchone, transaction
from hrapi.services.dates import DateLike, format_date, local_today, parse_local_date, utc_now
from hrapi.services.errors import ConflictError, NotFound, ValidationError
from hrapi.services.patches import (
    ASSIGNMENT_FIELDS,
    EMPLOYEE_FIELDS,
    AssignmentPatch,
    EmployeeCreate,
    EmployeePatch,
    sparse_values,
)
from hrapi.services.statuses import AssignmentStatus, EmploymentStatus, SiteStatus

logger = logging.getLogger(__name__)

Patch = Union[BaseModel, Mapping[str, Any]]

EMPLOYEE_SELECT = """
    SELECT e.*, d.name AS department
    FROM employees e
    LEFT JOIN departments d ON e.department_id = d.id
"""

ASSIGNMENT_SELECT = """
    SELECT a.*, e.name AS employee_name, s.name AS site_name
    FROM assignments a
    JOIN employees e ON e.id = a.employee_id
    JOIN sites s ON s.id = a.site_id
"""


def derive_site_status(contract_start: DateLike, contract_end: DateLike, today: date) -> SiteStatus:
    end = parse_local_date(contract_end)
    if end is not None and end < today:
        return SiteStatus.ENDED
    start = parse_local_date(contract_start)
    if start is not None and start > today:
        return SiteStatus.PENDING
    return SiteStatus.IN_PROGRESS


def with_derived_status(row: Mapping[str, Any], today: date) -> dict[str, Any]:
    """Copy of a site row whose ``status`` reflects the contract dates."""
    site = dict(row)
    site["status"] = derive_site_status(site.get("contract_start"), site.get("contract_end"), today).value
    return site


async def get_employee(conn, employee_id: int) -> dict[str, Any]:
    row = await fetchone(conn, EMPLOYEE_SELECT + " WHERE e.id = ?", (employee_id,))
    if row is None:
        raise NotFound(f"Employee {employee_id} not found")
    return dict(row)


async def get_assignment(conn, assignment_id: int) -> dict[str, Any]:
    row = await fetchone(conn, ASSIGNMENT_SELECT + " WHERE a.id = ?", (assignment_id,))
    if row is None:
        raise NotFound(f"Assignment {assignment_id} not found")
    return dict(row)


async def _require_site(conn, site_id: int) -> None:
    if await fetchone(conn, "SELECT id FROM sites WHERE id = ?", (site_id,)) is None:
        raise NotFound(f"Site {site_id} not found")


async def _require_department(conn, department_id: Optional[int]) -> None:
    if department_id is None:
        return
    if await fetchone(conn, "SELECT id FROM departments WHERE id = ?", (department_id,)) is None:
        raise NotFound(f"Department {department_id} not found")


async def _open_assignment_ids(conn, employee_id: int, exclude_id: Optional[int] = None) -> list[int]:
    rows = await fetchall(
        conn,
        "SELECT id FROM assignments WHERE employee_id = ? AND status = ? AND id != ?",
        (employee_id, AssignmentStatus.IN_PROGRESS.value, exclude_id or 0),
    )
    return [row["id"] for row in rows]


async def _set_employee_status(conn, employee_id: int, status: EmploymentStatus) -> None:
    await conn.execute("UPDATE employees SET status = ? WHERE id = ?", (status.value, employee_id))


async def _apply(conn, table: str, row_id: int, values: Mapping[str, Any]) -> None:
    if not values:
        return
    # Column names come from the fixed allow-lists, never from the request.
    assignments = ", ".join(f"{column} = ?" for column in values)
    await conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        (*values.values(), row_id),
    )


async def create_employee(conn, body: Patch) -> dict[str, Any]:
    values = sparse_values(body, EMPLOYEE_FIELDS, EmployeeCreate)
    if not values.get("name"):
        raise ValidationError("이름은 필수입니다.")
    status = values.get("status") or EmploymentStatus.WAITING.value
    if status == EmploymentStatus.DISPATCHED.value:
        raise ValidationError("New employees are dispatched by creating an assignment")
    values["status"] = status
    values["created_at"] = utc_now()

    async with transaction(conn):
        await _require_department(conn, values.get("department_id"))
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = await conn.execute(
            f"INSERT INTO employees ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        employee_id = cursor.lastrowid

    logger.info("Employee %s created with status %s", employee_id, status)
    return await get_employee(conn, employee_id)


async def update_employee(
    conn,
    employee_id: int,
    patch: Patch,
    today: Optional[date] = None,
) -> dict[str, Any]:
    values = sparse_values(patch, EMPLOYEE_FIELDS, EmployeePatch)
    if "name" in values and not values["name"]:
        raise ValidationError("이름은 필수입니다.")
    if "status" in values and values["status"] is None:
        raise ValidationError("Employment status cannot be cleared")
    today = today or local_today()
    new_status = values.get("status")

    async with transaction(conn):
        current = await get_employee(conn, employee_id)
        if "department_id" in values:
            await _require_department(conn, values["department_id"])

        was_dispatched = current["status"] == EmploymentStatus.DISPATCHED.value
        if new_status == EmploymentStatus.DISPATCHED.value and not was_dispatched:
            if not await _open_assignment_ids(conn, employee_id):
                raise ValidationError("Employees are dispatched by creating an assignment")

        await _apply(conn, "employees", employee_id, values)

        if was_dispatched and new_status is not None and new_status != EmploymentStatus.DISPATCHED.value:
            cursor = await conn.execute(
                """
                UPDATE assignments
                SET status = ?, end_date = ?
                WHERE employee_id = ? AND status = ?
                """,
                (
                    AssignmentStatus.ENDED.value,
                    today.isoformat(),
                    employee_id,
                    AssignmentStatus.IN_PROGRESS.value,
                ),
            )
            logger.info(
                "Employee %s left dispatch (%s); closed %d open assignment(s)",
                employee_id,
                new_status,
                cursor.rowcount,
            )

    return await get_employee(conn, employee_id)


async def delete_employee(conn, employee_id: int) -> None:
    async with transaction(conn):
        await get_employee(conn, employee_id)
        if await _open_assignment_ids(conn, employee_id):
            raise ConflictError("Employee has an open assignment; end it before deleting the employee")
        await conn.execute("DELETE FROM employees WHERE id = ?", (employee_id,))
    logger.info("Employee %s deleted", employee_id)


async def create_assignment(
    conn,
    employee_id: int,
    site_id: int,
    start_date: DateLike = None,
    end_date: DateLike = None,
    monthly_rate: Optional[float] = None,
) -> dict[str, Any]:
    try:
        async with transaction(conn):
            await get_employee(conn, employee_id)
            await _require_site(conn, site_id)
            open_ids = await _open_assignment_ids(conn, employee_id)
            if open_ids:
                logger.warning(
                    "Refused second dispatch of employee %s (open assignment %s)", employee_id, open_ids[0]
                )
                raise ConflictError(
                    f"Employee {employee_id} already has open assignment {open_ids[0]}"
                )
            cursor = await conn.execute(
                """
                INSERT INTO assignments (employee_id, site_id, start_date, end_date, monthly_rate, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    employee_id,
                    site_id,
                    format_date(start_date),
                    format_date(end_date),
                    monthly_rate or None,
                    AssignmentStatus.IN_PROGRESS.value,
                    utc_now(),
                ),
            )
            assignment_id = cursor.lastrowid
            await _set_employee_status(conn, employee_id, EmploymentStatus.DISPATCHED)
    except sqlite3.IntegrityError as exc:
        raise ConflictError(f"Employee {employee_id} already has an open assignment") from exc

    logger.info("Employee %s dispatched to site %s (assignment %s)", employee_id, site_id, assignment_id)
    return await get_assignment(conn, assignment_id)


async def update_assignment(
    conn,
    assignment_id: int,
    patch: Patch,
    today: Optional[date] = None,
) -> dict[str, Any]:
    values = sparse_values(patch, ASSIGNMENT_FIELDS, AssignmentPatch)
    if "status" in values and values["status"] is None:
        raise ValidationError("Assignment status cannot be cleared")
    if "site_id" in values and values["site_id"] is None:
        raise ValidationError("Assignment site cannot be cleared")
    today = today or local_today()
    new_status = values.get("status")

    try:
        async with transaction(conn):
            current = await get_assignment(conn, assignment_id)
            employee_id = current["employee_id"]
            if "site_id" in values:
                await _require_site(conn, values["site_id"])

            was_open = current["status"] == AssignmentStatus.IN_PROGRESS.value
            reopening = new_status == AssignmentStatus.IN_PROGRESS.value and not was_open
            if new_status == AssignmentStatus.ENDED.value and was_open and not values.get("end_date"):
                values["end_date"] = today.isoformat()
            if reopening and await _open_assignment_ids(conn, employee_id, exclude_id=assignment_id):
                raise ConflictError(f"Employee {employee_id} already has an open assignment")

            await _apply(conn, "assignments", assignment_id, values)

            if new_status == AssignmentStatus.ENDED.value:
                if not await _open_assignment_ids(conn, employee_id):
                    await _set_employee_status(conn, employee_id, EmploymentStatus.WAITING)
                    logger.info("Assignment %s ended; employee %s back to waiting", assignment_id, employee_id)
            elif reopening:
                await _set_employee_status(conn, employee_id, EmploymentStatus.DISPATCHED)
                logger.info("Assignment %s reopened; employee %s dispatched", assignment_id, employee_id)
    except sqlite3.IntegrityError as exc:
        raise ConflictError(str(exc)) from exc

    return await get_assignment(conn, assignment_id)


async def delete_assignment(conn, assignment_id: int) -> None:
    async with transaction(conn):
        current = await get_assignment(conn, assignment_id)
        employee_id = current["employee_id"]
        await conn.execute("DELETE FROM assignments WHERE id = ?", (assignment_id,))
        if not await _open_assignment_ids(conn, employee_id):
            await _set_employee_status(conn, employee_id, EmploymentStatus.WAITING)
    logger.info("Assignment %s of employee %s deleted", assignment_id, employee_id)
