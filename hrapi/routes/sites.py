from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from hrapi.services.database import connect_db, fetchall, fetchone
from hrapi.services.dates import local_today
from hrapi.services.lifecycle import with_derived_status
from hrapi.services.patches import SITE_FIELDS, SiteCreate, SitePatch, sparse_values
from hrapi.services.statuses import SiteStatus

router = APIRouter(prefix="/api/sites", tags=["sites"])


async def _site_or_404(conn, site_id: int) -> dict[str, Any]:
    row = await fetchone(conn, "SELECT * FROM sites WHERE id = ?", (site_id,))
    if row is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return with_derived_status(row, local_today())


@router.get("")
async def list_sites(status: Optional[SiteStatus] = None) -> list[dict[str, Any]]:
    conn = await connect_db()
    try:
        rows = await fetchall(conn, "SELECT * FROM sites ORDER BY id DESC")
    finally:
        await conn.close()

    today = local_today()
    sites = [with_derived_status(row, today) for row in rows]
    if status is not None:
        sites = [site for site in sites if site["status"] == status.value]
    return sites


@router.get("/{site_id}")
async def get_site(site_id: int) -> dict[str, Any]:
    conn = await connect_db()
    try:
        return await _site_or_404(conn, site_id)
    finally:
        await conn.close()


@router.post("")
async def create_site(body: SiteCreate) -> dict[str, Any]:
    values = sparse_values(body, SITE_FIELDS)
    if not values.get("name"):
        raise HTTPException(status_code=400, detail="현장명은 필수입니다.")

    conn = await connect_db()
    try:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = await conn.execute(
            f"INSERT INTO sites ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        return await _site_or_404(conn, cursor.lastrowid)
    finally:
        await conn.close()


@router.put("/{site_id}")
@router.patch("/{site_id}")
async def update_site(site_id: int, body: SitePatch) -> dict[str, Any]:
    values = sparse_values(body, SITE_FIELDS)
    if "name" in values and not values["name"]:
        raise HTTPException(status_code=400, detail="현장명은 필수입니다.")

    conn = await connect_db()
    try:
        await _site_or_404(conn, site_id)
        if values:
            assignments = ", ".join(f"{column} = ?" for column in values)
            await conn.execute(
                f"UPDATE sites SET {assignments} WHERE id = ?",
                (*values.values(), site_id),
            )
        return await _site_or_404(conn, site_id)
    finally:
        await conn.close()


@router.delete("/{site_id}")
async def delete_site(site_id: int) -> dict[str, str]:
    conn = await connect_db()
    try:
        await _site_or_404(conn, site_id)
        row = await fetchone(conn, "SELECT COUNT(*) AS n FROM assignments WHERE site_id = ?", (site_id,))
        if row["n"]:
            raise HTTPException(status_code=409, detail="Site still has assignments")
        await conn.execute("DELETE FROM sites WHERE id = ?", (site_id,))
        return {"status": "ok"}
    finally:
        await conn.close()
