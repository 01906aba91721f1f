from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from hrapi.services.database import connect_db, fetchall, fetchone
from hrapi.services.patches import SERVER_FIELDS, ServerCreate, ServerPatch, sparse_values

router = APIRouter(prefix="/api/servers", tags=["servers"])


async def _server_or_404(conn, server_id: int) -> dict[str, Any]:
    row = await fetchone(conn, "SELECT * FROM servers WHERE id = ?", (server_id,))
    if row is None:
        raise HTTPException(status_code=404, detail="Server not found")
    return dict(row)


@router.get("")
async def list_servers() -> list[dict[str, Any]]:
    conn = await connect_db()
    try:
        rows = await fetchall(conn, "SELECT * FROM servers ORDER BY name, id")
        return [dict(row) for row in rows]
    finally:
        await conn.close()


@router.post("")
async def create_server(body: ServerCreate) -> dict[str, Any]:
    values = sparse_values(body, SERVER_FIELDS)
    if not values.get("name") or not values.get("host"):
        raise HTTPException(status_code=400, detail="name and host are required")

    conn = await connect_db()
    try:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = await conn.execute(
            f"INSERT INTO servers ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        return await _server_or_404(conn, cursor.lastrowid)
    finally:
        await conn.close()


@router.put("/{server_id}")
@router.patch("/{server_id}")
async def update_server(server_id: int, body: ServerPatch) -> dict[str, Any]:
    values = sparse_values(body, SERVER_FIELDS)
    for required in ("name", "host"):
        if required in values and not values[required]:
            raise HTTPException(status_code=400, detail=f"{required} cannot be blank")

    conn = await connect_db()
    try:
        await _server_or_404(conn, server_id)
        if values:
            assignments = ", ".join(f"{column} = ?" for column in values)
            await conn.execute(
                f"UPDATE servers SET {assignments} WHERE id = ?",
                (*values.values(), server_id),
            )
        return await _server_or_404(conn, server_id)
    finally:
        await conn.close()


@router.delete("/{server_id}")
async def delete_server(server_id: int) -> dict[str, str]:
    conn = await connect_db()
    try:
        await _server_or_404(conn, server_id)
        await conn.execute("DELETE FROM servers WHERE id = ?", (server_id,))
        return {"status": "ok"}
    finally:
        await conn.close()
