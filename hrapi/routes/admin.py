from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from fastapi import APIRouter, HTTPException

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reset")
async def reset_database() -> dict[str, str]:
    script = Path(__file__).resolve().parents[2] / "scripts" / "reset_db.py"
    if not script.exists():
        raise HTTPException(status_code=500, detail="Reset script not found")

    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        str(script),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise HTTPException(status_code=500, detail=stderr.decode().strip() or "Reset failed")

    return {
        "status": "ok",
        "message": stdout.decode().strip().splitlines()[0] if stdout.strip() else "Reset complete",
    }
