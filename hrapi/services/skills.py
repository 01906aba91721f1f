from __future__ import annotations

from hrapi.services.database import fetchall, transaction
from hrapi.services.lifecycle import get_employee


def normalize_skill_names(names: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        cleaned = " ".join(str(name).split())
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


async def read_skills(conn, employee_id: int) -> list[str]:
    await get_employee(conn, employee_id)
    rows = await fetchall(
        conn,
        """
        SELECT s.name
        FROM employee_skills es
        JOIN skills s ON s.id = es.skill_id
        WHERE es.employee_id = ?
        ORDER BY s.name
        """,
        (employee_id,),
    )
    return [row["name"] for row in rows]


async def write_skills(conn, employee_id: int, names: list[str]) -> list[str]:
    """Replace an employee's skill tags, creating unknown skills on the fly."""
    cleaned = normalize_skill_names(names)
    async with transaction(conn):
        await get_employee(conn, employee_id)
        await conn.execute("DELETE FROM employee_skills WHERE employee_id = ?", (employee_id,))
        for name in cleaned:
            await conn.execute("INSERT OR IGNORE INTO skills (name) VALUES (?)", (name,))
            await conn.execute(
                """
                INSERT OR IGNORE INTO employee_skills (employee_id, skill_id)
                SELECT ?, id FROM skills WHERE name = ?
                """,
                (employee_id, name),
            )
    return await read_skills(conn, employee_id)
