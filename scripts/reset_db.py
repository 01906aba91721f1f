#!/usr/bin/env python3
from __future__ import annotations

import random
import sqlite3
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hrapi.services.config import get_settings
from hrapi.services.database import SCHEMA_SQL
from hrapi.services.dates import local_today, utc_now
from hrapi.services.statuses import AssignmentStatus, EmploymentStatus

RANDOM_SEED = 42

TABLES = [
    "ai_reports",
    "employee_skills",
    "skills",
    "assignments",
    "servers",
    "sites",
    "employees",
    "departments",
]

DEPARTMENTS = ["개발팀", "인프라팀", "경영지원팀", "영업팀"]

SURNAMES = ["김", "이", "박", "최", "정", "강", "조", "윤", "장", "임"]
GIVEN_NAMES = ["민준", "서연", "도윤", "지우", "하준", "서윤", "은우", "지민", "시우", "수아", "예준", "하은"]
POSITIONS = ["사원", "주임", "대리", "과장", "차장"]
APPLIED_PARTS = ["백엔드", "프론트엔드", "DBA", "네트워크", "QA", "PM"]
SKILLS = ["Java", "Spring", "Python", "React", "Oracle", "MySQL", "Linux", "AWS", "Kubernetes", "Figma"]

SERVERS = [
    {"name": "hr-api", "host": "192.168.40.56", "port": 4000, "purpose": "HR API", "notes": None},
    {"name": "hr-db", "host": "192.168.40.57", "port": 3306, "purpose": "MySQL primary", "notes": "nightly backup 02:00"},
    {"name": "build", "host": "192.168.40.60", "port": 8080, "purpose": "CI runner", "notes": None},
    {"name": "nas", "host": "192.168.40.10", "port": 445, "purpose": "File share", "notes": "resume archive"},
]


def db_path() -> Path:
    return get_settings().resolved_database_path


def build_sites(today: date) -> list[dict[str, Any]]:
    return [
        {"name": "한빛은행 차세대", "client_name": "한빛은행", "address": "서울 중구",
         "contract_start": (today - timedelta(days=200)).isoformat(),
         "contract_end": (today + timedelta(days=160)).isoformat()},
        {"name": "미래카드 운영", "client_name": "미래카드", "address": "서울 영등포구",
         "contract_start": (today - timedelta(days=400)).isoformat(),
         "contract_end": (today + timedelta(days=20)).isoformat()},
        {"name": "대한물류 WMS", "client_name": "대한물류", "address": "경기 이천시",
         "contract_start": (today - timedelta(days=500)).isoformat(),
         "contract_end": (today - timedelta(days=30)).isoformat()},
        {"name": "새봄병원 EMR", "client_name": "새봄병원", "address": "대전 서구",
         "contract_start": (today + timedelta(days=45)).isoformat(),
         "contract_end": (today + timedelta(days=410)).isoformat()},
        {"name": "사내 유지보수", "client_name": "KCS", "address": "본사",
         "contract_start": None, "contract_end": None},
    ]


def build_employees(department_ids: list[int], today: date) -> list[dict[str, Any]]:
    random.seed(RANDOM_SEED)
    rows = []
    for idx in range(18):
        name = SURNAMES[idx % len(SURNAMES)] + GIVEN_NAMES[(idx * 5) % len(GIVEN_NAMES)]
        age = random.randint(24, 52)
        rows.append(
            {
                "name": name,
                "department_id": department_ids[idx % len(department_ids)],
                "position": random.choice(POSITIONS),
                "hire_date": (today - timedelta(days=random.randint(60, 3000))).isoformat(),
                "email": f"emp{idx + 1:02d}@kcs.example",
                "phone": f"010-{random.randint(1000, 9999)}-{random.randint(1000, 9999)}",
                "age": age,
                "applied_part": random.choice(APPLIED_PARTS),
                "birth_date": date(today.year - age, random.randint(1, 12), random.randint(1, 28)).isoformat(),
                "status": EmploymentStatus.WAITING.value,
                "gender": random.choice(["남", "여"]),
                "created_at": utc_now(),
            }
        )
    rows[-1]["status"] = EmploymentStatus.RESIGNED.value
    rows[-2]["status"] = EmploymentStatus.ACTIVE.value
    rows[-3]["status"] = EmploymentStatus.ACTIVE.value
    return rows


def seed_database(conn: sqlite3.Connection, today: date) -> None:
    for table in TABLES:
        conn.execute(f"DROP TABLE IF EXISTS {table}")
    conn.executescript(SCHEMA_SQL)

    conn.executemany("INSERT INTO departments (name) VALUES (?)", [(name,) for name in DEPARTMENTS])
    department_ids = [row[0] for row in conn.execute("SELECT id FROM departments ORDER BY id").fetchall()]

    conn.executemany(
        """
        INSERT INTO employees (name, department_id, position, hire_date, email, phone, age, applied_part,
                               birth_date, status, gender, created_at)
        VALUES (:name, :department_id, :position, :hire_date, :email, :phone, :age, :applied_part,
                :birth_date, :status, :gender, :created_at)
        """,
        build_employees(department_ids, today),
    )
    conn.executemany(
        """
        INSERT INTO sites (name, client_name, address, contract_start, contract_end)
        VALUES (:name, :client_name, :address, :contract_start, :contract_end)
        """,
        build_sites(today),
    )
    conn.executemany(
        "INSERT INTO servers (name, host, port, purpose, notes) VALUES (:name, :host, :port, :purpose, :notes)",
        SERVERS,
    )
    conn.executemany("INSERT INTO skills (name) VALUES (?)", [(name,) for name in SKILLS])

    employee_ids = [row[0] for row in conn.execute("SELECT id FROM employees ORDER BY id").fetchall()]
    site_ids = [row[0] for row in conn.execute("SELECT id FROM sites ORDER BY id").fetchall()]
    skill_ids = [row[0] for row in conn.execute("SELECT id FROM skills ORDER BY id").fetchall()]

    random.seed(RANDOM_SEED)
    links = set()
    for employee_id in employee_ids:
        for skill_id in random.sample(skill_ids, 3):
            links.add((employee_id, skill_id))
    conn.executemany("INSERT INTO employee_skills (employee_id, skill_id) VALUES (?, ?)", sorted(links))

    # Ended history on the expired contract, open placements on the live ones.
    history = [
        (employee_ids[0], site_ids[2], today - timedelta(days=480), today - timedelta(days=30), AssignmentStatus.ENDED),
        (employee_ids[1], site_ids[2], today - timedelta(days=450), today - timedelta(days=30), AssignmentStatus.ENDED),
    ]
    open_placements = [
        (employee_ids[idx], site_ids[idx % 2], today - timedelta(days=90 + idx), None, AssignmentStatus.IN_PROGRESS)
        for idx in range(0, 8)
    ]
    for employee_id, site_id, start, end, status in history + open_placements:
        conn.execute(
            """
            INSERT INTO assignments (employee_id, site_id, start_date, end_date, monthly_rate, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                employee_id,
                site_id,
                start.isoformat(),
                end.isoformat() if end else None,
                random.choice([4500000, 5200000, 6000000, 7300000]),
                status.value,
                utc_now(),
            ),
        )
        if status is AssignmentStatus.IN_PROGRESS:
            conn.execute(
                "UPDATE employees SET status = ? WHERE id = ?",
                (EmploymentStatus.DISPATCHED.value, employee_id),
            )


def run_integrity_checks(conn: sqlite3.Connection) -> None:
    checks = {
        "assignment_employee_fk": "SELECT COUNT(*) FROM assignments a LEFT JOIN employees e ON a.employee_id = e.id WHERE e.id IS NULL",
        "assignment_site_fk": "SELECT COUNT(*) FROM assignments a LEFT JOIN sites s ON a.site_id = s.id WHERE s.id IS NULL",
        "employee_department_fk": "SELECT COUNT(*) FROM employees e LEFT JOIN departments d ON e.department_id = d.id WHERE e.department_id IS NOT NULL AND d.id IS NULL",
        "employee_skill_fk": "SELECT COUNT(*) FROM employee_skills es LEFT JOIN skills s ON es.skill_id = s.id WHERE s.id IS NULL",
        "one_open_assignment": f"""
            SELECT COUNT(*) FROM (
                SELECT employee_id FROM assignments WHERE status = '{AssignmentStatus.IN_PROGRESS.value}'
                GROUP BY employee_id HAVING COUNT(*) > 1
            )
        """,
        "dispatched_without_assignment": f"""
            SELECT COUNT(*) FROM employees e
            WHERE e.status = '{EmploymentStatus.DISPATCHED.value}'
              AND NOT EXISTS (
                  SELECT 1 FROM assignments a
                  WHERE a.employee_id = e.id AND a.status = '{AssignmentStatus.IN_PROGRESS.value}'
              )
        """,
        "open_assignment_not_dispatched": f"""
            SELECT COUNT(*) FROM assignments a
            JOIN employees e ON e.id = a.employee_id
            WHERE a.status = '{AssignmentStatus.IN_PROGRESS.value}'
              AND e.status != '{EmploymentStatus.DISPATCHED.value}'
        """,
    }

    failures = []
    for name, query in checks.items():
        count = conn.execute(query).fetchone()[0]
        if count != 0:
            failures.append(f"{name} failed ({count})")

    if failures:
        raise RuntimeError("Integrity checks failed: " + "; ".join(failures))


def main() -> None:
    database_path = db_path()
    database_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(database_path)
    conn.row_factory = sqlite3.Row
    try:
        seed_database(conn, local_today())
        run_integrity_checks(conn)
        conn.commit()
    finally:
        conn.close()

    print(f"Reset complete: {database_path}")
    print(f"- {len(DEPARTMENTS)} departments, 18 employees, 5 sites, {len(SERVERS)} servers seeded")
    print("- 8 open assignments, 2 ended assignments")


if __name__ == "__main__":
    main()
