#!/usr/bin/env python3
"""Check a staffing database against the dispatch invariants and print a summary."""
from __future__ import annotations

import argparse
import sqlite3
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hrapi.services.statuses import AssignmentStatus
from scripts.reset_db import db_path, run_integrity_checks


def staffing_summary(conn: sqlite3.Connection) -> list[str]:
    lines = []
    for status, count in conn.execute("SELECT status, COUNT(*) FROM employees GROUP BY status ORDER BY status"):
        lines.append(f"- employees {status}: {count}")
    open_count = conn.execute(
        "SELECT COUNT(*) FROM assignments WHERE status = ?", (AssignmentStatus.IN_PROGRESS.value,)
    ).fetchone()[0]
    lines.append(f"- open assignments: {open_count}")
    return lines


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify staffing data integrity")
    parser.add_argument("--db", type=Path, default=None, help="database file (defaults to DATABASE_PATH)")
    parser.add_argument("--summary", action="store_true", help="also print head counts per status")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    path = args.db or db_path()
    if not Path(path).exists():
        raise SystemExit(f"Database not found at {path}. Run reset_db.py first.")

    conn = sqlite3.connect(path)
    try:
        try:
            run_integrity_checks(conn)
        except RuntimeError as exc:
            raise SystemExit(str(exc)) from exc
        summary = staffing_summary(conn) if args.summary else []
    finally:
        conn.close()

    print("Integrity checks passed.")
    for line in summary:
        print(line)


if __name__ == "__main__":
    main()
