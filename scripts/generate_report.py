#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hrapi.services.database import connect_db
from hrapi.services.dates import local_today
from hrapi.services.errors import HRError
from hrapi.services.llm import LLMError, llm_enabled
from hrapi.services.reports import generate_employee_comment, generate_status_report


async def _run(kind: str, employee_id: int | None) -> None:
    conn = await connect_db()
    try:
        if kind == "comment":
            result = await generate_employee_comment(conn, employee_id)
            text = result["comment"]
        else:
            result = await generate_status_report(conn, local_today())
            text = result["content"]
    except (HRError, LLMError) as exc:
        print(f"Generation failed: {exc}")
        raise SystemExit(1)
    finally:
        await conn.close()

    print(f"Report: {result['report_id']}")
    print(text)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an AI employee blurb or staffing status report")
    parser.add_argument("kind", choices=["comment", "status"])
    parser.add_argument("--employee-id", type=int, help="employee to describe (comment only)")
    args = parser.parse_args()
    if args.kind == "comment" and args.employee_id is None:
        parser.error("--employee-id is required for comment")
    return args


def main() -> None:
    args = parse_args()
    if not llm_enabled():
        raise SystemExit("Set USE_REAL_LLM=true and OPENAI_API_KEY to generate AI text.")
    asyncio.run(_run(args.kind, args.employee_id))


if __name__ == "__main__":
    main()
