from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from hrapi.services.config import get_settings

DateLike = Union[date, str, None]


def utc_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def local_today() -> date:
    """Calendar day in the office's time zone, never a UTC-shifted one."""
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


def parse_local_date(value: DateLike) -> Optional[date]:
    """Read a stored or submitted date as a calendar day.

    Accepts ``date`` objects and ``YYYY-MM-DD`` strings with or without a
    trailing time component; the time part is dropped rather than
    converted. Blank or malformed input reads as ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: DateLike) -> Optional[str]:
    parsed = parse_local_date(value)
    return parsed.isoformat() if parsed else None
