# backend/yoga_studio/date_utils.py
import re
from datetime import datetime, date
from typing import Optional
from zoneinfo import ZoneInfo

DATE_FORMAT = "%Y-%m-%d"
_LEADING_DIGITS = re.compile(r"[0-9]+")

def parse_iso_date(s: Optional[str]) -> Optional[date]:
    """Parse a yyyy-mm-dd string into a date, or return None for falsy input."""
    if s is None or s == "":
        return None
    if isinstance(s, date):
        return s
    try:
        return datetime.strptime(s, DATE_FORMAT).date()
    except ValueError:
        # allow other ISO-like input by trying fromisoformat
        try:
            return date.fromisoformat(s)
        except ValueError:
            raise ValueError(f"Invalid date format, expected YYYY-MM-DD: {s!r}")


def today_key(day: date) -> int:
    """
    Encode a calendar date as the integer YYYYMMDD.
    Only the year/month/day components are used, never a time of day.
    """
    return day.year * 10000 + day.month * 100 + day.day


def date_key(value) -> Optional[int]:
    """
    Turn a "YYYY-MM-DD" string into the integer YYYYMMDD by stripping the separators.
    Only the leading digits count, so "2026-10-20T09:00:00" gives 20261020.
    Returns None when the value is missing or does not start with a digit.
    """
    if not isinstance(value, str):
        return None
    match = _LEADING_DIGITS.match(value.strip().replace("-", ""))
    if match is None:
        return None
    return int(match.group())


def studio_today(tz_name: Optional[str] = None) -> date:
    """Current calendar date at the studio (local date when no zone is configured)."""
    if not tz_name:
        return date.today()
    return datetime.now(ZoneInfo(tz_name)).date()
