# momcare/utils.py
import math
import re
import uuid
from datetime import date, datetime, timezone
from typing import Optional

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Naive UTC timestamp, which is what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_date_only(value) -> Optional[date]:
    """
    Reduce a date or datetime-ish input to its calendar day.
    Datetimes with an offset are converted to UTC first, then the
    time-of-day is dropped. Returns None when the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if ISO_DATE.match(raw):
            try:
                return date.fromisoformat(raw)
            except ValueError:
                return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def normalize_date_key(value) -> str:
    """yyyy-mm-dd string for the given input, or "" if it is not a date."""
    parsed = to_date_only(value)
    return parsed.isoformat() if parsed else ""


def gestational_week(start: date, today: Optional[date] = None) -> int:
    today = today or utcnow().date()
    elapsed_days = max(0, (today - start).days)
    return min(40, max(1, elapsed_days // 7 + 1))


def clean_str(value) -> str:
    return str(value).strip() if value is not None else ""


def round_half_up(value: float) -> int:
    """Nearest integer with .5 going up; builtin round() goes to the even neighbour."""
    return math.floor(value + 0.5)
