"""Name, clock-time and date normalization helpers."""

import re
from datetime import date
from typing import Optional

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")


def normalize_name(name) -> Optional[str]:
    """Canonical activity/field key: trimmed and lower-cased."""
    if name is None:
        return None
    s = str(name).strip().lower()
    return s or None


def parse_time_to_minutes(value) -> Optional[int]:
    """Parse '5:30pm', '10am', '17:00', '9:15 AM' or an int into minutes.

    Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    m = _TIME_RE.match(str(value).strip().lower())
    if not m:
        return None
    h = int(m.group(1))
    mins = int(m.group(2) or 0)
    suffix = m.group(3)
    # A bare hour with no suffix is ambiguous ("9" could be a slot index)
    if m.group(2) is None and suffix is None:
        return None
    if suffix == "pm" and h < 12:
        h += 12
    elif suffix == "am" and h == 12:
        h = 0
    if h > 23 or mins > 59:
        return None
    return h * 60 + mins


def format_minutes(minutes: Optional[int]) -> str:
    """Format minutes since midnight as '1:30 PM'."""
    if minutes is None:
        return "?"
    h, m = divmod(int(minutes), 60)
    suffix = "PM" if h >= 12 else "AM"
    h12 = h - 12 if h > 12 else (12 if h == 0 else h)
    return f"{h12}:{m:02d} {suffix}"


def format_range(start: Optional[int], end: Optional[int]) -> str:
    return f"{format_minutes(start)}-{format_minutes(end)}"


def is_date_key(s) -> bool:
    """True for a 'YYYY-MM-DD' string naming a real calendar date."""
    if not isinstance(s, str) or not DATE_KEY_RE.match(s):
        return False
    try:
        parse_date(s)
    except ValueError:
        return False
    return True



def parse_date(s: str) -> date:
    """Parse date string YYYY-MM-DD."""
    parts = s.strip().split("-")
    return date(int(parts[0]), int(parts[1]), int(parts[2]))


def rule_kind(rule: dict) -> Optional[str]:
    """Classify a raw time rule as 'Available' or 'Unavailable'."""
    kind = str(rule.get("type", "")).strip().lower()
    if kind == "available" or rule.get("available") is True:
        return "Available"
    if kind == "unavailable" or rule.get("available") is False:
        return "Unavailable"
    return None
