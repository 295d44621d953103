import re
from datetime import datetime
from typing import Optional, Tuple

from dateutil import parser as dtparser

AS_NEEDED_SORT_KEY = -1
MIDNIGHT = "00:00"

_TWELVE_HOUR = re.compile(r"\b(1[0-2]|0?[1-9]):([0-5]\d)\s*(AM|PM)\b", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Markers the data layer stores in place of a clock time for as-needed medicines
_AS_NEEDED_MARKERS = ("필요",)

_PERIOD_LABELS = {
    "en": ("AM", "PM"),
    "ko": ("오전", "오후"),
}


def is_as_needed_marker(s: Optional[str]) -> bool:
    if not s:
        return False
    if any(m in s for m in _AS_NEEDED_MARKERS):
        return True
    return "needed" in s.lower()


def _parse_12_hour(s: Optional[str]) -> Optional[Tuple[int, int]]:
    if not s or is_as_needed_marker(s):
        return None
    m = _TWELVE_HOUR.search(s)
    if not m:
        return None
    hours = int(m.group(1))
    minutes = int(m.group(2))
    period = m.group(3).upper()
    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0
    return hours, minutes


def parse_time_to_24_hour(s: Optional[str]) -> str:
    """'01:30 PM' -> '13:30'. As-needed markers and anything unparseable give '00:00'."""
    hm = _parse_12_hour(s)
    if hm is None:
        return MIDNIGHT
    return f"{hm[0]:02d}:{hm[1]:02d}"


def parse_time_to_minutes(s: Optional[str]) -> int:
    """Minutes since midnight for a 12-hour clock string.

    Returns -1 for as-needed markers and unparseable input so that those
    entries sort ahead of every scheduled dose.
    """
    hm = _parse_12_hour(s)
    if hm is None:
        return AS_NEEDED_SORT_KEY
    return hm[0] * 60 + hm[1]


def normalize_time(s: Optional[str]) -> str:
    # stored schedules may already be 24-hour
    if s and _TWENTY_FOUR_HOUR.match(s):
        return s
    return parse_time_to_24_hour(s)


def is_clock_time(s: Optional[str]) -> bool:
    """True for a valid 12-hour or 24-hour clock string."""
    return bool(s and _TWENTY_FOUR_HOUR.match(s)) or _parse_12_hour(s) is not None


def parse_datetime(v) -> Optional[datetime]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    return dtparser.parse(str(v))


def hhmm_to_minutes(time24: Optional[str]) -> int:
    try:
        hours, minutes = (time24 or "").split(":")
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return 0


def format_time_12_hour(time24: str, language: str = "en") -> str:
    total = hhmm_to_minutes(time24)
    hours, minutes = divmod(total, 60)
    am, pm = _PERIOD_LABELS.get(language, _PERIOD_LABELS["en"])
    period = am if hours < 12 else pm
    display_hours = hours % 12 or 12
    clock = f"{display_hours:02d}:{minutes:02d}"
    if language == "ko":
        return f"{period} {clock}"
    return f"{clock} {period}"


def period_for(time24: str) -> str:
    hours = hhmm_to_minutes(time24) // 60
    if hours < 12:
        return "morning"
    if hours < 17:
        return "afternoon"
    if hours < 21:
        return "evening"
    return "night"
