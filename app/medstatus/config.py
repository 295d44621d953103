import os
from datetime import datetime
from typing import Optional

import pytz
from dateutil import parser as dtparser

from .status import DEFAULT_STATUS_CONFIG, StatusConfig


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer number of minutes, got {raw!r}")


def status_config_from_env() -> StatusConfig:
    return StatusConfig(
        pending_window_before=_int_from_env(
            "MEDSTATUS_PENDING_BEFORE", DEFAULT_STATUS_CONFIG.pending_window_before
        ),
        pending_window_after=_int_from_env(
            "MEDSTATUS_PENDING_AFTER", DEFAULT_STATUS_CONFIG.pending_window_after
        ),
    )


def tz_from_env(name: Optional[str] = None):
    """pytz zone for an explicit name or MEDSTATUS_TZ, or None to use host local time."""
    name = name or os.getenv("MEDSTATUS_TZ", "")
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"unknown timezone: {name!r}")


def log_dir_from_env(default: Optional[str] = None) -> Optional[str]:
    return os.getenv("MEDSTATUS_LOG_DIR", default)


def resolve_now(raw: Optional[str], tz=None) -> datetime:
    """Evaluation instant from a CLI/env string; naive values are read in tz."""
    if not raw:
        return datetime.now(tz) if tz else datetime.now()
    now = dtparser.parse(raw)
    if tz is not None and now.tzinfo is None:
        now = tz.localize(now)
    return now
