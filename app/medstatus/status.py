"""Dose status calculation.

A scheduled dose is classified against a single "now" snapshot:

    taken     taken_at is recorded (always wins)
    upcoming  target day is in the future, or now is before the pending window
    pending   now is inside [scheduled - before, scheduled + after]
    missed    target day is in the past, or now is past the pending window

Day comparisons use calendar dates in the caller's timezone, not a rolling
24 hour window.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional, Tuple, Union

from .timefmt import hhmm_to_minutes

TAKEN = "taken"
MISSED = "missed"
PENDING = "pending"
UPCOMING = "upcoming"
STATUSES = (TAKEN, MISSED, PENDING, UPCOMING)

# display-only labels produced by the dose expander
AS_NEEDED = "as-needed"
OVERDUE = "overdue"

DayLike = Union[date, datetime]


@dataclass(frozen=True)
class StatusConfig:
    pending_window_before: int = 30  # minutes before the dose that count as "due"
    pending_window_after: int = 120  # minutes after the dose before it is missed

    def __post_init__(self):
        if self.pending_window_before < 0 or self.pending_window_after < 0:
            raise ValueError(
                "pending windows must be non-negative, got "
                f"before={self.pending_window_before} after={self.pending_window_after}"
            )


DEFAULT_STATUS_CONFIG = StatusConfig()


@dataclass
class MedicineSchedule:
    id: str
    name: str
    time: str  # HH:MM, 24-hour
    dosage: str = ""
    period: str = "morning"
    taken_at: Optional[datetime] = None


@dataclass
class StatusSummary:
    total: int = 0
    taken: int = 0
    missed: int = 0
    pending: int = 0
    upcoming: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def localize(dt: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        return dt
    if dt.tzinfo is None:
        # pytz zones need localize() to pick the right DST offset
        if hasattr(tz, "localize"):
            return tz.localize(dt)
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _as_datetime(d: DayLike) -> datetime:
    if isinstance(d, datetime):
        return d
    return datetime.combine(d, time())


def _day(d: DayLike) -> date:
    return d.date() if isinstance(d, datetime) else d


def normalize_date(d: DayLike) -> datetime:
    """Truncate to the start of the calendar day, keeping any tzinfo."""
    return _as_datetime(d).replace(hour=0, minute=0, second=0, microsecond=0)


def is_same_day(a: DayLike, b: DayLike) -> bool:
    return _day(a) == _day(b)


def classify(
    schedule: MedicineSchedule,
    target_date: DayLike,
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> str:
    if schedule.taken_at is not None:
        return TAKEN

    if tz is None and now.tzinfo is not None:
        tz = now.tzinfo
    now_local = localize(now, tz)
    target_day = _day(localize(_as_datetime(target_date), tz))

    if target_day != now_local.date():
        return UPCOMING if target_day > now_local.date() else MISSED

    scheduled = localize(
        datetime.combine(target_day, time())
        + timedelta(minutes=hhmm_to_minutes(schedule.time)),
        tz,
    )
    delta = (now_local - scheduled).total_seconds() / 60.0

    if delta < -config.pending_window_before:
        return UPCOMING
    if delta <= config.pending_window_after:
        return PENDING
    return MISSED


def schedule_status(
    schedules: Iterable[MedicineSchedule],
    target_date: DayLike,
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> List[Tuple[MedicineSchedule, str]]:
    return [(s, classify(s, target_date, now, config, tz)) for s in schedules]


def has_missed(
    schedules: Iterable[MedicineSchedule],
    target_date: DayLike,
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> bool:
    return any(
        status == MISSED
        for _, status in schedule_status(schedules, target_date, now, config, tz)
    )


def summarize(
    schedules: Iterable[MedicineSchedule],
    target_date: DayLike,
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> StatusSummary:
    summary = StatusSummary()
    for _, status in schedule_status(schedules, target_date, now, config, tz):
        summary.total += 1
        setattr(summary, status, getattr(summary, status) + 1)
    return summary
