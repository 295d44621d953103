"""Expand medicines into per-dose entries with a computed status.

Each medicine becomes one entry per scheduled time of day. As-needed medicines
get a single entry that is either "taken" or "as-needed" and never go through
the time-window calculator.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from .status import (
    AS_NEEDED,
    DEFAULT_STATUS_CONFIG,
    MISSED,
    OVERDUE,
    PENDING,
    TAKEN,
    UPCOMING,
    MedicineSchedule,
    StatusConfig,
    classify,
    localize,
)
from .timefmt import (
    AS_NEEDED_SORT_KEY,
    format_time_12_hour,
    hhmm_to_minutes,
    is_as_needed_marker,
    is_clock_time,
    normalize_time,
    parse_datetime,
)

logger = logging.getLogger(__name__)

_LABELS = {
    "en": {
        "as_needed": "As needed",
        "overdue": "Overdue",
        "completed": "Completed",
        "paused": "Paused",
        "tomorrow": "Tomorrow",
    },
    "ko": {
        "as_needed": "필요시",
        "overdue": "지연됨",
        "completed": "완료됨",
        "paused": "일시중지",
        "tomorrow": "내일",
    },
}


def _label(language: str, key: str) -> str:
    return _LABELS.get(language, _LABELS["en"])[key]


@dataclass
class Medicine:
    id: str
    name: str = ""
    dosage: str = ""
    time: Optional[str] = None
    times: List[str] = field(default_factory=list)
    as_needed: bool = False
    taken_at: Optional[datetime] = None
    # per-slot taken instants; when set it replaces taken_at for multi-dose medicines
    taken_at_by_dose: Optional[dict] = None
    status: str = "active"

    @classmethod
    def from_record(cls, rec: Mapping) -> "Medicine":
        """Build from a data-layer record (camelCase or snake_case keys)."""

        def pick(*keys, default=None):
            for k in keys:
                if k in rec and rec[k] is not None:
                    return rec[k]
            return default

        by_dose = pick("takenAtByDose", "taken_at_by_dose")
        if by_dose is not None:
            by_dose = {int(k): parse_datetime(v) for k, v in by_dose.items()}

        return cls(
            id=str(pick("id", default="")),
            name=pick("name", default=""),
            dosage=pick("dosage", default=""),
            time=pick("time"),
            times=list(pick("times", default=[])),
            as_needed=bool(pick("asNeeded", "as_needed", default=False)),
            taken_at=parse_datetime(pick("takenAt", "taken_at")),
            taken_at_by_dose=by_dose,
            status=pick("status", default="active"),
        )


@dataclass
class ExpandedDose:
    id: str
    original_id: str
    name: str
    dosage: str
    time: Optional[str]
    status: str
    dose_index: int = 0
    total_doses: int = 1
    taken_at: Optional[datetime] = None
    as_needed: bool = False


@dataclass
class DoseGroup:
    time: str
    label: str
    doses: List[ExpandedDose]


@dataclass
class TodayStatus:
    total: int = 0
    taken: int = 0
    overdue: int = 0
    pending: int = 0
    upcoming: int = 0
    as_needed: int = 0


def _dose_status(
    med: Medicine,
    time_str: Optional[str],
    taken_at: Optional[datetime],
    target_date,
    now: datetime,
    config: StatusConfig,
    tz: Optional[tzinfo],
    missed_label: str,
) -> str:
    time24 = normalize_time(time_str)
    if not is_clock_time(time_str) and not is_as_needed_marker(time_str):
        logger.debug("unparseable dose time medicine=%s time=%r -> %s", med.id, time_str, time24)
    schedule = MedicineSchedule(
        id=med.id, name=med.name, time=time24, dosage=med.dosage, taken_at=taken_at
    )
    status = classify(schedule, target_date, now, config, tz)
    return missed_label if status == MISSED else status


def expand_medicine_doses(
    medicines: Iterable[Union[Medicine, Mapping]],
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    target_date: Optional[Union[date, datetime]] = None,
    tz: Optional[tzinfo] = None,
    missed_label: str = OVERDUE,
) -> List[ExpandedDose]:
    if target_date is None:
        target_date = now

    expanded: List[ExpandedDose] = []
    for m in medicines:
        med = m if isinstance(m, Medicine) else Medicine.from_record(m)

        if med.as_needed:
            expanded.append(
                ExpandedDose(
                    id=med.id,
                    original_id=med.id,
                    name=med.name,
                    dosage=med.dosage,
                    time=med.time or (med.times[0] if med.times else None),
                    status=TAKEN if med.taken_at is not None else AS_NEEDED,
                    taken_at=med.taken_at,
                    as_needed=True,
                )
            )
            continue

        if len(med.times) > 1:
            for i, t in enumerate(med.times):
                if med.taken_at_by_dose is not None:
                    taken_at = med.taken_at_by_dose.get(i)
                else:
                    taken_at = med.taken_at
                expanded.append(
                    ExpandedDose(
                        id=f"{med.id}-dose-{i}",
                        original_id=med.id,
                        name=med.name,
                        dosage=med.dosage,
                        time=t,
                        status=_dose_status(
                            med, t, taken_at, target_date, now, config, tz, missed_label
                        ),
                        dose_index=i,
                        total_doses=len(med.times),
                        taken_at=taken_at,
                    )
                )
            continue

        t = med.times[0] if med.times else med.time
        expanded.append(
            ExpandedDose(
                id=med.id,
                original_id=med.id,
                name=med.name,
                dosage=med.dosage,
                time=t,
                status=_dose_status(
                    med, t, med.taken_at, target_date, now, config, tz, missed_label
                ),
                taken_at=med.taken_at,
            )
        )
    return expanded


def _sort_key(dose: ExpandedDose) -> Tuple[int, int]:
    # as-needed first, then untimed scheduled doses, then by clock time
    if dose.as_needed:
        return AS_NEEDED_SORT_KEY, 0
    if not is_clock_time(dose.time):
        return AS_NEEDED_SORT_KEY, 1
    return hhmm_to_minutes(normalize_time(dose.time)), 1


def _group_key(dose: ExpandedDose) -> str:
    if dose.as_needed:
        return AS_NEEDED
    return normalize_time(dose.time)


def sort_doses(doses: Iterable[ExpandedDose]) -> List[ExpandedDose]:
    """Chronological order; as-needed and untimed doses first."""
    return sorted(doses, key=_sort_key)


def group_doses_by_time(
    doses: Iterable[ExpandedDose], language: str = "en"
) -> List[DoseGroup]:
    doses = list(doses)
    overdue = [d for d in doses if d.status in (OVERDUE, MISSED)]
    scheduled = sort_doses(d for d in doses if d.status not in (OVERDUE, MISSED))

    groups: List[DoseGroup] = []
    if overdue:
        groups.append(DoseGroup("overdue", _label(language, "overdue"), overdue))

    by_key = {}
    for dose in scheduled:
        key = _group_key(dose)
        if key in by_key:
            by_key[key].doses.append(dose)
            continue
        if key == AS_NEEDED:
            group = DoseGroup(AS_NEEDED, _label(language, "as_needed"), [dose])
        else:
            group = DoseGroup(key, format_time_12_hour(key, language), [dose])
        by_key[key] = group
        groups.append(group)
    return groups


def today_status(doses: Iterable[ExpandedDose]) -> TodayStatus:
    out = TodayStatus()
    for d in doses:
        out.total += 1
        if d.status == TAKEN:
            out.taken += 1
        elif d.status in (OVERDUE, MISSED):
            out.overdue += 1
        elif d.status == PENDING:
            out.pending += 1
        elif d.status == UPCOMING:
            out.upcoming += 1
        elif d.status == AS_NEEDED:
            out.as_needed += 1
    return out


def next_dose_time(
    med: Medicine,
    now: datetime,
    language: str = "en",
    tz: Optional[tzinfo] = None,
) -> str:
    """Label for the next dose of the day after `now`, read in `tz`.

    With no `tz`, an aware `now` is read in its own zone.
    """
    if med.status == "completed":
        return _label(language, "completed")
    if med.status in ("paused", "discontinued"):
        return _label(language, "paused")
    if med.as_needed or not med.times:
        return _label(language, "as_needed")

    if tz is None and now.tzinfo is not None:
        tz = now.tzinfo
    now = localize(now, tz)
    now_minutes = now.hour * 60 + now.minute
    for t in med.times:
        time24 = normalize_time(t)
        if hhmm_to_minutes(time24) > now_minutes:
            return format_time_12_hour(time24, language)

    first = format_time_12_hour(normalize_time(med.times[0]), language)
    return f"{_label(language, 'tomorrow')} {first}"
