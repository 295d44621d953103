from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Mapping, Optional, Union

from .doses import Medicine
from .status import (
    DEFAULT_STATUS_CONFIG,
    MISSED,
    TAKEN,
    MedicineSchedule,
    StatusConfig,
    classify,
)
from .timefmt import hhmm_to_minutes, normalize_time, parse_datetime, period_for

RECORD_STATUSES = ("taken", "missed", "skipped", "pending")


@dataclass
class DoseRecord:
    medicine_id: str
    scheduled_date: date
    scheduled_time: str  # HH:MM
    status: str  # taken, missed, skipped, pending
    taken_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, rec: Mapping) -> "DoseRecord":
        sched = rec.get("scheduledDate", rec.get("scheduled_date"))
        if isinstance(sched, datetime):
            sched = sched.date()
        elif not isinstance(sched, date):
            sched = parse_datetime(sched).date()
        return cls(
            medicine_id=str(rec.get("medicineId", rec.get("medicine_id"))),
            scheduled_date=sched,
            scheduled_time=normalize_time(
                rec.get("scheduledTime", rec.get("scheduled_time"))
            ),
            status=rec.get("status", "pending"),
            taken_at=parse_datetime(rec.get("takenAt", rec.get("taken_at"))),
        )


@dataclass
class AdherenceStats:
    adherence: int
    streak: int
    total_doses: int
    taken_doses: int
    missed_doses: int
    skipped_doses: int


@dataclass
class UserStats:
    total_medicines: int
    active_medicines: int
    overall_adherence: int
    current_streak: int
    total_doses_taken: int


@dataclass
class ScheduleItem:
    id: str
    name: str
    time: str
    dosage: str
    status: str
    period: str
    taken_at: Optional[datetime] = None


def _pct(taken: int, total: int) -> int:
    # no scheduled doses counts as full adherence
    if total == 0:
        return 100
    return int(100.0 * taken / total + 0.5)


def adherence_stats(records: Iterable[DoseRecord]) -> AdherenceStats:
    records = list(records)
    taken = sum(1 for r in records if r.status == "taken")
    missed = sum(1 for r in records if r.status == "missed")
    skipped = sum(1 for r in records if r.status == "skipped")

    streak = 0
    newest_first = sorted(
        records,
        key=lambda r: (r.scheduled_date, hhmm_to_minutes(r.scheduled_time)),
        reverse=True,
    )
    for r in newest_first:
        if r.status == "taken":
            streak += 1
        elif r.status in ("missed", "skipped"):
            break

    return AdherenceStats(
        adherence=_pct(taken, len(records)),
        streak=streak,
        total_doses=len(records),
        taken_doses=taken,
        missed_doses=missed,
        skipped_doses=skipped,
    )


def adherence_for_range(records: Iterable[DoseRecord]) -> int:
    records = list(records)
    return _pct(sum(1 for r in records if r.status == "taken"), len(records))


def adherence_level(pct: int) -> str:
    if pct >= 90:
        return "good"
    if pct >= 70:
        return "fair"
    return "poor"


def user_stats(
    medicines: Iterable[Medicine], records: Iterable[DoseRecord]
) -> UserStats:
    medicines = list(medicines)
    records = list(records)
    taken = sum(1 for r in records if r.status == "taken")

    by_day: dict[date, List[DoseRecord]] = {}
    for r in records:
        by_day.setdefault(r.scheduled_date, []).append(r)

    streak = 0
    for day in sorted(by_day, reverse=True):
        if all(r.status == "taken" for r in by_day[day]):
            streak += 1
        else:
            break

    return UserStats(
        total_medicines=len(medicines),
        active_medicines=sum(1 for m in medicines if m.status == "active"),
        overall_adherence=_pct(taken, len(records)),
        current_streak=streak,
        total_doses_taken=taken,
    )


def find_dose_record(
    records: Iterable[DoseRecord], medicine_id: str, time24: str, day: date
) -> Optional[DoseRecord]:
    for r in records:
        if (
            r.medicine_id == medicine_id
            and r.scheduled_time == time24
            and r.scheduled_date == day
        ):
            return r
    return None


def schedule_for_date(
    medicines: Iterable[Union[Medicine, Mapping]],
    target_date: Union[date, datetime],
    records: Iterable[DoseRecord],
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> List[ScheduleItem]:
    """Schedule items for one day, merging logged dose records with computed status."""
    records = list(records)
    day = target_date.date() if isinstance(target_date, datetime) else target_date

    items: List[ScheduleItem] = []
    for m in medicines:
        med = m if isinstance(m, Medicine) else Medicine.from_record(m)
        if med.as_needed or not med.times:
            continue

        for i, t in enumerate(med.times):
            time24 = normalize_time(t)
            rec = find_dose_record(records, med.id, time24, day)
            taken_at = None
            if rec is not None and rec.status == "taken":
                status = TAKEN
                taken_at = rec.taken_at
            elif rec is not None and rec.status in ("missed", "skipped"):
                status = MISSED
            else:
                sched = MedicineSchedule(
                    id=med.id, name=med.name, time=time24, dosage=med.dosage
                )
                status = classify(sched, target_date, now, config, tz)

            items.append(
                ScheduleItem(
                    id=f"{med.id}-{i}",
                    name=med.name,
                    time=time24,
                    dosage=med.dosage,
                    status=status,
                    period=period_for(time24),
                    taken_at=taken_at,
                )
            )

    items.sort(key=lambda it: hhmm_to_minutes(it.time))
    return items


def has_missed_on_date(
    medicines: Iterable[Union[Medicine, Mapping]],
    target_date: Union[date, datetime],
    records: Iterable[DoseRecord],
    now: datetime,
    config: StatusConfig = DEFAULT_STATUS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> bool:
    items = schedule_for_date(medicines, target_date, records, now, config, tz)
    return any(it.status == MISSED for it in items)
