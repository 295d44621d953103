from datetime import date, datetime
from typing import Tuple, List

from dateutil import parser as dtparser

from .adherence import RECORD_STATUSES
from .timefmt import is_as_needed_marker, is_clock_time


def _check_datetime(value, label: str, errors: List[str]) -> None:
    if value is None or isinstance(value, (date, datetime)):
        return
    try:
        dtparser.parse(str(value))
    except (ValueError, OverflowError):
        errors.append(f"{label} is not a parseable date/time: {value!r}.")


def validate_medicine(rec: dict) -> Tuple[bool, List[str]]:
    errors = []
    if not isinstance(rec, dict):
        errors.append("Input is not a dict.")
        return False, errors

    if not rec.get("id"):
        errors.append("Medicine.id missing.")

    as_needed = bool(rec.get("asNeeded", rec.get("as_needed")))
    times = rec.get("times")
    if times is not None and (
        not isinstance(times, list) or not all(isinstance(t, str) for t in times)
    ):
        errors.append("Medicine.times is not a list of strings.")
        times = None

    if not as_needed:
        slots = list(times or [])
        if not slots and rec.get("time"):
            slots = [rec["time"]]
        if not slots:
            errors.append("Medicine has no time, no times and is not asNeeded.")
        for t in slots:
            if not is_clock_time(t) and not is_as_needed_marker(t):
                errors.append(f"Medicine time {t!r} is not a clock time (h:mm AM|PM or HH:MM).")

    _check_datetime(rec.get("takenAt", rec.get("taken_at")), "Medicine.takenAt", errors)

    by_dose = rec.get("takenAtByDose", rec.get("taken_at_by_dose"))
    if by_dose is not None:
        if not isinstance(by_dose, dict):
            errors.append("Medicine.takenAtByDose is not a mapping.")
        else:
            for k, v in by_dose.items():
                if not str(k).isdigit():
                    errors.append(f"Medicine.takenAtByDose key {k!r} is not a dose index.")
                _check_datetime(v, f"Medicine.takenAtByDose[{k}]", errors)

    return (len(errors) == 0), errors


def validate_dose_record(rec: dict) -> Tuple[bool, List[str]]:
    errors = []
    if not isinstance(rec, dict):
        errors.append("Input is not a dict.")
        return False, errors

    if not rec.get("medicineId", rec.get("medicine_id")):
        errors.append("DoseRecord.medicineId missing.")

    sched = rec.get("scheduledDate", rec.get("scheduled_date"))
    if sched is None:
        errors.append("DoseRecord.scheduledDate missing.")
    else:
        _check_datetime(sched, "DoseRecord.scheduledDate", errors)

    t = rec.get("scheduledTime", rec.get("scheduled_time"))
    if not isinstance(t, str) or (
        len(t) != 5 or t[2] != ":" or not (t[:2] + t[3:]).isdigit()
    ):
        errors.append("DoseRecord.scheduledTime missing or not HH:MM.")

    if rec.get("status") not in RECORD_STATUSES:
        errors.append(
            f"DoseRecord.status must be one of {', '.join(RECORD_STATUSES)}."
        )

    _check_datetime(rec.get("takenAt", rec.get("taken_at")), "DoseRecord.takenAt", errors)

    return (len(errors) == 0), errors
