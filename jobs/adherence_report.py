#!/usr/bin/env python3
"""
Adherence statistics and per-day schedule from medicines + logged dose records.

Usage: python jobs/adherence_report.py --medicines meds.json --records doses.json
       [--date 2026-03-01 --format csv|ndjson] [--now ...] [--tz ...]

Without --date prints a JSON report (user stats plus per-medicine adherence).
With --date prints that day's schedule items.
"""
import argparse
import json
import logging
import sys
from dataclasses import asdict

from dateutil import parser as dtparser

from medstatus.adherence import (
    adherence_level,
    adherence_stats,
    schedule_for_date,
    user_stats,
)
from medstatus.config import resolve_now, status_config_from_env, tz_from_env
from medstatus.data_loader import load_dose_records, load_medicines
from medstatus.doses import next_dose_time
from medstatus.exporters import dose_rows, to_csv, to_ndjson
from medstatus.logging_setup import configure_logging
from medstatus.status import MISSED

logger = logging.getLogger("medstatus.jobs.adherence_report")

SCHEDULE_COLUMNS = ["id", "name", "time", "dosage", "status", "period", "taken_at"]


def build_report(medicines, records, now, language="en", tz=None):
    per_med = []
    for med in medicines:
        stats = adherence_stats(r for r in records if r.medicine_id == med.id)
        row = {"id": med.id, "name": med.name}
        row.update(asdict(stats))
        row["level"] = adherence_level(stats.adherence)
        row["next_dose"] = next_dose_time(med, now, language, tz)
        per_med.append(row)
    return {"user": asdict(user_stats(medicines, records)), "medicines": per_med}


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--medicines", required=True)
    ap.add_argument("--records", required=True)
    ap.add_argument("--date", default=None)
    ap.add_argument("--now", default=None)
    ap.add_argument("--tz", default=None)
    ap.add_argument("--language", default="en", choices=["en", "ko"])
    ap.add_argument("--format", default="csv", choices=["csv", "ndjson"])
    ap.add_argument("--log-dir", default=None)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    configure_logging(args.log_dir)

    try:
        tz = tz_from_env(args.tz)
        config = status_config_from_env()
        medicines = load_medicines(args.medicines)
        records = load_dose_records(args.records)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise SystemExit(f"adherence_report: {e}")

    now = resolve_now(args.now, tz)

    if not args.date:
        json.dump(build_report(medicines, records, now, args.language, tz), sys.stdout, ensure_ascii=False)
        sys.stdout.write("\n")
        return 0

    day = dtparser.parse(args.date).date()
    items = schedule_for_date(medicines, day, records, now, config, tz)
    missed = sum(1 for it in items if it.status == MISSED)
    logger.info("schedule day=%s items=%d missed=%d", day.isoformat(), len(items), missed)
    if args.format == "csv":
        to_csv(dose_rows(items), sys.stdout, SCHEDULE_COLUMNS)
    else:
        to_ndjson(dose_rows(items), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
