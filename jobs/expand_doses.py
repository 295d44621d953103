#!/usr/bin/env python3
"""
Expand a medicine snapshot into per-dose rows with computed status.

Usage: python jobs/expand_doses.py medicines.json [--now 2026-03-01T08:00] [--tz Asia/Seoul]
       [--format csv|ndjson] [--sort] [--summary]
"""
import argparse
import json
import logging
import sys
from dataclasses import asdict

from dateutil import parser as dtparser

from medstatus.config import resolve_now, status_config_from_env, tz_from_env
from medstatus.data_loader import load_medicines
from medstatus.doses import expand_medicine_doses, sort_doses, today_status
from medstatus.exporters import dose_rows, to_csv, to_ndjson
from medstatus.logging_setup import configure_logging
from medstatus.status import MISSED, OVERDUE, StatusConfig

logger = logging.getLogger("medstatus.jobs.expand_doses")

COLUMNS = [
    "id",
    "original_id",
    "name",
    "dosage",
    "time",
    "status",
    "dose_index",
    "total_doses",
    "taken_at",
    "as_needed",
]


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("input", help="JSON file with medicine records")
    ap.add_argument("--now", default=None, help="Instant to evaluate at (default: current time)")
    ap.add_argument("--date", default=None, help="Day to evaluate (default: the day of --now)")
    ap.add_argument("--tz", default=None, help="Timezone name (default: MEDSTATUS_TZ or host local)")
    ap.add_argument("--pending-before", type=int, default=None)
    ap.add_argument("--pending-after", type=int, default=None)
    ap.add_argument("--format", default="csv", choices=["csv", "ndjson"])
    ap.add_argument("--sort", action="store_true", help="Chronological order, as-needed first")
    ap.add_argument("--keep-missed", action="store_true", help="Do not relabel missed as overdue")
    ap.add_argument("--summary", action="store_true", help="Print status counts as JSON instead of rows")
    ap.add_argument("--log-dir", default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    configure_logging(args.log_dir, level=level)

    try:
        tz = tz_from_env(args.tz)
        config = status_config_from_env()
        if args.pending_before is not None or args.pending_after is not None:
            config = StatusConfig(
                config.pending_window_before if args.pending_before is None else args.pending_before,
                config.pending_window_after if args.pending_after is None else args.pending_after,
            )
        medicines = load_medicines(args.input)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise SystemExit(f"expand_doses: {e}")

    now = resolve_now(args.now, tz)
    target = dtparser.parse(args.date).date() if args.date else None

    doses = expand_medicine_doses(
        medicines,
        now,
        config,
        target_date=target,
        tz=tz,
        missed_label=MISSED if args.keep_missed else OVERDUE,
    )
    if args.sort:
        doses = sort_doses(doses)
    logger.info("expanded medicines=%d doses=%d now=%s", len(medicines), len(doses), now.isoformat())

    if args.summary:
        json.dump(asdict(today_status(doses)), sys.stdout)
        sys.stdout.write("\n")
    elif args.format == "csv":
        to_csv(dose_rows(doses), sys.stdout, COLUMNS)
    else:
        to_ndjson(dose_rows(doses), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
