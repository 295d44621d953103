"""Load medicine and dose-record snapshots exported by the data layer.

Input files are JSON, either a bare list of records or an object holding the
list under a key ("medicines", "doseRecords"). Invalid records are logged and
skipped; a missing or malformed file raises.
"""

import json
import logging
from typing import List

from .adherence import DoseRecord
from .doses import Medicine
from .validation import validate_dose_record, validate_medicine

logger = logging.getLogger(__name__)


def _read_list(filepath: str, key: str) -> list:
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Data file not found: {filepath}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {filepath}: {e}")

    if isinstance(data, dict):
        if key not in data:
            raise KeyError(f"{filepath}: JSON object must contain '{key}' key")
        data = data[key]
    if not isinstance(data, list):
        raise TypeError(f"'{key}' must be a list, got {type(data).__name__}")
    return data


def load_medicines(filepath: str) -> List[Medicine]:
    out = []
    for idx, rec in enumerate(_read_list(filepath, "medicines")):
        ok, errors = validate_medicine(rec)
        if not ok:
            logger.warning("skip medicine record=%d errors=%s", idx, "; ".join(errors))
            continue
        out.append(Medicine.from_record(rec))
    logger.info("loaded medicines=%d file=%s", len(out), filepath)
    return out


def load_dose_records(filepath: str) -> List[DoseRecord]:
    out = []
    for idx, rec in enumerate(_read_list(filepath, "doseRecords")):
        ok, errors = validate_dose_record(rec)
        if not ok:
            logger.warning("skip dose record=%d errors=%s", idx, "; ".join(errors))
            continue
        out.append(DoseRecord.from_record(rec))
    logger.info("loaded dose_records=%d file=%s", len(out), filepath)
    return out
