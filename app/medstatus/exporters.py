from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Iterable, Iterator, Mapping, TextIO
import csv
import json


def _plain(v: Any) -> Any:
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return v


def dose_rows(items: Iterable[Any]) -> Iterator[dict]:
    """Flatten dose dataclasses (or mappings) into JSON/CSV friendly dicts."""
    for it in items:
        row = asdict(it) if is_dataclass(it) else dict(it)
        yield {k: _plain(v) for k, v in row.items()}


def to_csv(
    rows: Iterable[Mapping[str, object]], fh: TextIO, fieldnames: list[str]
) -> None:
    writer = csv.DictWriter(fh, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)


def to_ndjson(rows: Iterable[Mapping[str, object]], fh: TextIO) -> None:
    for row in rows:
        fh.write(json.dumps(row, separators=(",", ":"), ensure_ascii=False))
        fh.write("\n")
