from __future__ import annotations

import csv
import datetime as dt
import io
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

import structlog

from .config import get_settings
from .errors import SerializationFailed
from .models import DailyHealthRecord
from .utils import iso_date

logger = structlog.get_logger()

HEADER = DailyHealthRecord.headers()


def render_csv(records: Iterable[DailyHealthRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for r in records:
        writer.writerow(r.as_row())
    return buf.getvalue()


def _num(value: str) -> Optional[float]:
    value = value.strip()
    return float(value) if value else None


def read_csv(text: str) -> List[DailyHealthRecord]:
    """Parse an exported CSV back into records (zeros stay zeros)."""
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header != HEADER:
        raise ValueError(f"unexpected CSV header: {header!r}")

    records: List[DailyHealthRecord] = []
    for row in reader:
        if not row:
            continue
        date, steps, hr, energy, exercise, stand, hrv, walk, swim = row
        records.append(
            DailyHealthRecord(
                date=dt.date.fromisoformat(date),
                steps=int(steps) if steps.strip() else None,
                heart_rate=_num(hr),
                active_energy=_num(energy),
                exercise_time=_num(exercise),
                stand_time=_num(stand),
                hrv=_num(hrv),
                walking_running_distance=_num(walk),
                swimming_distance=_num(swim),
            )
        )
    return records


def export_filename(kind: str, start: dt.date, end: dt.date, prefix: Optional[str] = None) -> str:
    """VitalPulse_<Kind>_<start>_to_<end>.csv; spaces in kind become underscores."""
    prefix = prefix or get_settings().EXPORT_PREFIX
    return f"{prefix}_{kind.replace(' ', '_')}_{iso_date(start)}_to_{iso_date(end)}.csv"


def write_csv(path: str | Path, text: str) -> Path:
    """
    Write `text` to `path` atomically.

    Content goes to a temp file in the target directory and is renamed over
    `path` only once fully written, so readers never see a partial file.
    """
    target = Path(path)
    tmp_name: Optional[str] = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        logger.error("csv_write_failed", path=str(target), error=str(e))
        raise SerializationFailed(str(target), e.strerror or str(e)) from e

    logger.info("csv_written", path=str(target), bytes=len(text.encode("utf-8")))
    return target
