"""
Hourly rotation arithmetic.

Output files cover fixed, tumbling UTC hours. A window is opened from the
wall clock ("top of the current hour"), and its deadline is that instant
plus one hour, in epoch millis. Whether a record belongs past the deadline
is decided by the writer from the record's own timestamp, not here.

    <files_path>/<prefix>-YYYYMMDD_HHMM.csv      finalized
    <files_path>/<prefix>-YYYYMMDD_HHMM.csv.tmp  still being written
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from ..dto import RotationWindow
from ..utils import to_epoch_ms

WINDOW = timedelta(hours=1)
TMP_SUFFIX = ".tmp"


def hour_start(now: datetime) -> datetime:
    """Truncate `now` to the top of its UTC hour (naive input is taken as UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def file_name(prefix: str, start: datetime) -> str:
    """`<prefix>-YYYYMMDD_HHMM.csv` for a window starting at `start`."""
    return f"{prefix}-{start:%Y%m%d_%H%M}.csv"


def window_at(files_path: str | Path, prefix: str, start: datetime) -> RotationWindow:
    """Build the window beginning at `start` (already hour-aligned)."""
    final_path = Path(files_path) / file_name(prefix, start)
    return RotationWindow(
        start=start,
        deadline_ms=to_epoch_ms(start + WINDOW),
        final_path=final_path,
        tmp_path=final_path.with_name(final_path.name + TMP_SUFFIX),
    )


def next_rollover(
    files_path: str | Path,
    prefix: str,
    now: datetime,
    previous: Optional[RotationWindow] = None,
) -> RotationWindow:
    """
    Window for the current wall-clock hour.

    When `previous` is given (i.e. we are rotating), the result never
    repeats or precedes it: if the wall clock is still inside or behind
    the window just finalized, the following hour is used instead, so a
    finalized file is never reopened or overwritten.
    """
    start = hour_start(now)
    if previous is not None and start <= previous.start:
        start = previous.start + WINDOW
    return window_at(files_path, prefix, start)
