"""Progress through a start/end date range."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pyago.pyjdate import DateInput, parse_instant, to_local

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class RangeProgress:
    """Snapshot of how far ``now`` is between ``start`` and ``end``."""

    progress: float
    start: datetime
    end: datetime
    remaining_days: int
    total_days: int
    is_complete: bool
    has_started: bool


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else to_local(dt)


def range_progress(
    start: DateInput,
    end: DateInput,
    now: Optional[DateInput] = None,
) -> Optional[RangeProgress]:
    """Return the progress percentage (0-100) and day counts for a range.

    Returns ``None`` when ``start`` is not before ``end``.
    """
    start_dt = _aware(parse_instant(start))
    end_dt = _aware(parse_instant(end))
    now_dt = _aware(parse_instant(now)) if now is not None else datetime.now().astimezone()
    if start_dt >= end_dt:
        return None

    total = end_dt - start_dt
    elapsed = now_dt - start_dt
    progress = max(0.0, min(100.0, elapsed / total * 100))
    remaining = max(end_dt - now_dt, timedelta(0))

    return RangeProgress(
        progress=progress,
        start=start_dt,
        end=end_dt,
        remaining_days=math.ceil(remaining / ONE_DAY),
        total_days=math.ceil(total / ONE_DAY),
        is_complete=now_dt >= end_dt,
        has_started=now_dt >= start_dt,
    )


def status_text(progress: RangeProgress) -> str:
    if progress.is_complete:
        return "Complete"
    if progress.has_started:
        return f"{progress.remaining_days} days remaining"
    return "Not started yet"
