from __future__ import annotations

import calendar
import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from services.gauge_models import Observation, SnapshotReading

logger = logging.getLogger("rivergauge.hub.normalize")


def _ensure_utc(timestamp: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare against the request clock."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        return _ensure_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        return None


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def _build(points: Iterable[tuple[Any, Any]], *, keep_unparsed: bool = False) -> list[Observation]:
    observations: list[Observation] = []
    skipped = 0
    for raw_ts, raw_value in points:
        if not isinstance(raw_ts, str):
            skipped += 1
            continue
        timestamp = parse_timestamp(raw_ts)
        if timestamp is None and not keep_unparsed:
            skipped += 1
            continue
        observations.append(Observation(timestamp=timestamp, value=_to_float(raw_value), dt=raw_ts))
    if skipped:
        logger.debug("Dropped %d points with unusable timestamps", skipped)
    return observations


def normalize_trace(payload: Any) -> list[Observation]:
    """Map a ``get_ts_traces`` response (``return.traces[0].trace``) to observations.

    Trace series are already windowed upstream, so points whose ``t`` text does
    not parse are kept and echoed as-is.
    """
    if not isinstance(payload, dict):
        return []
    ret = payload.get("return")
    traces = ret.get("traces") if isinstance(ret, dict) else None
    if not isinstance(traces, list) or not traces or not isinstance(traces[0], dict):
        return []
    trace = traces[0].get("trace")
    if not isinstance(trace, list):
        return []
    return _build(
        ((point.get("t"), point.get("v")) for point in trace if isinstance(point, dict)),
        keep_unparsed=True,
    )


def normalize_tuples(payload: Any) -> list[Observation]:
    """Map a ``{"data": [[timestamp, "value"], ...]}`` response to observations.

    Values that are not numeric become NaN and are kept.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return _build(
        (row[0], row[1]) for row in data if isinstance(row, (list, tuple)) and len(row) >= 2
    )


def normalize_snapshot(payload: Any) -> list[SnapshotReading]:
    """Wrap each item of the ``latest.json`` array without altering it."""
    if not isinstance(payload, list):
        return []
    return [SnapshotReading.from_record(record) for record in payload]


def months_before(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month's length."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def filter_recent(
    observations: Sequence[Observation],
    *,
    now: datetime,
    window_months: int,
) -> list[Observation]:
    """Keep observations at or after ``now - window_months``, preserving input order."""
    cutoff = months_before(_ensure_utc(now), window_months)
    return [obs for obs in observations if obs.timestamp is not None and obs.timestamp >= cutoff]
