from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.alerting.schemas.common import utc_now
from src.alerting.schemas.eval import TimeRange
from src.alerting.services.errors import InvalidTimeRangeError

_RELATIVE_RE = re.compile(r"^now(?:-(\d+)([smhdw]))?$")

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 7 * 86400}


def _parse_point(raw: str, now: datetime) -> datetime:
    """Parse 'now', 'now-<n><unit>', epoch milliseconds or an ISO-8601 timestamp."""
    val = (raw or "").strip()
    if not val:
        raise ValueError("empty time value")

    m = _RELATIVE_RE.match(val)
    if m:
        if m.group(1) is None:
            return now
        return now - timedelta(seconds=int(m.group(1)) * _UNIT_SECONDS[m.group(2)])

    if val.isdigit():
        return datetime.fromtimestamp(int(val) / 1000.0, tz=timezone.utc)

    dt = datetime.fromisoformat(val.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# PUBLIC_INTERFACE
def parse_time_range(from_str: str, to_str: str, now: Optional[datetime] = None) -> TimeRange:
    """Parse raw from/to strings into a TimeRange anchored at `now` (defaults to current UTC time)."""
    anchor = now or utc_now()
    try:
        from_dt = _parse_point(from_str, anchor)
        to_dt = _parse_point(to_str, anchor)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidTimeRangeError(f"invalid time range: {e}", raw_from=from_str, raw_to=to_str) from e

    if from_dt > to_dt:
        raise InvalidTimeRangeError("time range start is after its end", raw_from=from_str, raw_to=to_str)
    return TimeRange(raw_from=from_str, raw_to=to_str, from_dt=from_dt, to_dt=to_dt)
