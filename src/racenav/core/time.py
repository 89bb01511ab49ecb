"""
Time parsing and epoch conversion.

The race state machine works in epoch milliseconds. Humans type ISO-8601
datetimes, so the CLI converts at the edge; naive values get the configured
timezone attached before conversion.
"""

from __future__ import annotations

import time
from datetime import datetime
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def parse_datetime(value: str, timezone: str) -> datetime:
    """Parse ISO-8601 datetime string and ensure tzinfo is present.

    Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    return ensure_tz(dt, timezone)


def epoch_ms(dt: datetime) -> float:
    return dt.timestamp() * 1000


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds (the host's default clock)."""
    return time.time() * 1000
