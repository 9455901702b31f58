"""
Time utilities for epoch-millisecond timestamps and bar interval arithmetic.

Market timestamps from the venue are authoritative for bar bucketing; the
wall clock is only consulted when a payload carries no timestamp.
"""

import re
from datetime import datetime, timezone
from typing import Optional

_INTERVAL_RE = re.compile(r"^(\d+)([smhd])$")

_UNIT_MS = {
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def parse_interval(interval: str) -> int:
    """
    Convert an interval string such as "1m" or "15s" to milliseconds.

    Args:
        interval: Venue-style interval code (<count><unit>, unit in s/m/h/d)

    Returns:
        Interval length in milliseconds

    Raises:
        ValueError: If the string is not a positive interval code
    """
    match = _INTERVAL_RE.match(interval.strip()) if isinstance(interval, str) else None
    if not match:
        raise ValueError(f"Invalid interval: {interval!r}")

    count = int(match.group(1))
    if count <= 0:
        raise ValueError(f"Interval must be positive: {interval!r}")

    return count * _UNIT_MS[match.group(2)]


def align_to_interval(timestamp_ms: int, interval_ms: int) -> int:
    """Start of the interval bucket containing timestamp_ms."""
    return (timestamp_ms // interval_ms) * interval_ms


def is_aligned(timestamp_ms: int, interval_ms: int) -> bool:
    """True if timestamp_ms sits exactly on an interval boundary."""
    return timestamp_ms % interval_ms == 0


def intervals_between(earlier_start: int, later_start: int, interval_ms: int) -> int:
    """Number of whole intervals strictly between two aligned bucket starts."""
    steps = (later_start - earlier_start) // interval_ms
    return max(steps - 1, 0)


def format_ms(timestamp_ms: Optional[int]) -> Optional[str]:
    """
    Format an epoch-millisecond timestamp for logs and telemetry.

    Args:
        timestamp_ms: Epoch milliseconds, or None

    Returns:
        ISO8601 UTC string, or None when no timestamp given
    """
    if timestamp_ms is None:
        return None
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def coerce_timestamp_ms(value) -> int:
    """
    Normalize a venue timestamp to epoch milliseconds.

    Accepts integers/floats in seconds or milliseconds, numeric strings and
    ISO8601 strings. Values below 1e11 are treated as seconds.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")

    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            numeric = float(text)
        except ValueError:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return int(parsed.timestamp() * 1000)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if numeric < 1e11:
        numeric *= 1000
    return int(numeric)
