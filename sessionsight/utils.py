"""Small numeric and time helpers shared by the analytics modules."""

import math
from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing "Z", naive values (read as UTC) and datetime objects.
    Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format an aware datetime as ISO-8601 with millisecond precision and "Z"."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def round_half_up(value: float, ndigits: int = 0):
    """Round halves towards positive infinity: 2.5 -> 3, -2.5 -> -2.

    Returns an int when ndigits is 0.
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    if ndigits == 0:
        return int(rounded)
    return rounded


def average(values, ndigits: int = 1) -> Optional[float]:
    """Mean of values rounded to ndigits, or None when there are none."""
    values = list(values)
    if not values:
        return None
    return round_half_up(sum(values) / len(values), ndigits)


def word_count(text: str) -> int:
    return len(text.split()) if text else 0


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text or "") / 4)
