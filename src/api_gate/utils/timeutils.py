"""UTC helpers.

Timestamps are stored as naive UTC datetimes. Anything coming in from a
request is normalized with ``to_naive_utc`` before it reaches a query.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 / RFC 3339 timestamp.

    Returns None for missing or blank values and raises ValueError for
    malformed ones.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    # "+hh:mm" offsets arrive as " hh:mm" when the query string is not encoded
    if "T" in text:
        text = text.replace(" ", "+")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    return to_naive_utc(datetime.fromisoformat(text))
