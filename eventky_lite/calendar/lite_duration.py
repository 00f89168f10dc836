"""ISO 8601 duration parsing and formatting (e.g. ``PT1H30M``)."""

import re
from datetime import datetime

from ..lite_models import DurationComponents

_DURATION_RE = re.compile(r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


def parse_duration_components(duration: str) -> DurationComponents:
    """Split an ISO 8601 duration into day/hour/minute/second components.

    Empty or malformed input yields all-zero components.
    """
    match = _DURATION_RE.search(duration or "")
    if not match:
        return DurationComponents()
    days, hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return DurationComponents(days=days, hours=hours, minutes=minutes, seconds=seconds)


def parse_duration(duration: str) -> int:
    """Parse an ISO 8601 duration to milliseconds (0 for empty or malformed input)."""
    parts = parse_duration_components(duration)
    return (
        parts.days * MS_PER_DAY
        + parts.hours * MS_PER_HOUR
        + parts.minutes * MS_PER_MINUTE
        + parts.seconds * MS_PER_SECOND
    )


def format_duration_ms(ms: int) -> str:
    """Format milliseconds as ``"45 min"``, ``"1 hour"``, ``"2 hours"`` or ``"1h 30m"``."""
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE

    if hours == 0:
        return f"{minutes} min"
    if minutes == 0:
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{hours}h {minutes}m"


def format_duration(duration: str) -> str:
    """Format an ISO 8601 duration string for display."""
    return format_duration_ms(parse_duration(duration))


def calculate_duration(start: datetime, end: datetime) -> int:
    """Milliseconds between two datetimes (negative when end precedes start)."""
    return int((end - start).total_seconds() * MS_PER_SECOND)


def duration_to_iso(hours: int, minutes: int) -> str:
    """Build ``PT#H#M`` from hours and minutes; zero duration gives ``""``."""
    if hours == 0 and minutes == 0:
        return ""

    iso = "PT"
    if hours > 0:
        iso += f"{hours}H"
    if minutes > 0:
        iso += f"{minutes}M"
    return iso
