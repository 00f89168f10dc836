"""DateTime parsing and formatting utilities for recurrence processing - eventky_lite.

Occurrences travel through the engine as zone-less ``YYYY-MM-DDTHH:MM:SS``
strings. A string without a zone suffix is always read as wall-clock
components, never as UTC or as a host-local instant.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Optional

from dateutil import parser as date_parser

from ..core.timezone_utils import get_zone
from ..lite_exceptions import LiteDateTimeParseError, LiteRecurrenceError
from ..lite_models import FormattedDateTime

logger = logging.getLogger(__name__)

ISO_LOCAL_FORMAT = "%Y-%m-%dT%H:%M:%S"
OCCURRENCE_KEY_LENGTH = 19

_LOCAL_DATETIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})")
_DATE_ONLY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def normalize_occurrence_key(value: str) -> str:
    """Return the comparison key of an occurrence string (first 19 characters).

    Strips sub-second precision and zone suffixes so that
    ``2024-01-01T10:00:00.000Z`` and ``2024-01-01T10:00:00`` compare equal.
    """
    return value.strip()[:OCCURRENCE_KEY_LENGTH]


def canonical_occurrence_key(value: str) -> str:
    """Comparison key for RDATE/EXDATE entries.

    Extended-format strings use their first 19 characters. Other forms
    (``20240221T100000``, date-only) are parsed and rewritten from their own
    wall-clock components; unparseable values keep the truncated text.
    """
    key = normalize_occurrence_key(value)
    if _LOCAL_DATETIME_RE.match(key):
        return key
    try:
        return date_to_iso_string(parse_iso_datetime(value))
    except LiteDateTimeParseError:
        return key


def _has_zone_suffix(iso_string: str) -> bool:
    return "Z" in iso_string or "+" in iso_string or "-" in iso_string[10:]


def parse_iso_datetime(iso_string: str, timezone_name: Optional[str] = None) -> datetime:
    """Parse an ISO-like datetime string without implicit UTC conversion.

    Args:
        iso_string: ``YYYY-MM-DDTHH:MM:SS`` (wall clock), a date-only string, or
            any ISO 8601 string carrying ``Z`` or an offset
        timezone_name: Optional IANA zone. Wall-clock strings are attached to it;
            strings with an explicit offset are converted into it.

    Returns:
        Naive datetime for wall-clock input without a zone, aware otherwise

    Raises:
        LiteDateTimeParseError: If the string is not a recognised datetime
        LiteTimezoneError: If ``timezone_name`` is unknown
    """
    if not iso_string or not iso_string.strip():
        raise LiteDateTimeParseError("Empty datetime string")

    text = iso_string.strip()
    zone = get_zone(timezone_name) if timezone_name else None

    try:
        if not _has_zone_suffix(text):
            match = _LOCAL_DATETIME_RE.match(text)
            if match:
                dt = datetime(*(int(part) for part in match.groups()))
                return dt.replace(tzinfo=zone) if zone else dt

            match = _DATE_ONLY_RE.match(text)
            if match:
                dt = datetime(*(int(part) for part in match.groups()))
                return dt.replace(tzinfo=zone) if zone else dt

        dt = date_parser.isoparse(text)
    except ValueError as e:
        raise LiteDateTimeParseError(f"Unable to parse datetime: {iso_string!r}") from e

    if zone is not None:
        return dt.astimezone(zone) if dt.tzinfo else dt.replace(tzinfo=zone)
    return dt


def normalize_wall_time(dt: datetime) -> datetime:
    """Resolve a zone-attached wall-clock time to one that exists in its zone.

    Times inside a DST gap are moved forward by the gap length; repeated times
    keep their first (fold=0) reading. Naive datetimes are returned unchanged.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).astimezone(dt.tzinfo)


def resolve_local_components(iso_string: str, zone: Optional[str] = None) -> datetime:
    """Resolve an occurrence string into wall-clock calendar components.

    Without ``zone`` the components are returned as a naive datetime; an input
    carrying an explicit offset is projected into the host's local zone first.
    With ``zone`` the components are attached to that IANA zone and normalized
    so the result is a time that actually exists there.
    """
    if zone is None:
        dt = parse_iso_datetime(iso_string)
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt
    return normalize_wall_time(parse_iso_datetime(iso_string, zone))


def to_local_naive(value: datetime, zone: Optional[str] = None) -> datetime:
    """Project a window bound onto the wall clock the engine compares against.

    Naive values are already wall clock. Aware values are converted into
    ``zone`` (or the host's local zone) and stripped of tzinfo.
    """
    if value.tzinfo is None:
        return value
    target = value.astimezone(get_zone(zone)) if zone else value.astimezone()
    return target.replace(tzinfo=None)


def parse_until(value: str, zone: Optional[str] = None) -> datetime:
    """Parse an RRULE UNTIL value into a naive wall-clock bound.

    Handles:
    - RRULE date-time: 20250623T083000 (floating) or 20250623T083000Z (UTC)
    - RRULE date: 20250623 (inclusive through the end of that day)
    - ISO forms: 2025-06-23T08:30:00 and 2025-06-23

    Raises:
        LiteDateTimeParseError: If the value matches none of the formats
    """
    text = value.strip()
    is_utc = text.endswith("Z")
    text = text.rstrip("Z")

    for fmt, date_only in (
        ("%Y%m%dT%H%M%S", False),
        ("%Y-%m-%dT%H:%M:%S", False),
        ("%Y%m%d", True),
        ("%Y-%m-%d", True),
    ):
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if date_only:
            return dt.replace(hour=23, minute=59, second=59)
        if is_utc:
            return to_local_naive(dt.replace(tzinfo=timezone.utc), zone)
        return dt

    raise LiteDateTimeParseError(f"Unable to parse UNTIL value: {value!r}")


def date_to_iso_string(dt: datetime) -> str:
    """Format a datetime's own wall-clock components as ``YYYY-MM-DDTHH:MM:SS``.

    No timezone conversion is applied and no suffix is written.
    """
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )


def format_time_12h(dt: datetime) -> str:
    """Format time as ``H:MM AM/PM`` without a leading zero on the hour."""
    hour = dt.hour % 12 or 12
    am_pm = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {am_pm}"


def _project(iso_string: str, display_timezone: Optional[str], source_timezone: Optional[str]) -> datetime:
    dt = parse_iso_datetime(iso_string, source_timezone)
    if dt.tzinfo is not None and display_timezone:
        dt = dt.astimezone(get_zone(display_timezone))
    return dt


def format_datetime(
    iso_string: str,
    display_timezone: str,
    source_timezone: Optional[str] = None,
    *,
    include_year: bool = True,
    include_weekday: bool = True,
    compact: bool = False,
    hour12: bool = True,
) -> FormattedDateTime:
    """Format an occurrence for display in ``display_timezone``.

    With ``source_timezone`` the wall-clock value is projected from that zone
    into the display zone; without it the value is shown as-is.

    Returns:
        FormattedDateTime, e.g. ``date="January 15, 2024"``, ``time="10:30 AM"``,
        ``weekday="Monday"`` (``"Jan 15, 2024"`` / ``"Mon"`` when compact)
    """
    try:
        dt = _project(iso_string, display_timezone, source_timezone)
    except (LiteRecurrenceError, ValueError):
        logger.debug("format_datetime falling back to raw components for %r", iso_string)
        date_part, _, time_part = iso_string.partition("T")
        return FormattedDateTime(date=date_part or iso_string, time=time_part[:5])

    month = MONTH_NAMES[dt.month - 1]
    if compact:
        month = month[:3]
    date_text = f"{month} {dt.day}"
    if include_year:
        date_text += f", {dt.year}"

    weekday = None
    if include_weekday:
        weekday = WEEKDAY_NAMES[dt.weekday()]
        if compact:
            weekday = weekday[:3]

    time_text = format_time_12h(dt) if hour12 else f"{dt.hour:02d}:{dt.minute:02d}"
    return FormattedDateTime(date=date_text, time=time_text, weekday=weekday)


def format_occurrence_date(
    iso_date: str,
    timezone_name: Optional[str] = None,
    include_time: bool = True,
) -> str:
    """Compact occurrence label such as ``"Mon, Jan 15, 10:00 AM"``.

    Returns the input unchanged if it cannot be parsed.
    """
    try:
        dt = _project(iso_date, timezone_name, None)
    except (LiteRecurrenceError, ValueError):
        return iso_date

    text = f"{WEEKDAY_NAMES[dt.weekday()][:3]}, {MONTH_NAMES[dt.month - 1][:3]} {dt.day}"
    if include_time:
        text += f", {format_time_12h(dt)}"
    return text


def format_date_in_timezone(iso_date: str, timezone_name: str) -> str:
    """Full label such as ``"Dec 1, 2025, 10:00:00 AM MST"``.

    Wall-clock input is read in ``timezone_name``; input with an offset is
    converted into it.
    """
    dt = parse_iso_datetime(iso_date, timezone_name)
    hour = dt.hour % 12 or 12
    am_pm = "AM" if dt.hour < 12 else "PM"
    return (
        f"{MONTH_NAMES[dt.month - 1][:3]} {dt.day}, {dt.year}, "
        f"{hour}:{dt.minute:02d}:{dt.second:02d} {am_pm} {dt.tzname()}"
    )


def calendar_date(iso_string: str, timezone_name: Optional[str] = None) -> date:
    """Wall-clock calendar date of an occurrence in its own (or given) zone."""
    return parse_iso_datetime(iso_string, timezone_name).date()


def is_same_day(
    date1: str,
    date2: str,
    timezone1: Optional[str] = None,
    timezone2: Optional[str] = None,
) -> bool:
    """Check whether two occurrences fall on the same calendar day."""
    return calendar_date(date1, timezone1) == calendar_date(date2, timezone2)
