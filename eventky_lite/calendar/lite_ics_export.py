"""iCalendar (.ics) export for recurring events.

Builds VEVENT/VCALENDAR components with the icalendar library for calendar
subscriptions and single-event downloads.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Optional

from icalendar import Calendar, Event as ICalEvent, vCalAddress, vRecur

from ..lite_exceptions import LiteRecurrenceError
from ..lite_models import CalendarMetadata, ICSGeneratorResult, LiteRecurringEvent
from .lite_datetime_utils import parse_iso_datetime
from .lite_duration import parse_duration_components

logger = logging.getLogger(__name__)

PRODUCT_ID = "-//eventky//ics//EN"
DEFAULT_CALENDAR_NAME = "Eventky Calendar"
DEFAULT_EVENT_DURATION = timedelta(hours=1)

_STATUS_MAP = {
    "tentative": "TENTATIVE",
    "confirmed": "CONFIRMED",
    "cancelled": "CANCELLED",
}


def _parse_geo(geo: str) -> Optional[tuple[float, float]]:
    """Parse ``"lat;lon"`` into a coordinate pair."""
    parts = geo.split(";")
    if len(parts) != 2:
        return None
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return None


def _parse_duration(duration: str) -> Optional[timedelta]:
    parts = parse_duration_components(duration)
    # Seconds are not carried into exported durations
    value = timedelta(days=parts.days, hours=parts.hours, minutes=parts.minutes)
    return value or None


def _strip_rrule_prefix(rrule: str) -> str:
    text = rrule.strip()
    return text[len("RRULE:"):] if text.upper().startswith("RRULE:") else text


def event_to_vevent(event: LiteRecurringEvent, calendar_name: Optional[str] = None) -> ICalEvent:
    """Convert an event record into an icalendar VEVENT.

    Starts with a zone are written with TZID; zone-less wall-clock starts are
    written as floating local time. DTEND wins over DURATION, and an event
    with neither lasts one hour.

    Raises:
        LiteDateTimeParseError: If a date field cannot be parsed
        LiteTimezoneError: If a TZID is unknown
        ValueError: If the RRULE cannot be encoded
    """
    vevent = ICalEvent()
    vevent.add("uid", event.uid or f"{event.id}@eventky")
    vevent.add("dtstamp", datetime.now(timezone.utc))
    vevent.add("summary", event.summary)
    vevent.add("dtstart", parse_iso_datetime(event.dtstart, event.dtstart_tzid))

    if event.dtend:
        vevent.add("dtend", parse_iso_datetime(event.dtend, event.dtend_tzid or event.dtstart_tzid))
    else:
        duration = _parse_duration(event.duration) if event.duration else None
        vevent.add("duration", duration or DEFAULT_EVENT_DURATION)

    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)
    if event.geo:
        geo = _parse_geo(event.geo)
        if geo:
            vevent.add("geo", geo)
        else:
            logger.debug("Skipping malformed GEO %r for event %s", event.geo, event.uid or event.id)
    if event.url:
        vevent.add("url", event.url)
    if event.status:
        vevent.add("status", _STATUS_MAP.get(event.status.lower(), "CONFIRMED"))

    if event.rrule:
        vevent.add("rrule", vRecur.from_ical(_strip_rrule_prefix(event.rrule)))
    if event.rdate:
        vevent.add("rdate", [parse_iso_datetime(d, event.dtstart_tzid) for d in event.rdate])
    if event.exdate:
        vevent.add("exdate", [parse_iso_datetime(d, event.dtstart_tzid) for d in event.exdate])

    if event.sequence is not None:
        vevent.add("sequence", event.sequence)
    if calendar_name:
        vevent.add("categories", [calendar_name])

    if event.author:
        organizer = vCalAddress(f"pubky:{event.author}")
        organizer.params["cn"] = f"pubky:{event.author}"
        vevent.add("organizer", organizer)

    return vevent


def _new_calendar(metadata: Optional[CalendarMetadata]) -> Calendar:
    cal = Calendar()
    cal.add("prodid", PRODUCT_ID)
    cal.add("version", "2.0")
    cal.add("x-wr-calname", metadata.name if metadata and metadata.name else DEFAULT_CALENDAR_NAME)
    if metadata and metadata.description:
        cal.add("x-wr-caldesc", metadata.description)
    if metadata and metadata.timezone:
        cal.add("x-wr-timezone", metadata.timezone)
    return cal


def _serialize(cal: Calendar) -> str:
    return cal.to_ical().decode("utf-8")


def generate_event_ics(event: LiteRecurringEvent, calendar_name: Optional[str] = None) -> ICSGeneratorResult:
    """Generate a single-event .ics document."""
    try:
        cal = _new_calendar(CalendarMetadata(name=calendar_name) if calendar_name else None)
        cal.add_component(event_to_vevent(event, calendar_name))
        return ICSGeneratorResult(success=True, value=_serialize(cal))
    except (LiteRecurrenceError, ValueError, TypeError) as e:
        logger.warning("Failed to generate ICS for event %s: %s", event.uid or event.id, e)
        return ICSGeneratorResult(success=False, error=str(e) or "Failed to generate ICS")


def generate_calendar_ics(
    events: Sequence[LiteRecurringEvent],
    metadata: Optional[CalendarMetadata] = None,
) -> ICSGeneratorResult:
    """Generate a calendar feed containing every event.

    An empty event list yields a valid calendar with only its metadata.
    """
    calendar_name = metadata.name if metadata else None
    try:
        cal = _new_calendar(metadata)
        for event in events:
            cal.add_component(event_to_vevent(event, calendar_name))
        logger.debug("Generated calendar ICS with %d events", len(events))
        return ICSGeneratorResult(success=True, value=_serialize(cal))
    except (LiteRecurrenceError, ValueError, TypeError) as e:
        logger.warning("Failed to generate calendar ICS: %s", e)
        return ICSGeneratorResult(success=False, error=str(e) or "Failed to generate ICS")
