"""Field validation predicates for event and recurrence data.

All predicates are pure and return ``bool``; ``get_field_validation_error``
maps a failing field to a user-facing message. Lookup tables (known zones,
status vocabularies) live in a lazily initialised, process-wide registry.
"""

import logging
import re
import threading
import zoneinfo
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse

from dateutil.rrule import rrulestr

from ..calendar.lite_rrule_parser import parse_rrule
from ..lite_exceptions import LiteRRuleParseError
from ..lite_models import SUPPORTED_FREQUENCIES

logger = logging.getLogger(__name__)

EVENT_STATUSES: tuple[str, ...] = ("CONFIRMED", "TENTATIVE", "CANCELLED")
RSVP_STATUSES: tuple[str, ...] = ("NEEDS-ACTION", "ACCEPTED", "DECLINED", "TENTATIVE")
LOCATION_TYPES: tuple[str, ...] = ("PHYSICAL", "ONLINE")
CONFERENCE_FEATURES: tuple[str, ...] = ("AUDIO", "VIDEO", "CHAT", "SCREEN", "MODERATOR", "PHONE", "FEED")

_DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$")
_GEO_URI_RE = re.compile(r"^geo:(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)(?:,(-?\d+(?:\.\d+)?))?$")
_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True)
class _ValidationTables:
    timezones: frozenset[str]
    event_statuses: tuple[str, ...]
    rsvp_statuses: tuple[str, ...]


class ValidationRegistry:
    """Lazily built lookup tables shared by every validator.

    The first caller builds the tables under a lock. A failed build leaves the
    registry empty so the next call retries.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: Optional[_ValidationTables] = None

    @property
    def is_initialized(self) -> bool:
        return self._tables is not None

    def get(self) -> _ValidationTables:
        tables = self._tables
        if tables is not None:
            return tables

        with self._lock:
            if self._tables is None:
                try:
                    self._tables = self._build()
                except Exception:
                    self._tables = None
                    logger.exception("Failed to initialise validation tables")
                    raise
                logger.debug("Validation tables initialised with %d zones", len(self._tables.timezones))
            return self._tables

    def reset(self) -> None:
        with self._lock:
            self._tables = None

    @staticmethod
    def _build() -> _ValidationTables:
        return _ValidationTables(
            timezones=frozenset(zoneinfo.available_timezones()),
            event_statuses=EVENT_STATUSES,
            rsvp_statuses=RSVP_STATUSES,
        )


_registry = ValidationRegistry()


def get_validation_registry() -> ValidationRegistry:
    """Return the process-wide validation registry."""
    return _registry


def get_valid_event_statuses() -> list[str]:
    return list(_registry.get().event_statuses)


def get_valid_rsvp_statuses() -> list[str]:
    return list(_registry.get().rsvp_statuses)


def validate_timezone(tz: str) -> bool:
    """True if ``tz`` is an IANA identifier known to zoneinfo."""
    return bool(tz) and tz in _registry.get().timezones


def validate_duration(duration: str) -> bool:
    """True for ``P[nD][T[nH][nM][nS]]`` with at least one component."""
    if not duration:
        return False
    match = _DURATION_RE.match(duration)
    if not match or duration.endswith("T"):
        return False
    return any(group is not None for group in match.groups())


def validate_rrule(rrule: str) -> bool:
    """Check an RRULE string for a valid FREQ and in-range BY* values.

    The rule must also be accepted by ``dateutil.rrule.rrulestr``.
    """
    if not rrule or not rrule.strip():
        return False
    try:
        rule = parse_rrule(rrule)
    except LiteRRuleParseError:
        return False

    if rule.freq not in SUPPORTED_FREQUENCIES:
        return False
    if rule.interval < 1 or (rule.count is not None and rule.count < 1):
        return False
    if any(day == 0 or not -31 <= day <= 31 for day in rule.bymonthday):
        return False
    if any(not 1 <= month <= 12 for month in rule.bymonth):
        return False
    if any(pos == 0 or not -366 <= pos <= 366 for pos in rule.bysetpos):
        return False

    try:
        # Without a DTSTART, dateutil rejects an UNTIL carrying a zone suffix
        rrulestr(rrule.strip(), ignoretz=True)
    except (ValueError, TypeError) as e:
        logger.debug("dateutil rejected RRULE %r: %s", rrule, e)
        return False
    return True


def validate_geo_coordinates(geo: str) -> bool:
    """True for ``lat;lon`` within -90..90 and -180..180."""
    parts = (geo or "").split(";")
    if len(parts) != 2:
        return False
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def validate_geo_uri(uri: str) -> bool:
    """True for ``geo:lat,lon[,alt]`` (RFC 5870) with coordinates in range."""
    match = _GEO_URI_RE.match(uri or "")
    if not match:
        return False
    lat, lon = float(match.group(1)), float(match.group(2))
    return -90 <= lat <= 90 and -180 <= lon <= 180


def validate_location_type(value: str) -> bool:
    return value in LOCATION_TYPES


def validate_conference_features(features: Any) -> bool:
    """True if every entry is a known conference feature."""
    if isinstance(features, str):
        features = [item.strip() for item in features.split(",") if item.strip()]
    return all(feature in CONFERENCE_FEATURES for feature in features)


def validate_color(color: str) -> bool:
    return bool(_COLOR_RE.match(color or ""))


def validate_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def get_field_validation_error(field: str, value: Any) -> Optional[str]:
    """Return a user-facing error for an invalid field value.

    Empty values and unknown fields are never errors.
    """
    if not value:
        return None

    if field == "geo" and not validate_geo_coordinates(value):
        return "Invalid coordinates format (expected: lat;lon)"
    if field in ("url", "image_uri") and not validate_url(value):
        return "Invalid URL format"
    if field == "duration" and not validate_duration(value):
        return "Invalid duration format (expected: PT2H30M)"
    if field == "rrule" and not validate_rrule(value):
        return "Invalid recurrence rule format"
    if field in ("dtstart_tzid", "dtend_tzid") and not validate_timezone(value):
        return "Invalid timezone (use IANA timezone format)"
    if field == "status":
        statuses = get_valid_event_statuses()
        if value not in statuses:
            return f"Invalid status (must be one of: {', '.join(statuses)})"
    if field == "rsvp_status":
        statuses = get_valid_rsvp_statuses()
        if value not in statuses:
            return f"Invalid RSVP status (must be one of: {', '.join(statuses)})"
    if field == "color" and not validate_color(value):
        return "Invalid color (expected: #RRGGBB)"
    if field == "location_type" and not validate_location_type(value):
        return f"Invalid location type (must be one of: {', '.join(LOCATION_TYPES)})"
    return None
