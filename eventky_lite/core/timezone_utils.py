"""Timezone detection and lookup utilities for eventky_lite."""

from __future__ import annotations

import datetime
import logging
import os
import time
from functools import lru_cache
from pathlib import Path
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..lite_exceptions import LiteTimezoneError

logger = logging.getLogger(__name__)

# Fallback when the host zone cannot be determined
DEFAULT_TIMEZONE = "UTC"


class TimezoneDetector:
    """Detects the host timezone using multiple fallback strategies."""

    # Timezone abbreviation to IANA identifier mapping
    TZ_ABBREV_MAP: ClassVar[dict[str, str]] = {
        "PST": "America/Los_Angeles",
        "PDT": "America/Los_Angeles",
        "MST": "America/Denver",
        "MDT": "America/Denver",
        "CST": "America/Chicago",
        "CDT": "America/Chicago",
        "EST": "America/New_York",
        "EDT": "America/New_York",
        "GMT": "Europe/London",
        "BST": "Europe/London",
        "CET": "Europe/Berlin",
        "CEST": "Europe/Berlin",
        "JST": "Asia/Tokyo",
    }

    # Obsolete/deprecated IANA names to current names
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "GMT": "UTC",
        "Etc/UTC": "UTC",
        "Etc/GMT": "UTC",
        "Etc/Universal": "UTC",
        "Universal": "UTC",
        "Zulu": "UTC",
        "Asia/Calcutta": "Asia/Kolkata",
        "Asia/Rangoon": "Asia/Yangon",
        "Asia/Saigon": "Asia/Ho_Chi_Minh",
        "Europe/Kiev": "Europe/Kyiv",
        "America/Godthab": "America/Nuuk",
    }

    # Long display names keyed by zone abbreviation
    LONG_NAME_MAP: ClassVar[dict[str, str]] = {
        "UTC": "Coordinated Universal Time",
        "GMT": "Greenwich Mean Time",
        "BST": "British Summer Time",
        "WET": "Western European Standard Time",
        "WEST": "Western European Summer Time",
        "CET": "Central European Standard Time",
        "CEST": "Central European Summer Time",
        "EET": "Eastern European Standard Time",
        "EEST": "Eastern European Summer Time",
        "EST": "Eastern Standard Time",
        "EDT": "Eastern Daylight Time",
        "CST": "Central Standard Time",
        "CDT": "Central Daylight Time",
        "MST": "Mountain Standard Time",
        "MDT": "Mountain Daylight Time",
        "PST": "Pacific Standard Time",
        "PDT": "Pacific Daylight Time",
        "AKST": "Alaska Standard Time",
        "AKDT": "Alaska Daylight Time",
        "HST": "Hawaii-Aleutian Standard Time",
        "JST": "Japan Standard Time",
        "KST": "Korean Standard Time",
        "AEST": "Australian Eastern Standard Time",
        "AEDT": "Australian Eastern Daylight Time",
    }

    def get_local_timezone(self) -> str:
        """Get the host's local timezone as an IANA identifier.

        Strategies, in order:
        1. ``TZ`` environment variable, when it names a known zone
        2. ``/etc/localtime`` symlink target under a ``zoneinfo`` directory
        3. ``time.tzname`` abbreviation mapping

        Returns:
            IANA timezone string, ``"UTC"`` if detection fails
        """
        try:
            env_tz = os.environ.get("TZ", "").lstrip(":")
            if env_tz and is_known_timezone(env_tz):
                return resolve_timezone_alias(env_tz)

            localtime = Path("/etc/localtime")
            if localtime.is_symlink():
                target = str(localtime.resolve())
                if "zoneinfo/" in target:
                    candidate = target.split("zoneinfo/", 1)[1]
                    if is_known_timezone(candidate):
                        return resolve_timezone_alias(candidate)

            local_tz_name = time.tzname[time.daylight] if time.daylight else time.tzname[0]
            if local_tz_name in self.TZ_ABBREV_MAP:
                return self.TZ_ABBREV_MAP[local_tz_name]
            if local_tz_name in ("UTC", "GMT"):
                return DEFAULT_TIMEZONE

            logger.debug(
                "Could not detect local timezone from %r, falling back to %s",
                local_tz_name,
                DEFAULT_TIMEZONE,
            )
            return DEFAULT_TIMEZONE

        except OSError as e:
            logger.warning("Failed to detect local timezone: %s, falling back to UTC", e)
            return DEFAULT_TIMEZONE


# Singleton instance for global use
_detector = TimezoneDetector()


def get_local_timezone() -> str:
    """Get the host's local timezone (convenience function).

    Returns:
        IANA timezone string
    """
    return _detector.get_local_timezone()


def resolve_timezone_alias(tz_name: str) -> str:
    """Resolve a timezone alias to its canonical IANA identifier.

    Examples:
        >>> resolve_timezone_alias("US/Pacific")
        'America/Los_Angeles'
        >>> resolve_timezone_alias("Europe/Berlin")
        'Europe/Berlin'
    """
    return _detector.TZ_ALIAS_MAP.get(tz_name, tz_name)


def is_known_timezone(tz_name: str | None) -> bool:
    """Return True when zoneinfo can load ``tz_name``."""
    if not tz_name:
        return False
    try:
        get_zone(tz_name)
    except LiteTimezoneError:
        return False
    return True


@lru_cache(maxsize=64)
def get_zone(tz_name: str) -> ZoneInfo:
    """Load a ZoneInfo for an IANA identifier or alias.

    Raises:
        LiteTimezoneError: If the identifier is empty or unknown
    """
    if not tz_name or not tz_name.strip():
        raise LiteTimezoneError("Empty timezone identifier")
    try:
        return ZoneInfo(resolve_timezone_alias(tz_name.strip()))
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise LiteTimezoneError(f"Unknown timezone: {tz_name!r}") from e


def get_short_timezone(tz_name: str, at: datetime.datetime | None = None) -> str:
    """Get the short display name of a zone, e.g. ``"EST"`` or ``"CEST"``.

    Args:
        tz_name: IANA timezone identifier
        at: Instant to evaluate (DST dependent); defaults to now

    Returns:
        Abbreviation, or ``tz_name`` itself when the zone is unknown
    """
    try:
        zone = get_zone(tz_name)
    except LiteTimezoneError:
        return tz_name
    instant = at or datetime.datetime.now(datetime.timezone.utc)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=zone)
    return instant.astimezone(zone).tzname() or tz_name


def get_long_timezone(tz_name: str, at: datetime.datetime | None = None) -> str:
    """Get the long display name of a zone, e.g. ``"Eastern Standard Time"``.

    Falls back to the abbreviation, then to ``tz_name``.
    """
    short = get_short_timezone(tz_name, at)
    return _detector.LONG_NAME_MAP.get(short, short)
