"""Human-readable labels for recurrence rules."""

import logging
import re
from typing import Optional

from ..lite_exceptions import LiteRecurrenceError
from .lite_datetime_utils import MONTH_NAMES, parse_until
from .lite_rrule_parser import parse_rrule

logger = logging.getLogger(__name__)

WEEKDAY_LONG_NAMES = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}

INDEFINITE_MARKER = " ∞"

_FREQ_RE = re.compile(r"FREQ=(\w+)")
_INTERVAL_RE = re.compile(r"INTERVAL=(\d+)")

_PLURAL_UNITS = {
    "DAILY": ("Daily", "days"),
    "WEEKLY": ("Weekly", "weeks"),
    "MONTHLY": ("Monthly", "months"),
    "YEARLY": ("Yearly", "years"),
}


def format_weekday(code: str, style: str = "short") -> str:
    """Display name for a weekday code; unknown codes are returned unchanged.

    Args:
        code: Two-letter code such as ``MO``
        style: ``"short"`` (``Mon``) or ``"long"`` (``Monday``)
    """
    name = WEEKDAY_LONG_NAMES.get(code)
    if name is None:
        return code
    return name if style == "long" else name[:3]


def is_indefinite_recurrence(rrule: str) -> bool:
    """True when the rule has neither COUNT nor UNTIL."""
    return "COUNT=" not in rrule and "UNTIL=" not in rrule


def get_recurrence_type(rrule: str) -> str:
    """Return ``daily``, ``weekly``, ``monthly``, ``yearly`` or ``custom``."""
    match = _FREQ_RE.search(rrule or "")
    if not match:
        return "custom"
    freq = match.group(1).lower()
    return freq if freq.upper() in _PLURAL_UNITS else "custom"


def get_recurrence_interval(rrule: str) -> int:
    match = _INTERVAL_RE.search(rrule or "")
    return int(match.group(1)) if match else 1


def _format_until(until: str) -> Optional[str]:
    try:
        # Label the calendar date as written, without projecting UTC values
        dt = parse_until(until.rstrip("Z"))
    except LiteRecurrenceError:
        logger.debug("Could not format UNTIL value %r for label", until)
        return None
    return f"{MONTH_NAMES[dt.month - 1][:3]} {dt.day}, {dt.year}"


def parse_rrule_to_label(rrule: str) -> str:
    """Describe an RRULE in words.

    Examples:
        ``FREQ=WEEKLY;BYDAY=MO,WE`` -> ``"Weekly on Mon, Wed ∞"``
        ``FREQ=DAILY;INTERVAL=3;COUNT=5`` -> ``"Every 3 days (5 times)"``
        ``FREQ=MONTHLY;UNTIL=20250105`` -> ``"Monthly until Jan 5, 2025"``
    """
    try:
        rule = parse_rrule(rrule)
    except LiteRecurrenceError:
        logger.debug("Unparseable RRULE %r labelled as generic recurrence", rrule)
        return "Recurring"

    interval = rule.interval if rule.interval > 0 else 1
    names = _PLURAL_UNITS.get(rule.freq or "")
    if names is None:
        label = "Recurring"
    else:
        single, plural = names
        label = single if interval == 1 else f"Every {interval} {plural}"
        if rule.freq == "WEEKLY" and rule.byday:
            days = ", ".join(format_weekday(str(day)) for day in rule.byday)
            label += f" on {days}"

    if rule.count is not None:
        label += f" ({rule.count} times)"
    elif rule.until:
        until_text = _format_until(rule.until)
        if until_text:
            label += f" until {until_text}"
    else:
        label += INDEFINITE_MARKER
    return label
