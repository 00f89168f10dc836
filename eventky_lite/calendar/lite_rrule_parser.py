"""RRULE string parsing and building for eventky_lite."""

import logging
import re
from collections.abc import Iterable, Sequence
from typing import Optional

from pydantic import ValidationError

from ..lite_exceptions import LiteRRuleParseError
from ..lite_models import RecurrenceRule, WeekdayCode

logger = logging.getLogger(__name__)

_BYDAY_RE = re.compile(r"^([+-]?\d{1,2})?([A-Za-z]{2})$")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise LiteRRuleParseError(f"Invalid {key} value: {value!r}") from e


def _parse_int_list(key: str, value: str) -> list[int]:
    return [_parse_int(key, item) for item in value.split(",") if item.strip()]


def parse_weekday_code(value: str) -> WeekdayCode:
    """Parse a single BYDAY entry such as ``MO``, ``2TU`` or ``-1TH``.

    Raises:
        LiteRRuleParseError: If the entry is not a weekday code with an optional
            signed ordinal
    """
    match = _BYDAY_RE.match(value.strip())
    if not match:
        raise LiteRRuleParseError(f"Invalid BYDAY entry: {value!r}")
    ordinal_text, code = match.groups()
    try:
        return WeekdayCode(code=code, ordinal=int(ordinal_text) if ordinal_text else None)
    except ValidationError as e:
        raise LiteRRuleParseError(f"Invalid BYDAY entry: {value!r}") from e


def parse_rrule(rrule_string: Optional[str]) -> RecurrenceRule:
    """Parse an RRULE string into a RecurrenceRule.

    Splits on ``;`` then on the first ``=``. Keys are matched case-sensitively;
    unknown keys are ignored. No bounds validation happens here.

    Args:
        rrule_string: RRULE string, e.g. ``"FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"``;
            an optional ``RRULE:`` prefix is accepted

    Returns:
        RecurrenceRule (``freq`` is None for empty input)

    Raises:
        LiteRRuleParseError: If a numeric or BYDAY field cannot be parsed
    """
    rule = RecurrenceRule()
    if not rrule_string or not rrule_string.strip():
        return rule

    text = rrule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    for part in text.split(";"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = key.strip()
        value = value.strip()

        if key == "FREQ":
            rule.freq = value.upper() or None
        elif key == "INTERVAL":
            rule.interval = _parse_int(key, value)
        elif key == "COUNT":
            rule.count = _parse_int(key, value)
        elif key == "UNTIL":
            rule.until = value or None
        elif key == "BYDAY":
            rule.byday = [parse_weekday_code(day) for day in value.split(",") if day.strip()]
        elif key == "BYMONTHDAY":
            rule.bymonthday = _parse_int_list(key, value)
        elif key == "BYMONTH":
            rule.bymonth = _parse_int_list(key, value)
        elif key == "BYSETPOS":
            rule.bysetpos = _parse_int_list(key, value)
        elif key == "WKST":
            rule.wkst = value.upper() or None
        else:
            logger.debug("Ignoring unsupported RRULE key %r", key)

    return rule


def build_rrule_string(
    enabled: bool,
    frequency: str,
    interval: int = 1,
    count: Optional[int] = None,
    until: Optional[str] = None,
    selected_weekdays: Sequence[str] = (),
    monthly_mode: str = "none",
    bymonthday: Iterable[int] = (),
    bysetpos: Iterable[int] = (),
) -> str:
    """Build an RRULE string from recurrence form state.

    Args:
        enabled: Whether recurrence is switched on; ``""`` is returned otherwise
        frequency: DAILY, WEEKLY, MONTHLY or YEARLY
        interval: Step between periods; only written when greater than 1
        count: Optional COUNT
        until: Optional UNTIL value, written verbatim
        selected_weekdays: Weekday codes for WEEKLY or monthly day-of-week mode
        monthly_mode: ``"dayofmonth"``, ``"dayofweek"`` or ``"none"``
        bymonthday: Days of month for day-of-month mode
        bysetpos: Positions for day-of-week mode

    Returns:
        RRULE string such as ``"FREQ=MONTHLY;BYDAY=TH;BYSETPOS=-1"``
    """
    if not enabled:
        return ""

    frequency = frequency.upper()
    parts = [f"FREQ={frequency}"]
    if interval > 1:
        parts.append(f"INTERVAL={interval}")
    if count:
        parts.append(f"COUNT={count}")
    if until:
        parts.append(f"UNTIL={until}")

    weekdays = ",".join(selected_weekdays)
    if frequency == "WEEKLY" and weekdays:
        parts.append(f"BYDAY={weekdays}")

    if frequency == "MONTHLY":
        monthdays = ",".join(str(day) for day in bymonthday)
        positions = ",".join(str(pos) for pos in bysetpos)
        if monthly_mode == "dayofmonth" and monthdays:
            parts.append(f"BYMONTHDAY={monthdays}")
        elif monthly_mode == "dayofweek":
            if weekdays:
                parts.append(f"BYDAY={weekdays}")
            if positions:
                parts.append(f"BYSETPOS={positions}")

    return ";".join(parts)
