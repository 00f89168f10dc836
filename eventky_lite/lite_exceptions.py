"""Custom exception hierarchy for the eventky_lite recurrence engine.

Internal helpers raise these specific types so callers can tell a malformed
rule apart from a malformed anchor or an unknown zone. The public engine entry
point catches every one of them and degrades to returning the anchor date.
"""


class LiteRecurrenceError(Exception):
    """Base exception for all recurrence engine errors."""


class LiteRRuleParseError(LiteRecurrenceError):
    """RRULE string could not be parsed.

    Raised when:
    - A numeric field (INTERVAL, COUNT, BYMONTHDAY, BYMONTH, BYSETPOS) is not an integer
    - A BYDAY entry is not a weekday code with an optional signed ordinal
    - An UNTIL value is not a recognised date or date-time

    The engine treats this as "no recurrence".
    """


class LiteDateTimeParseError(LiteRecurrenceError, ValueError):
    """Datetime string could not be parsed.

    Raised when the anchor, an RDATE/EXDATE entry or a window bound is not in a
    supported ISO-like format.
    """


class LiteTimezoneError(LiteRecurrenceError):
    """Timezone lookup failed.

    Raised when:
    - The IANA identifier is unknown to zoneinfo
    - The identifier is empty or malformed
    """


class LiteRRuleExpansionError(LiteRecurrenceError):
    """Occurrence generation failed part-way through a strategy."""


class LiteConfigError(Exception):
    """Configuration file or value is invalid."""
