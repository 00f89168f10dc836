"""Data models for recurrence expansion - eventky_lite version."""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# RFC 5545 weekday codes in Python weekday() order (Monday == 0)
WEEKDAY_CODES: tuple[str, ...] = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

SUPPORTED_FREQUENCIES: tuple[str, ...] = ("DAILY", "WEEKLY", "MONTHLY", "YEARLY")

DEFAULT_MAX_COUNT = 10


class CountMode(str, Enum):
    """How COUNT interacts with EXDATE exclusions."""

    STRICT = "strict"  # COUNT bounds candidates before EXDATE filtering (RFC 5545)
    FILL = "fill"  # generator over-produces so COUNT results survive exclusions


class WeekdayCode(BaseModel):
    """A BYDAY entry such as ``TH`` or ``-1TH`` (last Thursday)."""

    code: str
    ordinal: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("code")
    @classmethod
    def _check_code(cls, value: str) -> str:
        value = value.upper()
        if value not in WEEKDAY_CODES:
            raise ValueError(f"Unknown weekday code: {value!r}")
        return value

    @property
    def weekday(self) -> int:
        """Python weekday index (Monday == 0)."""
        return WEEKDAY_CODES.index(self.code)

    def __str__(self) -> str:
        return f"{self.ordinal}{self.code}" if self.ordinal else self.code


class RecurrenceRule(BaseModel):
    """Structured form of an RRULE string.

    Every field is optional; a rule without ``freq`` generates nothing beyond
    the anchor date.
    """

    freq: Optional[str] = None
    interval: int = 1
    count: Optional[int] = None
    until: Optional[str] = None
    byday: list[WeekdayCode] = Field(default_factory=list)
    bymonthday: list[int] = Field(default_factory=list)
    bymonth: list[int] = Field(default_factory=list)
    bysetpos: list[int] = Field(default_factory=list)
    wkst: Optional[str] = None

    @property
    def is_indefinite(self) -> bool:
        """True when neither COUNT nor UNTIL bounds the rule."""
        return self.count is None and self.until is None


class OccurrenceRequest(BaseModel):
    """Options accepted by the recurrence engine."""

    rrule: str = ""
    dtstart: str
    dtstart_tzid: Optional[str] = None
    rdate: list[str] = Field(default_factory=list)
    exdate: list[str] = Field(default_factory=list)
    max_count: int = Field(default=DEFAULT_MAX_COUNT, ge=0)
    from_: Optional[datetime] = Field(default=None, alias="from")
    until: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("rdate", "exdate", mode="before")
    @classmethod
    def _none_to_list(cls, value: Optional[list[str]]) -> list[str]:
        return [] if value is None else value


class FormattedDateTime(BaseModel):
    """Display projection of an occurrence.

    The weekday is always a separate field and is never embedded in ``date``.
    """

    date: str
    time: str
    weekday: Optional[str] = None


class DurationComponents(BaseModel):
    """Components of an ISO 8601 duration."""

    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


class OccurrenceDate(BaseModel):
    """Occurrence tagged with where it came from."""

    date: str
    type: Literal["standard", "additional"] = "standard"


class OccurrenceStats(BaseModel):
    """Counters shown alongside an occurrence preview."""

    standard_count: int = 0
    additional_count: int = 0
    excluded_count: int = 0
    total_active: int = 0


class OccurrencePreview(BaseModel):
    """Occurrence list prepared for a recurrence editor."""

    occurrences: list[OccurrenceDate] = Field(default_factory=list)
    excluded: list[str] = Field(default_factory=list)
    stats: OccurrenceStats = Field(default_factory=OccurrenceStats)


class LiteRecurringEvent(BaseModel):
    """Subset of an event record needed to export it as iCalendar."""

    uid: Optional[str] = None
    id: Optional[str] = None
    author: Optional[str] = None
    summary: str
    dtstart: str
    dtstart_tzid: Optional[str] = None
    dtend: Optional[str] = None
    dtend_tzid: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    geo: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None
    rrule: Optional[str] = None
    rdate: list[str] = Field(default_factory=list)
    exdate: list[str] = Field(default_factory=list)
    sequence: Optional[int] = None


class CalendarMetadata(BaseModel):
    """Calendar-level properties written into an exported feed."""

    name: str
    description: Optional[str] = None
    timezone: Optional[str] = None


class ICSGeneratorResult(BaseModel):
    """Outcome of an ICS export."""

    success: bool
    value: Optional[str] = None
    error: Optional[str] = None
