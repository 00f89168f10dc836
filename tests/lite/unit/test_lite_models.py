"""Tests for eventky_lite.lite_models."""

import pytest
from pydantic import ValidationError

from eventky_lite.lite_models import (
    CountMode,
    OccurrenceRequest,
    RecurrenceRule,
    WeekdayCode,
)

pytestmark = pytest.mark.unit


class TestWeekdayCode:
    def test_weekday_index_and_str(self):
        code = WeekdayCode(code="fr", ordinal=-1)
        assert code.code == "FR"
        assert code.weekday == 4
        assert str(code) == "-1FR"
        assert str(WeekdayCode(code="MO")) == "MO"

    def test_unknown_code_rejected(self):
        with pytest.raises(ValidationError):
            WeekdayCode(code="XX")

    def test_frozen(self):
        code = WeekdayCode(code="MO")
        with pytest.raises(ValidationError):
            code.code = "TU"


class TestOccurrenceRequest:
    def test_defaults(self):
        request = OccurrenceRequest(dtstart="2024-01-01T10:00:00")
        assert request.rrule == ""
        assert request.max_count == 10
        assert request.rdate == []
        assert request.exdate == []
        assert request.from_ is None

    def test_none_lists_become_empty(self):
        request = OccurrenceRequest(dtstart="2024-01-01T10:00:00", rdate=None, exdate=None)
        assert request.rdate == []
        assert request.exdate == []

    def test_negative_max_count_rejected(self):
        with pytest.raises(ValidationError):
            OccurrenceRequest(dtstart="2024-01-01T10:00:00", max_count=-1)


class TestRecurrenceRule:
    def test_is_indefinite(self):
        assert RecurrenceRule(freq="DAILY").is_indefinite
        assert not RecurrenceRule(freq="DAILY", count=3).is_indefinite

    def test_count_mode_values(self):
        assert CountMode("strict") is CountMode.STRICT
        assert CountMode("fill") is CountMode.FILL
