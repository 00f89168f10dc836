"""Tests for eventky_lite.calendar.lite_rrule_expander."""

from datetime import datetime, timezone

import pytest

from eventky_lite.calendar.lite_rrule_expander import (
    STRATEGY_INTERVAL,
    STRATEGY_MONTHDAY,
    STRATEGY_NTH_WEEKDAY,
    STRATEGY_WEEKLY_SCAN,
    LiteRRuleExpander,
    calculate_next_occurrences,
    calculate_occurrences_for_request,
    select_strategy,
)
from eventky_lite.calendar.lite_rrule_parser import parse_rrule
from eventky_lite.config_loader import Config
from eventky_lite.lite_exceptions import LiteRRuleExpansionError
from eventky_lite.lite_models import CountMode, OccurrenceRequest

pytestmark = pytest.mark.unit


class TestConcreteScenarios:
    """Reference expansions for common calendar patterns."""

    @pytest.mark.critical_path
    def test_monthly_by_monthday(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYMONTHDAY=21;COUNT=3", "2024-01-21T10:00:00"
        )
        assert result == ["2024-01-21T10:00:00", "2024-02-21T10:00:00", "2024-03-21T10:00:00"]

    def test_monthly_last_day_of_month_handles_leap_february(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYMONTHDAY=-1;COUNT=4", "2024-01-31T10:00:00"
        )
        assert result == [
            "2024-01-31T10:00:00",
            "2024-02-29T10:00:00",
            "2024-03-31T10:00:00",
            "2024-04-30T10:00:00",
        ]

    @pytest.mark.critical_path
    def test_monthly_last_thursday_via_bysetpos(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYDAY=TH;BYSETPOS=-1;COUNT=3", "2024-01-25T10:00:00"
        )
        assert result == ["2024-01-25T10:00:00", "2024-02-29T10:00:00", "2024-03-28T10:00:00"]

    def test_weekly_with_interval_and_no_byday(self):
        result = calculate_next_occurrences("FREQ=WEEKLY;INTERVAL=4;COUNT=3", "2024-01-01T10:00:00")
        assert result == ["2024-01-01T10:00:00", "2024-01-29T10:00:00", "2024-02-26T10:00:00"]

    def test_daily_across_us_spring_forward_keeps_wall_clock(self):
        result = calculate_next_occurrences("FREQ=DAILY;COUNT=5", "2024-03-08T09:00:00")
        assert result == [
            "2024-03-08T09:00:00",
            "2024-03-09T09:00:00",
            "2024-03-10T09:00:00",
            "2024-03-11T09:00:00",
            "2024-03-12T09:00:00",
        ]

    @pytest.mark.critical_path
    def test_zone_qualified_weekly_keeps_berlin_wall_clock(self):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;COUNT=4", "2026-01-20T09:00:21", dtstart_tzid="Europe/Berlin"
        )
        assert result == [
            "2026-01-20T09:00:21",
            "2026-01-27T09:00:21",
            "2026-02-03T09:00:21",
            "2026-02-10T09:00:21",
        ]


class TestStrategies:
    """Strategy dispatch and per-strategy behavior."""

    @pytest.mark.parametrize(
        "rrule,expected",
        [
            ("FREQ=MONTHLY;BYDAY=MO;BYSETPOS=1", STRATEGY_NTH_WEEKDAY),
            ("FREQ=MONTHLY;BYMONTHDAY=15", STRATEGY_MONTHDAY),
            ("FREQ=MONTHLY;BYDAY=2TU", STRATEGY_NTH_WEEKDAY),
            ("FREQ=WEEKLY;BYDAY=MO,WE", STRATEGY_WEEKLY_SCAN),
            ("FREQ=DAILY", STRATEGY_INTERVAL),
            ("FREQ=YEARLY;BYDAY=MO", STRATEGY_INTERVAL),
            ("FREQ=HOURLY", None),
        ],
    )
    def test_select_strategy(self, rrule, expected):
        assert select_strategy(parse_rrule(rrule)) == expected

    def test_first_monday_of_month(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYDAY=MO;BYSETPOS=1;COUNT=3", "2024-01-01T09:00:00"
        )
        assert result == ["2024-01-01T09:00:00", "2024-02-05T09:00:00", "2024-03-04T09:00:00"]

    def test_second_tuesday_from_byday_ordinal(self):
        result = calculate_next_occurrences("FREQ=MONTHLY;BYDAY=2TU;COUNT=3", "2024-01-09T18:30:00")
        assert result == ["2024-01-09T18:30:00", "2024-02-13T18:30:00", "2024-03-12T18:30:00"]

    def test_weekly_multiple_days(self):
        result = calculate_next_occurrences("FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4", "2024-01-01T10:00:00")
        assert result == [
            "2024-01-01T10:00:00",
            "2024-01-03T10:00:00",
            "2024-01-08T10:00:00",
            "2024-01-10T10:00:00",
        ]

    def test_weekly_byday_with_interval_skips_weeks(self):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO;COUNT=3", "2024-01-01T10:00:00"
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-15T10:00:00", "2024-01-29T10:00:00"]

    def test_monthday_31_skips_short_months(self):
        result = calculate_next_occurrences("FREQ=MONTHLY;BYMONTHDAY=31;COUNT=3", "2024-01-31T08:00:00")
        assert result == ["2024-01-31T08:00:00", "2024-03-31T08:00:00", "2024-05-31T08:00:00"]

    def test_monthly_step_from_month_end_carries_clamped_day(self):
        result = calculate_next_occurrences("FREQ=MONTHLY;COUNT=4", "2024-01-31T10:00:00")
        assert result == [
            "2024-01-31T10:00:00",
            "2024-02-29T10:00:00",
            "2024-03-29T10:00:00",
            "2024-04-29T10:00:00",
        ]

    def test_yearly_leap_day_clamps_to_feb_28(self):
        result = calculate_next_occurrences("FREQ=YEARLY;COUNT=3", "2024-02-29T12:00:00")
        assert result == ["2024-02-29T12:00:00", "2025-02-28T12:00:00", "2026-02-28T12:00:00"]

    def test_bymonth_limits_generated_months(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYMONTHDAY=1;BYMONTH=1,7;COUNT=3", "2024-01-01T10:00:00"
        )
        assert result == ["2024-01-01T10:00:00", "2024-07-01T10:00:00", "2025-01-01T10:00:00"]

    def test_unknown_strategy_name_raises(self):
        expander = LiteRRuleExpander()
        with pytest.raises(LiteRRuleExpansionError):
            expander._candidates("bogus", parse_rrule("FREQ=DAILY"), datetime(2024, 1, 1))


class TestExclusionsAndCount:
    """EXDATE, RDATE and the two COUNT modes."""

    def test_strict_mode_excluded_occurrence_consumes_count(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=5", "2024-01-01T10:00:00", exdate=["2024-01-03T10:00:00"]
        )
        assert result == [
            "2024-01-01T10:00:00",
            "2024-01-02T10:00:00",
            "2024-01-04T10:00:00",
            "2024-01-05T10:00:00",
        ]

    def test_fill_mode_returns_count_results_despite_exclusion(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=5",
            "2024-01-01T10:00:00",
            exdate=["2024-01-03T10:00:00"],
            config=Config(count_mode=CountMode.FILL),
        )
        assert len(result) == 5
        assert "2024-01-03T10:00:00" not in result
        assert result[-1] == "2024-01-06T10:00:00"

    def test_excluded_anchor_is_omitted(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-01-01T10:00:00", exdate=["2024-01-01T10:00:00"]
        )
        assert result == ["2024-01-02T10:00:00", "2024-01-03T10:00:00"]

    def test_exdate_matches_on_normalized_prefix(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-01-01T10:00:00", exdate=["2024-01-02T10:00:00.000Z"]
        )
        assert "2024-01-02T10:00:00" not in result

    def test_exdate_in_basic_format_is_recognised(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-01-01T10:00:00", exdate=["20240102T100000"]
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-03T10:00:00"]

    def test_rdate_merged_and_deduplicated(self):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;COUNT=2",
            "2024-01-01T10:00:00",
            rdate=["2024-01-03T15:00:00", "2024-01-08T10:00:00", "2024-01-08T10:00:00.000"],
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-03T15:00:00", "2024-01-08T10:00:00"]

    def test_excluded_rdate_is_dropped(self):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;COUNT=1",
            "2024-01-01T10:00:00",
            rdate=["2024-01-05T10:00:00"],
            exdate=["2024-01-05T10:00:00"],
        )
        assert result == ["2024-01-01T10:00:00"]

    def test_max_count_without_count(self):
        result = calculate_next_occurrences("FREQ=DAILY", "2024-01-01T10:00:00", max_count=3)
        assert result == ["2024-01-01T10:00:00", "2024-01-02T10:00:00", "2024-01-03T10:00:00"]

    def test_max_count_zero_returns_empty(self):
        assert calculate_next_occurrences("FREQ=DAILY", "2024-01-01T10:00:00", max_count=0) == []

    def test_default_max_count_is_ten(self):
        assert len(calculate_next_occurrences("FREQ=DAILY", "2024-01-01T10:00:00")) == 10


class TestWindowBounds:
    """from_/until windows and the rule's own UNTIL."""

    def test_from_skips_earlier_occurrences(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY", "2024-01-01T10:00:00", max_count=3, from_=datetime(2024, 1, 5)
        )
        assert result == ["2024-01-05T10:00:00", "2024-01-06T10:00:00", "2024-01-07T10:00:00"]

    def test_until_stops_generation(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY", "2024-01-01T10:00:00", until=datetime(2024, 1, 3, 23, 59)
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-02T10:00:00", "2024-01-03T10:00:00"]

    def test_count_still_counts_occurrences_before_window(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=5", "2024-01-01T10:00:00", from_=datetime(2024, 1, 4)
        )
        assert result == ["2024-01-04T10:00:00", "2024-01-05T10:00:00"]

    @pytest.mark.parametrize("until", ["20240103T235959", "20240103", "2024-01-03"])
    def test_rrule_until_is_inclusive(self, until):
        result = calculate_next_occurrences(f"FREQ=DAILY;UNTIL={until}", "2024-01-01T10:00:00")
        assert result == ["2024-01-01T10:00:00", "2024-01-02T10:00:00", "2024-01-03T10:00:00"]

    def test_rdate_after_rrule_until_is_kept(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;UNTIL=20240103T235959", "2024-01-01T10:00:00", rdate=["2024-02-01T10:00:00"]
        )
        assert result == [
            "2024-01-01T10:00:00",
            "2024-01-02T10:00:00",
            "2024-01-03T10:00:00",
            "2024-02-01T10:00:00",
        ]

    def test_rdate_outside_caller_window_is_dropped(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=2",
            "2024-01-01T10:00:00",
            rdate=["2024-02-01T10:00:00"],
            until=datetime(2024, 1, 31),
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-02T10:00:00"]

    def test_aware_from_bound_is_projected_into_event_zone(self):
        # 07:00 UTC is 09:00 in Berlin (CEST)
        result = calculate_next_occurrences(
            "FREQ=DAILY",
            "2024-06-03T09:00:00",
            dtstart_tzid="Europe/Berlin",
            max_count=1,
            from_=datetime(2024, 6, 5, 7, 0, tzinfo=timezone.utc),
        )
        assert result == ["2024-06-05T09:00:00"]

    def test_request_accepts_from_alias(self):
        request = OccurrenceRequest(
            rrule="FREQ=DAILY",
            dtstart="2024-01-01T10:00:00",
            max_count=2,
            **{"from": datetime(2024, 1, 10)},
        )
        assert calculate_occurrences_for_request(request) == [
            "2024-01-10T10:00:00",
            "2024-01-11T10:00:00",
        ]


class TestTimezonePath:
    """Zone-qualified anchors."""

    def test_daily_across_dst_gap_moves_forward(self, test_timezone):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-03-09T02:30:00", dtstart_tzid=test_timezone
        )
        assert result == ["2024-03-09T02:30:00", "2024-03-10T03:30:00", "2024-03-11T02:30:00"]

    def test_anchor_in_dst_gap_does_not_shift_later_occurrences(self, test_timezone):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-03-10T02:30:00", dtstart_tzid=test_timezone
        )
        assert result == ["2024-03-10T03:30:00", "2024-03-11T02:30:00", "2024-03-12T02:30:00"]

    def test_weekly_across_fall_back_keeps_wall_clock(self, test_timezone):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;BYDAY=SU;COUNT=3", "2024-10-27T09:00:00", dtstart_tzid=test_timezone
        )
        assert result == ["2024-10-27T09:00:00", "2024-11-03T09:00:00", "2024-11-10T09:00:00"]

    def test_unknown_zone_falls_back_to_anchor(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=3", "2024-01-01T10:00:00", dtstart_tzid="Mars/Olympus_Mons"
        )
        assert result == ["2024-01-01T10:00:00"]


class TestFailureHandling:
    """The engine never raises."""

    def test_malformed_anchor_returns_raw_anchor(self):
        assert calculate_next_occurrences("FREQ=DAILY;COUNT=3", "not-a-date") == ["not-a-date"]

    def test_empty_anchor_returns_empty(self):
        assert calculate_next_occurrences("FREQ=DAILY", "") == []

    @pytest.mark.parametrize("rrule", ["", "INTERVAL=2", "FREQ=DAILY;COUNT=abc", "FREQ=DAILY;UNTIL=soon"])
    def test_rule_without_usable_freq_yields_anchor_and_rdates(self, rrule):
        result = calculate_next_occurrences(rrule, "2024-01-01T10:00:00", rdate=["2024-01-05T10:00:00"])
        assert result == ["2024-01-01T10:00:00", "2024-01-05T10:00:00"]

    def test_invalid_request_field_returns_anchor(self, caplog):
        result = calculate_next_occurrences("FREQ=DAILY;COUNT=2", "2024-01-01T10:00:00", rdate=[None])
        assert result == ["2024-01-01T10:00:00"]
        assert "Invalid occurrence request" in caplog.text

    def test_invalid_request_without_anchor_returns_empty(self):
        assert calculate_next_occurrences("FREQ=DAILY", "", exdate=[42.5]) == []

    def test_unparseable_rdate_is_skipped(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY;COUNT=2", "2024-01-01T10:00:00", rdate=["garbage", "2024-02-01T10:00:00"]
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-02T10:00:00", "2024-02-01T10:00:00"]

    def test_exception_inside_expansion_is_logged_and_anchor_returned(self, monkeypatch, caplog):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(LiteRRuleExpander, "_run_strategy", boom)
        result = calculate_next_occurrences("FREQ=DAILY", "2024-01-01T10:00:00")
        assert result == ["2024-01-01T10:00:00"]
        assert "Error calculating occurrences" in caplog.text


class TestIterationCaps:
    """Configurable safety caps bound runaway generation."""

    def test_interval_cap(self):
        result = calculate_next_occurrences(
            "FREQ=DAILY", "2024-01-01T10:00:00", max_count=50, config=Config(max_step_iterations=5)
        )
        assert len(result) == 6

    def test_scan_cap(self):
        result = calculate_next_occurrences(
            "FREQ=WEEKLY;BYDAY=MO", "2024-01-01T10:00:00", max_count=50, config=Config(max_scan_iterations=10)
        )
        assert result == ["2024-01-01T10:00:00", "2024-01-08T10:00:00"]

    def test_period_cap(self):
        result = calculate_next_occurrences(
            "FREQ=MONTHLY;BYMONTHDAY=1",
            "2024-01-01T10:00:00",
            max_count=50,
            config=Config(max_period_iterations=3),
        )
        assert result == ["2024-01-01T10:00:00", "2024-02-01T10:00:00", "2024-03-01T10:00:00"]

    def test_unmatched_bymonth_terminates(self):
        result = calculate_next_occurrences("FREQ=DAILY;BYMONTH=13", "2024-01-01T10:00:00")
        assert result == ["2024-01-01T10:00:00"]


class TestProperties:
    """Invariants that hold for every input."""

    RULES = [
        ("FREQ=DAILY;COUNT=7", "2024-01-01T10:00:00"),
        ("FREQ=WEEKLY;BYDAY=TU,TH;COUNT=9", "2024-02-01T08:15:00"),
        ("FREQ=MONTHLY;BYMONTHDAY=1,-1", "2024-01-01T00:00:00"),
        ("FREQ=MONTHLY;BYDAY=FR;BYSETPOS=-1", "2024-01-26T17:00:00"),
        ("FREQ=YEARLY;INTERVAL=2", "2020-02-29T12:00:00"),
    ]
    EXDATES = ["2024-01-03T10:00:00", "2024-02-06T08:15:00", "2024-01-31T00:00:00"]

    @pytest.mark.parametrize("rrule,dtstart", RULES)
    def test_ordered_bounded_deterministic_and_excluded(self, rrule, dtstart):
        first = calculate_next_occurrences(rrule, dtstart, exdate=self.EXDATES, max_count=6)
        second = calculate_next_occurrences(rrule, dtstart, exdate=self.EXDATES, max_count=6)

        assert first == second
        assert first == sorted(first)
        assert len(first) <= 6
        assert len(set(first)) == len(first)
        assert not set(first) & set(self.EXDATES)

    @pytest.mark.parametrize("rrule,dtstart", RULES)
    def test_anchor_is_first(self, rrule, dtstart):
        assert calculate_next_occurrences(rrule, dtstart)[0] == dtstart
