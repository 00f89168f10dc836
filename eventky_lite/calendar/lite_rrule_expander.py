"""RRULE expansion logic for eventky_lite.

Turns an RRULE string, an anchor datetime (optionally zone-qualified) and
RDATE/EXDATE lists into an ascending, de-duplicated list of occurrence strings.
"""

import calendar
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from ..config_loader import Config
from ..lite_exceptions import LiteDateTimeParseError, LiteRRuleExpansionError, LiteRRuleParseError
from ..lite_models import SUPPORTED_FREQUENCIES, CountMode, OccurrenceRequest, RecurrenceRule
from .lite_datetime_utils import (
    ISO_LOCAL_FORMAT,
    canonical_occurrence_key,
    date_to_iso_string,
    parse_iso_datetime,
    parse_until,
    resolve_local_components,
    to_local_naive,
)
from .lite_rrule_parser import parse_rrule

logger = logging.getLogger(__name__)

SATURDAY = 5

STRATEGY_NTH_WEEKDAY = "nth_weekday_of_month"
STRATEGY_MONTHDAY = "day_of_month"
STRATEGY_WEEKLY_SCAN = "weekly_day_scan"
STRATEGY_INTERVAL = "interval_step"

_STEP_UNITS = {
    "DAILY": "days",
    "WEEKLY": "weeks",
    "MONTHLY": "months",
    "YEARLY": "years",
}


def select_strategy(rule: RecurrenceRule) -> Optional[str]:
    """Pick the generation strategy for a rule, in dispatch priority order.

    Returns:
        Strategy name, or None when the rule cannot generate occurrences
    """
    if rule.freq not in SUPPORTED_FREQUENCIES:
        return None
    if rule.freq == "MONTHLY" and rule.bysetpos and rule.byday:
        return STRATEGY_NTH_WEEKDAY
    if rule.freq == "MONTHLY" and rule.bymonthday:
        return STRATEGY_MONTHDAY
    if rule.freq == "MONTHLY" and rule.byday:
        return STRATEGY_NTH_WEEKDAY
    if rule.freq == "WEEKLY" and rule.byday:
        return STRATEGY_WEEKLY_SCAN
    return STRATEGY_INTERVAL


@dataclass
class _Expansion:
    """Per-call state shared by the driver loop."""

    seed: datetime
    anchor: datetime
    anchor_key: str
    zone: Optional[str]
    window_start: Optional[datetime]
    window_end: Optional[datetime]
    excluded: set[str]
    rule_end: Optional[datetime] = None
    results: list[str] = field(default_factory=list)

    def in_window(self, value: datetime) -> bool:
        if self.window_start is not None and value < self.window_start:
            return False
        return self.window_end is None or value <= self.window_end


class LiteRRuleExpander:
    """Recurrence expansion engine.

    Stateless apart from its configuration; safe to share between threads and
    to call on every render.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize expander.

        Args:
            config: Configuration with iteration caps and COUNT mode (defaults used if None)
        """
        self.config = config or Config()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate(self, request: OccurrenceRequest) -> list[str]:
        """Calculate occurrences for a request; never raises.

        Any internal error is logged and the raw anchor is returned as a
        one-element list.
        """
        if not request.dtstart:
            return []
        try:
            return self._calculate(request)
        except Exception:
            logger.exception(
                "Error calculating occurrences for rrule=%r dtstart=%r tzid=%r",
                request.rrule,
                request.dtstart,
                request.dtstart_tzid,
            )
            return [request.dtstart]

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _calculate(self, request: OccurrenceRequest) -> list[str]:
        zone = request.dtstart_tzid or None
        # Strategies step from the written wall clock, even when it falls in a DST gap
        if zone:
            seed = parse_iso_datetime(request.dtstart, zone).replace(tzinfo=None)
        else:
            seed = resolve_local_components(request.dtstart)
        anchor = self._resolve(seed, zone)
        anchor_key = date_to_iso_string(anchor)

        excluded = {canonical_occurrence_key(ex) for ex in request.exdate if ex and ex.strip()}

        state = _Expansion(
            seed=seed,
            anchor=anchor,
            anchor_key=anchor_key,
            zone=zone,
            window_start=to_local_naive(request.from_, zone) if request.from_ else None,
            window_end=to_local_naive(request.until, zone) if request.until else None,
            excluded=excluded,
        )

        anchor_included = anchor_key not in excluded and state.in_window(anchor)
        if anchor_included:
            state.results.append(anchor_key)

        rule = self._parse_rule(request.rrule, zone, state)
        if rule is not None:
            strategy = select_strategy(rule)
            if strategy is not None:
                slots = self._target_slots(rule, request, anchor_included)
                logger.debug(
                    "Expanding rrule=%r with strategy=%s slots=%d", request.rrule, strategy, slots
                )
                self._run_strategy(strategy, rule, state, slots)

        self._merge_rdates(request.rdate, state)

        ordered = sorted(state.results, key=lambda key: datetime.strptime(key, ISO_LOCAL_FORMAT))
        return ordered[: request.max_count]

    def _parse_rule(
        self, rrule: str, zone: Optional[str], state: _Expansion
    ) -> Optional[RecurrenceRule]:
        """Parse the RRULE; a malformed rule means "no recurrence"."""
        try:
            rule = parse_rrule(rrule)
            if rule.until:
                state.rule_end = parse_until(rule.until, zone)
        except (LiteRRuleParseError, LiteDateTimeParseError) as e:
            logger.warning("Ignoring malformed RRULE %r: %s", rrule, e)
            return None

        if not rule.freq:
            return None
        return rule

    def _target_slots(
        self, rule: RecurrenceRule, request: OccurrenceRequest, anchor_included: bool
    ) -> int:
        """How many candidates a strategy may consume after the anchor."""
        if rule.count is None:
            return request.max_count + len(request.exdate)
        if self.config.count_mode == CountMode.FILL and not anchor_included:
            return max(rule.count, 0)
        # The anchor is the first instance of the series
        return max(rule.count - 1, 0)

    def _run_strategy(self, strategy: str, rule: RecurrenceRule, state: _Expansion, slots: int) -> None:
        """Drain a strategy's candidates through window, BYMONTH and EXDATE filters.

        With COUNT, candidates before the window start consume a slot, and so
        do excluded ones in strict mode. Without COUNT only emitted
        occurrences consume slots.
        """
        count_limited = rule.count is not None
        strict = self.config.count_mode == CountMode.STRICT
        consumed = 0

        for candidate in self._candidates(strategy, rule, state.seed):
            if consumed >= slots:
                break

            resolved = self._resolve(candidate, state.zone)
            if state.window_end is not None and resolved > state.window_end:
                break
            if state.rule_end is not None and resolved > state.rule_end:
                break

            key = date_to_iso_string(resolved)
            if key == state.anchor_key:
                continue
            if rule.bymonth and resolved.month not in rule.bymonth:
                continue
            if state.window_start is not None and resolved < state.window_start:
                if count_limited:
                    consumed += 1
                continue
            if key in state.excluded:
                if count_limited and strict:
                    consumed += 1
                continue
            if key in state.results:
                continue

            state.results.append(key)
            consumed += 1

    def _merge_rdates(self, rdates: list[str], state: _Expansion) -> None:
        """Merge one-off RDATE occurrences, skipping duplicates and exclusions."""
        for entry in rdates:
            if not entry or not entry.strip():
                continue
            key = canonical_occurrence_key(entry)
            try:
                value = datetime.strptime(key, ISO_LOCAL_FORMAT)
            except ValueError:
                logger.warning("Failed to parse RDATE %r, skipping", entry)
                continue
            if key in state.excluded or key in state.results or not state.in_window(value):
                continue
            state.results.append(key)

    @staticmethod
    def _resolve(candidate: datetime, zone: Optional[str]) -> datetime:
        """Move a generated wall-clock time onto a time that exists in ``zone``."""
        if zone is None:
            return candidate
        return resolve_local_components(date_to_iso_string(candidate), zone).replace(tzinfo=None)

    # ------------------------------------------------------------------
    # Generation strategies
    # ------------------------------------------------------------------

    def _candidates(self, strategy: str, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        if strategy == STRATEGY_NTH_WEEKDAY:
            return self._iter_nth_weekday(rule, anchor)
        if strategy == STRATEGY_MONTHDAY:
            return self._iter_monthday(rule, anchor)
        if strategy == STRATEGY_WEEKLY_SCAN:
            return self._iter_weekly_scan(rule, anchor)
        if strategy == STRATEGY_INTERVAL:
            return self._iter_interval_steps(rule, anchor)
        raise LiteRRuleExpansionError(f"Unknown generation strategy: {strategy!r}")

    @staticmethod
    def _interval(rule: RecurrenceRule) -> int:
        return rule.interval if rule.interval > 0 else 1

    def _iter_interval_steps(self, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        """Repeatedly add ``interval`` units of the frequency to the running date.

        Month and year steps clamp to the last valid day, and the clamped day
        carries into later steps (Jan 31, Feb 29, Mar 29 ...).
        """
        unit = _STEP_UNITS[rule.freq]  # type: ignore[index]
        step_size = relativedelta(**{unit: self._interval(rule)})
        current = anchor
        for step in range(1, self.config.max_step_iterations + 1):
            try:
                current = current + step_size
                yield current
            except (ValueError, OverflowError):
                logger.debug("Interval stepping left the supported date range at step %d", step)
                return

    def _iter_weekly_scan(self, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        """Walk forward one day at a time, emitting days whose weekday is targeted.

        After each Saturday, ``interval - 1`` extra weeks are skipped. Ordinal
        prefixes on BYDAY codes have no meaning here and are ignored.
        """
        targets = {code.weekday for code in rule.byday}
        interval = self._interval(rule)
        search = anchor
        try:
            for _ in range(self.config.max_scan_iterations):
                weekday = search.weekday()
                if weekday in targets and search != anchor:
                    yield search
                search += timedelta(days=1)
                if weekday == SATURDAY and interval > 1:
                    search += timedelta(weeks=interval - 1)
        except OverflowError:
            logger.debug("Weekly scan left the supported date range")

    def _iter_months(self, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        """First day of each candidate month, stepping ``interval`` months."""
        first = anchor.replace(day=1)
        interval = self._interval(rule)
        for period in range(self.config.max_period_iterations):
            try:
                yield first + relativedelta(months=period * interval)
            except (ValueError, OverflowError):
                logger.debug("Monthly stepping left the supported date range at period %d", period)
                return

    def _iter_monthday(self, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        """Resolve BYMONTHDAY values in each candidate month.

        Negative values count back from the month end (-1 is the last day). A
        value that does not land inside the target month is skipped, so day 31
        is never produced for a 30-day month.
        """
        for month_start in self._iter_months(rule, anchor):
            last_day = calendar.monthrange(month_start.year, month_start.month)[1]
            days = set()
            for value in rule.bymonthday:
                day = value if value > 0 else last_day + value + 1
                if value != 0 and 1 <= day <= last_day:
                    days.add(day)
            for day in sorted(days):
                candidate = month_start.replace(day=day)
                if candidate > anchor:
                    yield candidate

    def _iter_nth_weekday(self, rule: RecurrenceRule, anchor: datetime) -> Iterator[datetime]:
        """Select weekdays in each candidate month by ordinal and BYSETPOS.

        Each BYDAY code contributes either its ordinal match (``2TU``,
        ``-1FR``) or every matching weekday of the month. BYSETPOS then picks
        1-based positions from the sorted set; negative positions count from
        the end.
        """
        for month_start in self._iter_months(rule, anchor):
            matched = self._month_weekday_set(rule, month_start)
            if rule.bysetpos:
                selected = set()
                for position in rule.bysetpos:
                    if 0 < position <= len(matched):
                        selected.add(matched[position - 1])
                    elif 0 < -position <= len(matched):
                        selected.add(matched[position])
                matched = sorted(selected)
            for candidate in matched:
                if candidate > anchor:
                    yield candidate

    @staticmethod
    def _month_weekday_set(rule: RecurrenceRule, month_start: datetime) -> list[datetime]:
        last_day = calendar.monthrange(month_start.year, month_start.month)[1]
        month_days = [month_start.replace(day=day) for day in range(1, last_day + 1)]
        matched = set()
        for code in rule.byday:
            same_weekday = [day for day in month_days if day.weekday() == code.weekday]
            if not code.ordinal:
                matched.update(same_weekday)
            elif 0 < code.ordinal <= len(same_weekday):
                matched.add(same_weekday[code.ordinal - 1])
            elif 0 < -code.ordinal <= len(same_weekday):
                matched.add(same_weekday[code.ordinal])
        return sorted(matched)


def calculate_occurrences_for_request(
    request: OccurrenceRequest, config: Optional[Config] = None
) -> list[str]:
    """Calculate occurrences for a pre-built OccurrenceRequest."""
    return LiteRRuleExpander(config).calculate(request)


def calculate_next_occurrences(
    rrule: Optional[str],
    dtstart: str,
    dtstart_tzid: Optional[str] = None,
    rdate: Optional[list[str]] = None,
    exdate: Optional[list[str]] = None,
    max_count: Optional[int] = None,
    from_: Optional[datetime] = None,
    until: Optional[datetime] = None,
    *,
    config: Optional[Config] = None,
) -> list[str]:
    """Calculate the next occurrences of a recurring event.

    Args:
        rrule: RRULE string (``KEY=VALUE;...``); empty means only the anchor and RDATEs
        dtstart: Anchor as ``YYYY-MM-DDTHH:MM:SS`` wall-clock time
        dtstart_tzid: Optional IANA zone; keeps wall-clock time fixed across DST
        rdate: Additional one-off occurrences
        exdate: Excluded occurrences, compared by their first 19 characters
        max_count: Upper bound on returned occurrences (config default: 10)
        from_: Skip occurrences before this bound
        until: Stop at occurrences after this bound
        config: Optional configuration (iteration caps, COUNT mode)

    Returns:
        Ascending, de-duplicated occurrence strings, at most ``max_count`` long.
        On any internal error, ``[dtstart]``.
    """
    cfg = config or Config()
    try:
        request = OccurrenceRequest(
            rrule=rrule or "",
            dtstart=dtstart or "",
            dtstart_tzid=dtstart_tzid,
            rdate=rdate or [],
            exdate=exdate or [],
            max_count=cfg.max_count if max_count is None else max(max_count, 0),
            from_=from_,
            until=until,
        )
    except (ValidationError, TypeError):
        logger.exception("Invalid occurrence request for rrule=%r dtstart=%r", rrule, dtstart)
        return [dtstart] if dtstart else []
    return LiteRRuleExpander(cfg).calculate(request)
