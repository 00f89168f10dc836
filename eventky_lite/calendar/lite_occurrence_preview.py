"""Occurrence preview for recurrence editors.

Occurrences are computed without exclusions so excluded dates can still be
listed (and shown greyed out) next to the active ones.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from ..config_loader import Config
from ..lite_exceptions import LiteRRuleParseError
from ..lite_models import OccurrenceDate, OccurrencePreview, OccurrenceStats
from .lite_datetime_utils import canonical_occurrence_key
from .lite_rrule_expander import calculate_next_occurrences
from .lite_rrule_parser import parse_rrule

logger = logging.getLogger(__name__)

# Two years of weekly occurrences when the rule has no COUNT
DEFAULT_PREVIEW_COUNT = 104


def _preview_count(rrule: str) -> int:
    try:
        count = parse_rrule(rrule).count
    except LiteRRuleParseError:
        count = None
    return count if count else DEFAULT_PREVIEW_COUNT


def build_occurrence_preview(
    rrule: str,
    dtstart: str,
    rdate: Optional[Iterable[str]] = None,
    excluded: Optional[Iterable[str]] = None,
    max_count: Optional[int] = None,
    dtstart_tzid: Optional[str] = None,
    config: Optional[Config] = None,
) -> OccurrencePreview:
    """Build the occurrence list and counters for an editor preview.

    Args:
        rrule: RRULE string; empty input yields an empty preview
        dtstart: Anchor wall-clock time
        rdate: Additional dates, tagged ``additional`` in the result
        excluded: Occurrences the user has excluded (future EXDATE values)
        max_count: Preview length; defaults to the rule's COUNT (or 104) plus the
            number of additional dates
        dtstart_tzid: Optional IANA zone of the anchor
        config: Optional engine configuration

    Returns:
        OccurrencePreview with tagged occurrences, sorted exclusions and stats
    """
    if not rrule or not dtstart:
        return OccurrencePreview()

    additional = [entry for entry in (rdate or []) if entry]
    additional_keys = {canonical_occurrence_key(entry) for entry in additional}
    excluded_keys = {canonical_occurrence_key(entry) for entry in (excluded or []) if entry}

    occurrences = calculate_next_occurrences(
        rrule,
        dtstart,
        dtstart_tzid=dtstart_tzid,
        rdate=additional,
        exdate=[],
        max_count=max_count if max_count is not None else _preview_count(rrule) + len(additional),
        config=config,
    )

    tagged = [
        OccurrenceDate(date=occ, type="additional" if occ in additional_keys else "standard")
        for occ in occurrences
    ]
    stats = OccurrenceStats(
        standard_count=sum(1 for occ in tagged if occ.type == "standard"),
        additional_count=len(additional),
        excluded_count=len(excluded_keys),
        total_active=sum(1 for occ in occurrences if occ not in excluded_keys),
    )
    logger.debug("Built occurrence preview: %s", stats)
    return OccurrencePreview(occurrences=tagged, excluded=sorted(excluded_keys), stats=stats)
