"""Command-line entry for eventky_lite.

Subcommands expose the recurrence engine, the rule label formatter, field
validation, the editor preview and iCalendar export.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from typing import Any, NoReturn

from . import __version__, run


def _datetime_arg(value: str) -> datetime:
    """argparse type for ``--from``/``--until`` bounds."""
    from .calendar.lite_datetime_utils import parse_iso_datetime
    from .lite_exceptions import LiteDateTimeParseError

    try:
        return parse_iso_datetime(value)
    except LiteDateTimeParseError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _cmd_occurrences(args: argparse.Namespace, config: Any) -> int:
    from .calendar.lite_rrule_expander import calculate_next_occurrences

    occurrences = calculate_next_occurrences(
        args.rrule,
        args.dtstart,
        dtstart_tzid=args.tzid,
        rdate=args.rdate,
        exdate=args.exdate,
        max_count=args.max_count,
        from_=args.from_,
        until=args.until,
        config=config,
    )
    if args.json:
        _print_json(occurrences)
        return 0

    if args.labels:
        from .calendar.lite_datetime_utils import format_datetime

    for occurrence in occurrences:
        if not args.labels:
            print(occurrence)
            continue
        # Zone-qualified occurrences are shown in the configured display zone
        shown = format_datetime(occurrence, config.default_timezone, args.tzid, compact=True)
        print(f"{occurrence}  {shown.weekday}, {shown.date} {shown.time}")
    return 0


def _cmd_preview(args: argparse.Namespace, config: Any) -> int:
    from .calendar.lite_occurrence_preview import build_occurrence_preview

    preview = build_occurrence_preview(
        args.rrule,
        args.dtstart,
        rdate=args.rdate,
        excluded=args.exdate,
        max_count=args.max_count,
        dtstart_tzid=args.tzid,
        config=config,
    )
    if args.json:
        _print_json(preview.model_dump(mode="json"))
        return 0

    excluded = set(preview.excluded)
    for occ in preview.occurrences:
        marks = []
        if occ.type == "additional":
            marks.append("additional")
        if occ.date in excluded:
            marks.append("excluded")
        print(f"{occ.date}  {' '.join(marks)}".rstrip())
    stats = preview.stats
    print(
        f"standard={stats.standard_count} additional={stats.additional_count} "
        f"excluded={stats.excluded_count} active={stats.total_active}"
    )
    return 0


def _cmd_label(args: argparse.Namespace, config: Any) -> int:
    from .calendar.lite_rrule_display import get_recurrence_type, parse_rrule_to_label

    label = parse_rrule_to_label(args.rrule)
    if args.json:
        _print_json({"label": label, "type": get_recurrence_type(args.rrule)})
    else:
        print(label)
    return 0


def _cmd_validate(args: argparse.Namespace, config: Any) -> int:
    from .core.validation import get_field_validation_error

    error = get_field_validation_error(args.field, args.value)
    if args.json:
        _print_json({"field": args.field, "valid": error is None, "error": error})
    elif error:
        print(error)
    else:
        print("OK")
    return 1 if error else 0


def _cmd_ics(args: argparse.Namespace, config: Any) -> int:
    from .calendar.lite_ics_export import generate_event_ics
    from .lite_models import LiteRecurringEvent

    event = LiteRecurringEvent(
        uid=args.uid,
        id=args.id,
        author=args.author,
        summary=args.summary,
        dtstart=args.dtstart,
        dtstart_tzid=args.tzid,
        dtend=args.dtend,
        duration=args.duration,
        description=args.description,
        location=args.location,
        rrule=args.rrule,
        rdate=args.rdate,
        exdate=args.exdate,
    )
    result = generate_event_ics(event, calendar_name=args.calendar_name)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    sys.stdout.write(result.value or "")
    return 0


def _add_series_arguments(parser: argparse.ArgumentParser, rrule_required: bool = False) -> None:
    parser.add_argument("--rrule", default="", required=rrule_required, help="RRULE string, e.g. FREQ=WEEKLY;BYDAY=MO")
    parser.add_argument("--dtstart", required=True, metavar="DATETIME", help="Anchor as YYYY-MM-DDTHH:MM:SS")
    parser.add_argument("--tzid", metavar="ZONE", help="IANA timezone of the anchor")
    parser.add_argument("--rdate", action="append", default=[], metavar="DATETIME", help="Additional date (repeatable)")
    parser.add_argument("--exdate", action="append", default=[], metavar="DATETIME", help="Excluded date (repeatable)")


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for eventky_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="eventky_lite",
        description="Eventky Lite - recurrence expansion for calendar events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m eventky_lite occurrences --rrule "FREQ=WEEKLY;BYDAY=MO,WE" --dtstart 2024-01-01T10:00:00
  python -m eventky_lite label --rrule "FREQ=MONTHLY;BYDAY=TH;BYSETPOS=-1"
  python -m eventky_lite validate --field duration --value PT1H30M
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file (default: EVENTKY_CONFIG or ./eventky_lite.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    occ = subparsers.add_parser("occurrences", help="List upcoming occurrences")
    _add_series_arguments(occ)
    occ.add_argument("--max-count", type=int, metavar="N", help="Maximum occurrences to return")
    occ.add_argument("--from", dest="from_", type=_datetime_arg, metavar="DATETIME", help="Skip occurrences before this")
    occ.add_argument("--until", type=_datetime_arg, metavar="DATETIME", help="Stop after this")
    occ.add_argument("--count-mode", choices=("strict", "fill"), help="How COUNT interacts with EXDATE")
    occ.add_argument("--json", action="store_true", help="Print a JSON list")
    occ.add_argument("--labels", action="store_true", help="Append a readable date in the default display zone")
    occ.set_defaults(handler=_cmd_occurrences)

    preview = subparsers.add_parser("preview", help="Editor preview with excluded dates kept")
    _add_series_arguments(preview, rrule_required=True)
    preview.add_argument("--max-count", type=int, metavar="N", help="Preview length (default: COUNT or 104)")
    preview.add_argument("--json", action="store_true", help="Print JSON")
    preview.set_defaults(handler=_cmd_preview)

    label = subparsers.add_parser("label", help="Describe an RRULE in words")
    label.add_argument("--rrule", required=True)
    label.add_argument("--json", action="store_true", help="Print JSON")
    label.set_defaults(handler=_cmd_label)

    validate = subparsers.add_parser("validate", help="Validate an event field value")
    validate.add_argument("--field", required=True, help="Field name, e.g. rrule, duration, dtstart_tzid, geo")
    validate.add_argument("--value", required=True)
    validate.add_argument("--json", action="store_true", help="Print JSON")
    validate.set_defaults(handler=_cmd_validate)

    ics = subparsers.add_parser("ics", help="Export a single event as iCalendar")
    _add_series_arguments(ics)
    ics.add_argument("--summary", required=True)
    ics.add_argument("--uid")
    ics.add_argument("--id", default="event")
    ics.add_argument("--author")
    ics.add_argument("--dtend", metavar="DATETIME")
    ics.add_argument("--duration", metavar="ISO8601", help="Duration such as PT1H30M")
    ics.add_argument("--description")
    ics.add_argument("--location")
    ics.add_argument("--calendar-name")
    ics.set_defaults(handler=_cmd_ics)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the eventky_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if getattr(args, "handler", None) is None:
        parser.print_help()
        sys.exit(2)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
