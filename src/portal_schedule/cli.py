"""Command-line access to a student's schedule in the portal database.

Run with: portal-schedule events --user <uuid>                (default window)
Range:    portal-schedule events --user <uuid> --from 2026-10-01 --to 2026-10-31
Day:      portal-schedule day --user <uuid> --date 2026-10-19 --table
Enroll:   portal-schedule enroll --user <uuid> --course 12
Unenroll: portal-schedule unenroll --user <uuid> --course 12
Catalog:  portal-schedule courses --user <uuid>
Events:   portal-schedule create-event --user <uuid> --title "Study group"
              --start 2026-10-20T18:00 --end 2026-10-20T20:00
          portal-schedule delete-event --user <uuid> --id 42

Store credentials come from STORE_URL / STORE_API_KEY (environment or .env).

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
  2 = usage error, e.g. --from without --to
"""

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import date

from dotenv import load_dotenv

from portal_schedule.config import get_config
from portal_schedule.enrollment import EnrollmentService
from portal_schedule.errors import ScheduleError
from portal_schedule.events import EventGateway
from portal_schedule.logging import bind_request_context, get_logger, setup_logging
from portal_schedule.models import MergedEvent
from portal_schedule.query import ScheduleQuery
from portal_schedule.store.base import ScheduleStore
from portal_schedule.store.rest import RestStore

log = get_logger(__name__)


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portal-schedule",
        description="Query and update a student's schedule in the portal database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def with_user(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("--user", required=True, help="Student user id.")
        return p

    events = with_user(sub.add_parser("events", help="Merged events for a date range."))
    events.add_argument("--from", dest="range_start", type=_parse_date, help="First day (YYYY-MM-DD).")
    events.add_argument("--to", dest="range_end", type=_parse_date, help="Last day (YYYY-MM-DD).")
    events.add_argument("--table", action="store_true", help="Human-readable table output.")

    day = with_user(sub.add_parser("day", help="Merged events for one day."))
    day.add_argument("--date", dest="day", type=_parse_date, help="Day (YYYY-MM-DD), default today.")
    day.add_argument("--table", action="store_true", help="Human-readable table output.")

    for name in ("enroll", "unenroll"):
        p = with_user(sub.add_parser(name, help=f"{name.capitalize()} in a course."))
        p.add_argument("--course", required=True, help="Course id.")

    with_user(sub.add_parser("courses", help="Enrolled and available courses."))

    create = with_user(sub.add_parser("create-event", help="Create a freeform event."))
    create.add_argument("--title", required=True)
    create.add_argument("--start", required=True, help="ISO datetime.")
    create.add_argument("--end", required=True, help="ISO datetime.")

    delete = with_user(sub.add_parser("delete-event", help="Delete a freeform event."))
    delete.add_argument("--id", dest="event_id", required=True)

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse *argv*, exiting with a usage error on a half-specified date range."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "events" and (args.range_start is None) != (args.range_end is None):
        parser.error("events: --from and --to must be given together")
    return args


def format_table(events: list[MergedEvent]) -> str:
    """Render events as aligned text lines, one per event."""
    if not events:
        return "No events scheduled."
    lines = []
    for ev in events:
        kind = "class" if ev.is_course_event else "event"
        lines.append(
            f"{ev.start:%Y-%m-%d %a}  {ev.start:%H:%M}-{ev.end:%H:%M}  {kind:<5}  {ev.title}"
        )
    return "\n".join(lines)


def _dump(payload: object) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def run(args: argparse.Namespace, store: ScheduleStore) -> str:
    """Execute one parsed command against *store* and return its stdout text."""
    if args.command in ("events", "day"):
        query = ScheduleQuery(store)
        if args.command == "events":
            if args.range_start is None:
                events = query.get_default_events(args.user)
            else:
                events = query.get_events(args.user, args.range_start, args.range_end)
        else:
            events = query.get_events_for_day(args.user, args.day or query.today())
        if args.table:
            return format_table(events)
        return _dump([ev.model_dump(mode="json") for ev in events])

    if args.command == "courses":
        catalog = EnrollmentService(store).catalog(args.user)
        return _dump(catalog.model_dump(mode="json"))

    if args.command == "enroll":
        return _dump(EnrollmentService(store).enroll(args.user, args.course).model_dump(mode="json"))

    if args.command == "unenroll":
        return _dump(EnrollmentService(store).unenroll(args.user, args.course).model_dump(mode="json"))

    gateway = EventGateway(store)
    if args.command == "create-event":
        event = gateway.create(args.user, args.title, args.start, args.end)
        return _dump(event.model_dump(mode="json"))

    gateway.delete(args.user, args.event_id)
    return _dump({"deleted": args.event_id})


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    bind_request_context(user_id=args.user, command=args.command)

    if not config.store_url:
        _log("STORE_URL is not set (environment or .env).")
        return 1

    try:
        print(run(args, RestStore.from_config(config)))
    except ScheduleError as e:
        log.error("command_failed", error=str(e), type=type(e).__name__)
        _log(f"{type(e).__name__}: {e}")
        return 1
    return 0
