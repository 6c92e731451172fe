"""
CLI (Command Line Interface).

Terminal commands on top of the exam schedule core, e.g.:

    myexams list --group I4
    myexams values rooms
    myexams range
    myexams token
    myexams add <token> <exam_id>
    myexams remove <token> <exam_id>
    myexams export <token> <file.ics>
    myexams download /ics/<token>.ics

Exit codes: 0 ok, 1 invalid input, 2 not found, 3 I/O or storage failure.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from myexams.download import content_disposition, export_for_path, ics_link, token_from_path, user_link
from myexams.errors import ExamsError, NotFoundError, SourceError, StorageError, ValidationError
from myexams.export_ics import ICS_CONTENT_TYPE, export_exams_to_ics
from myexams.logging import get_logger, setup_logging
from myexams.repository import ExamRepository
from myexams.source import load_exams
from myexams.storage import SelectionStore, new_token, parse_token

logger = get_logger(__name__)

console = Console()


def _load_repository(args: argparse.Namespace) -> ExamRepository:
    result = load_exams(args.source)
    return ExamRepository.from_load(result, reference_year=args.year)


def _store(args: argparse.Namespace) -> SelectionStore:
    return SelectionStore(args.store)


def _cmd_list(args: argparse.Namespace) -> int:
    """
    Show exams matching the filters with their projected start/end.
    """
    repo = _load_repository(args)
    exams = repo.filter(group=args.group, examiner=args.examiner, room=args.room, name=args.name)

    if not exams:
        console.print("No results.")
        return 0

    events = {ev.id: ev for ev in repo.events(exams)}

    table = Table(title=f"Exams ({len(exams)})")
    table.add_column("ID", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Name")
    table.add_column("Examiner")
    table.add_column("Groups")
    table.add_column("Rooms")

    for e in exams:
        ev = events.get(e.id)
        start = ev.start_iso if ev else f"{e.raw_date} {e.raw_time} (?)"
        end = ev.end_iso if ev else ""
        table.add_row(str(e.id), start, end, e.name, e.examiner, e.groups, e.rooms)

    console.print(table)
    return 0


def _cmd_values(args: argparse.Namespace) -> int:
    repo = _load_repository(args)
    lookup = {
        "groups": repo.distinct_groups,
        "rooms": repo.distinct_rooms,
        "names": repo.distinct_names,
        "examiners": repo.distinct_examiners,
    }
    for value in lookup[args.kind]():
        console.print(value, markup=False, highlight=False)
    return 0


def _cmd_range(args: argparse.Namespace) -> int:
    repo = _load_repository(args)
    span = repo.date_range()
    if span is None:
        console.print("No exam with a valid date.")
        return 0
    first, last = span
    console.print(f"{first.isoformat()} - {last.isoformat()}")
    return 0


def _cmd_token(args: argparse.Namespace) -> int:
    token = new_token()
    _store(args).load_or_create(token)
    console.print(str(token), highlight=False)
    if args.base_url:
        console.print(f"Personal link: {user_link(args.base_url, token)}", highlight=False, soft_wrap=True)
        console.print(f"Calendar subscription: {ics_link(args.base_url, token)}", highlight=False, soft_wrap=True)
    return 0


def _cmd_select(args: argparse.Namespace) -> int:
    """
    Show the exams selected under a token.
    """
    repo = _load_repository(args)
    selection = _store(args).load_or_create(parse_token(args.token))

    console.print(f"Selected: {selection.count}")
    for e in repo.records_for_ids(selection.selected_ids):
        console.print(f"{e.id} | {e.raw_date} {e.raw_time} | {e.name}", markup=False, highlight=False)
    return 0


def _cmd_add(args: argparse.Namespace) -> int:
    token = parse_token(args.token)

    # allow adding unknown ids, but warn
    repo = _load_repository(args)
    if repo.get(args.exam_id) is None:
        console.print(f"Warning: exam id {args.exam_id} not found in schedule (adding anyway).")

    selection = _store(args).add(token, args.exam_id)
    console.print(f"Added: {args.exam_id} (selected: {selection.count})")
    return 0


def _cmd_remove(args: argparse.Namespace) -> int:
    selection = _store(args).remove(parse_token(args.token), args.exam_id)
    console.print(f"Removed: {args.exam_id} (selected: {selection.count})")
    return 0


def _cmd_clear(args: argparse.Namespace) -> int:
    _store(args).clear(parse_token(args.token))
    console.print("Selection cleared.")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Export the token's selection into an iCalendar (.ics) file.
    """
    repo = _load_repository(args)
    selection = _store(args).get(parse_token(args.token))
    exams = repo.records_for_ids(selection.selected_ids)

    if not exams:
        console.print("No selected exams to export.")
        return 0

    n = export_exams_to_ics(exams, args.out, reference_year=repo.reference_year)
    console.print(f"Exported {n} exams to: {args.out}")
    return 0


def _cmd_download(args: argparse.Namespace) -> int:
    repo = _load_repository(args)
    data = export_for_path(args.path, _store(args), repo)
    if args.headers:
        # CGI style response head
        disposition = content_disposition(token_from_path(args.path))
        head = f"Content-Type: {ICS_CONTENT_TYPE}\r\nContent-Disposition: {disposition}\r\n\r\n"
        sys.stdout.buffer.write(head.encode("ascii"))
    sys.stdout.buffer.write(data)
    sys.stdout.flush()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="myexams", description="MyExams CLI")
    parser.add_argument("--source", type=str, default=None, help="Schedule CSV (path or http(s) URL)")
    parser.add_argument("--store", type=str, default=None, help="Selection store JSON file")
    parser.add_argument("--year", type=int, default=None, help="Year of the exams (default: current year)")
    parser.add_argument("--log-level", type=str, default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--log-json", action="store_true", help="Log JSON lines instead of console output")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List exams, optionally filtered")
    p_list.add_argument("--group", type=str, default=None, help="Exact group (e.g. I4)")
    p_list.add_argument("--examiner", type=str, default=None, help="Part of the examiner's name")
    p_list.add_argument("--room", type=str, default=None, help="Exact room")
    p_list.add_argument("--name", type=str, default=None, help="Part of the exam name")

    p_values = sub.add_parser("values", help="Show distinct filter values")
    p_values.add_argument("kind", choices=["groups", "rooms", "names", "examiners"])

    sub.add_parser("range", help="Show earliest and latest exam day")
    p_token = sub.add_parser("token", help="Create a new personal token")
    p_token.add_argument("--base-url", type=str, default=None, help="Site URL, prints the personal and .ics links")

    p_select = sub.add_parser("select", help="Show the exams selected under a token")
    p_select.add_argument("token", type=str)

    p_add = sub.add_parser("add", help="Select an exam")
    p_add.add_argument("token", type=str)
    p_add.add_argument("exam_id", type=int)

    p_remove = sub.add_parser("remove", help="Unselect an exam")
    p_remove.add_argument("token", type=str)
    p_remove.add_argument("exam_id", type=int)

    p_clear = sub.add_parser("clear", help="Unselect all exams")
    p_clear.add_argument("token", type=str)

    p_export = sub.add_parser("export", help="Export selected exams to .ics")
    p_export.add_argument("token", type=str)
    p_export.add_argument("out", type=str, help="Output file path (e.g. exams.ics)")

    p_download = sub.add_parser("download", help="Write the .ics for /<token>.ics to stdout")
    p_download.add_argument("path", type=str)
    p_download.add_argument("--headers", action="store_true", help="Prefix Content-Type and Content-Disposition headers")

    return parser


COMMANDS = {
    "list": _cmd_list,
    "values": _cmd_values,
    "range": _cmd_range,
    "token": _cmd_token,
    "select": _cmd_select,
    "add": _cmd_add,
    "remove": _cmd_remove,
    "clear": _cmd_clear,
    "export": _cmd_export,
    "download": _cmd_download,
}


def run(argv: Optional[list[str]] = None) -> int:
    """
    Parse args, dispatch to the command handler and map errors to exit codes.
    """
    args = build_parser().parse_args(argv)
    setup_logging(json_output=args.log_json, log_level=args.log_level)

    try:
        return COMMANDS[args.command](args)
    except ValidationError as e:
        console.print(f"Invalid input: {e}", markup=False)
        return 1
    except NotFoundError as e:
        console.print(f"Not found: {e}", markup=False)
        return 2
    except (SourceError, StorageError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        console.print(f"Error: {e}", markup=False)
        return 3
    except ExamsError as e:
        console.print(f"Error: {e}", markup=False)
        return 1


def main(argv: Optional[list[str]] = None) -> None:
    """
    CLI entry point. Exits via SystemExit with the command's return code.
    """
    raise SystemExit(run(argv))
