"""
iCalendar (.ics) export.

We convert selected exams into a calendar document that can be imported
into (or subscribed to from):
- Google Calendar
- Outlook
- Apple Calendar (iOS needs the text/calendar content type)
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from myexams.errors import ParseError
from myexams.logging import get_logger
from myexams.model import ExamRecord
from myexams.projection import current_year, project

logger = get_logger(__name__)

PRODID = "-//MyExams//Exam Schedule//DE"

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS TEXT values (RFC 5545, section 3.3.11).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    """
    Floating local time, e.g. '20250626T103000'.
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def _dt_utc(dt: datetime) -> str:
    """
    UTC time, e.g. '20250626T083000Z'.
    """
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _description(exam: ExamRecord) -> str:
    return f"Prüfer: {exam.examiner} - Gruppe: {exam.groups}"


def build_lines(
    exams: Iterable[ExamRecord],
    now: Optional[datetime] = None,
    reference_year: Optional[int] = None,
) -> list[str]:
    """
    Build the document lines. Exams whose date does not parse are left out.
    """
    year = reference_year if reference_year is not None else current_year()

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{PRODID}")

    for exam in exams:
        try:
            event = project(exam, year)
        except ParseError as e:
            logger.warning("export_skipped", exam_id=exam.id, value=e.value)
            continue

        dtstamp = _dt_utc(now if now is not None else datetime.now(timezone.utc))

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:exam-{exam.id}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_local(event.start)}")
        lines.append(f"DTEND:{_dt_local(event.end)}")
        lines.append(f"SUMMARY:{_ics_escape(exam.name)}")
        lines.append(f"DESCRIPTION:{_ics_escape(_description(exam))}")
        lines.append(f"LOCATION:{_ics_escape(exam.rooms)}")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")
    return lines


def serialize(
    exams: Iterable[ExamRecord],
    now: Optional[datetime] = None,
    reference_year: Optional[int] = None,
) -> bytes:
    """
    Render exams (in the given order) as a UTF-8 encoded .ics document.
    """
    return _encode(build_lines(exams, now, reference_year))


def _encode(lines: list[str]) -> bytes:
    # ICS standard uses CRLF
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


def export_exams_to_ics(
    exams: Iterable[ExamRecord],
    out_path: str | Path,
    reference_year: Optional[int] = None,
) -> int:
    """
    Export exams to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines = build_lines(exams, reference_year=reference_year)
    out.write_bytes(_encode(lines))

    count = lines.count("BEGIN:VEVENT")
    logger.info("ics_exported", path=str(out), events=count)
    return count
