"""
Date/time projection (ExamRecord -> ProjectedEvent).

The schedule only says "Do., 26.06." and "10:30". The year is not part of
the source, so the reference year (default: the current one) is appended:

    "Do., 26.06." + "10:30" + 2025  ->  "26.06.2025 10:30"

Every exam lasts EXAM_DURATION; no source field says otherwise.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from myexams.errors import ParseError
from myexams.logging import get_logger
from myexams.model import ExamRecord, ProjectedEvent

logger = get_logger(__name__)

EXAM_DURATION = timedelta(minutes=150)

DATETIME_FORMAT = "%d.%m.%Y %H:%M"


def current_year() -> int:
    return date.today().year


def compose_datetime(record: ExamRecord, reference_year: int) -> str:
    """
    Build the "dd.MM.yyyy HH:MM" string for a record.

    Only the part after the first comma of raw_date is the day and month.
    """
    if "," not in record.raw_date:
        raise ParseError(f"Invalid date: {record.raw_date!r}", record.raw_date)

    day_month = record.raw_date.split(",", 1)[1].strip()
    return f"{day_month}{reference_year} {record.raw_time.strip()}"


def project(record: ExamRecord, reference_year: Optional[int] = None) -> ProjectedEvent:
    """
    Project one record onto an absolute time interval.

    Pure: the same record and year always give the same event.
    Raises ParseError naming the composed string when it does not parse.
    """
    year = reference_year if reference_year is not None else current_year()
    composed = compose_datetime(record, year)

    try:
        start = datetime.strptime(composed, DATETIME_FORMAT)
    except ValueError:
        raise ParseError(f"Invalid date: {composed!r}", composed) from None

    return ProjectedEvent(
        id=record.id,
        title=record.name,
        start=start,
        end=start + EXAM_DURATION,
        groups=record.groups,
        examiner=record.examiner,
        rooms=record.rooms,
    )


def project_many(records: Iterable[ExamRecord], reference_year: Optional[int] = None) -> List[ProjectedEvent]:
    """
    Project records in order, logging and skipping those that fail.
    """
    year = reference_year if reference_year is not None else current_year()

    events: List[ProjectedEvent] = []
    for record in records:
        try:
            events.append(project(record, year))
        except ParseError as e:
            logger.warning("date_unparsable", exam_id=record.id, value=e.value)
    return events
