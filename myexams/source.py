"""
Loading the exam schedule (CSV -> ExamRecord).

The schedule is a delimited text resource with the header

    ID, DATUM, ZEIT, GRUPPEN, NAME, PRUEFER, RAEUME

and one row per exam. It can live in a local file or behind an http(s) URL.

Rules:
- every field is trimmed
- source row order is preserved
- a broken row is skipped and reported, loading continues
- only an unreachable resource fails the whole load; an empty resource or
  a header without the required columns yields no records and one
  diagnostic for row 0
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

import requests

from myexams.errors import ParseError, SourceError
from myexams.logging import get_logger
from myexams.model import ExamRecord

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Paths & columns
# ---------------------------------------------------------------------------

PACKAGE_DIR = Path(__file__).resolve().parent

COLUMNS = ("ID", "DATUM", "ZEIT", "GRUPPEN", "NAME", "PRUEFER", "RAEUME")

REQUEST_TIMEOUT = 30


def default_source_path() -> Path:
    """
    Return the location of the schedule bundled with the package.

    A function instead of a constant so tests and the CLI can override it.
    """
    return PACKAGE_DIR / "data" / "klausuren.csv"


@dataclass
class LoadResult:
    """
    Outcome of one load: the parsed records plus one diagnostic per
    skipped row as (1-based data row index, cause). Row 0 is the header.
    """

    records: List[ExamRecord] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_url(location: str | Path) -> bool:
    return isinstance(location, str) and location.lower().startswith(("http://", "https://"))


def _read_text(location: str | Path) -> str:
    """
    Read the whole resource into memory (local path or URL).
    """
    if _is_url(location):
        try:
            resp = requests.get(str(location), timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise SourceError(f"Cannot fetch schedule from {location}: {e}") from e
        resp.encoding = resp.encoding or "utf-8"
        return resp.text

    path = Path(location)
    try:
        # utf-8-sig swallows the BOM spreadsheet exports like to add
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceError(f"Cannot open schedule {path}: {e}") from e


def _sniff_delimiter(header_line: str) -> str:
    return ";" if header_line.count(";") > header_line.count(",") else ","


def _parse_row(row: List[str], positions: dict[str, int], width: int) -> ExamRecord:
    """
    Map one CSV row onto an ExamRecord. Raises ParseError with the cause.
    """
    # trailing empty cells (a line ending in the delimiter) are harmless
    if len(row) < width or any(cell.strip() for cell in row[width:]):
        raise ParseError(f"expected {width} fields, got {len(row)}")

    values = {col: row[positions[col]].strip() for col in COLUMNS}

    try:
        exam_id = int(values["ID"])
    except ValueError:
        raise ParseError(f"invalid ID {values['ID']!r}", values["ID"]) from None

    return ExamRecord(
        id=exam_id,
        raw_date=values["DATUM"],
        raw_time=values["ZEIT"],
        groups=values["GRUPPEN"],
        name=values["NAME"],
        examiner=values["PRUEFER"],
        rooms=values["RAEUME"],
    )


def _header_invalid(result: LoadResult, cause: str) -> LoadResult:
    result.errors.append((0, cause))
    logger.warning("header_invalid", cause=cause)
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_exams_csv(text: str) -> LoadResult:
    """
    Parse schedule text into records. Broken rows end up in result.errors.

    An unusable header is reported as row 0 and yields no records.
    """
    result = LoadResult()

    lines = text.splitlines()
    if not lines or not lines[0].strip():
        return _header_invalid(result, "schedule is empty (no header row)")

    reader = csv.reader(io.StringIO(text), delimiter=_sniff_delimiter(lines[0]))
    header = [h.strip().upper() for h in next(reader)]

    missing = [col for col in COLUMNS if col not in header]
    if missing:
        return _header_invalid(result, f"header lacks columns: {', '.join(missing)}")

    positions = {col: header.index(col) for col in COLUMNS}
    width = len(header)
    seen: set[int] = set()

    row_index = 0
    for row in reader:
        # blank lines carry no row
        if not any(cell.strip() for cell in row):
            continue
        row_index += 1

        try:
            record = _parse_row(row, positions, width)
        except ParseError as e:
            result.errors.append((row_index, str(e)))
            logger.warning("row_skipped", row=row_index, cause=str(e))
            continue

        if record.id in seen:
            cause = f"duplicate ID {record.id}"
            result.errors.append((row_index, cause))
            logger.warning("row_skipped", row=row_index, cause=cause)
            continue

        seen.add(record.id)
        result.records.append(record)

    return result


def load_exams(location: str | Path | None = None) -> LoadResult:
    """
    Load the schedule from a file path or URL (default: bundled schedule).

    Raises SourceError if the resource cannot be read.
    """
    source = location if location is not None else default_source_path()

    result = parse_exams_csv(_read_text(source))
    logger.info("source_loaded", source=str(source), records=len(result.records), skipped=len(result.errors))
    return result
