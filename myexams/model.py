"""
Central data model definitions used across the project.

This module defines the canonical structure of exam records, projected
events and user selections so that:
- all modules share the same field names
- the loader, the repository, the exporter and the store agree on types
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List


def split_tokens(text: str) -> List[str]:
    """
    Split a comma-separated field into trimmed, non-empty tokens.
    """
    return [t.strip() for t in text.split(",") if t.strip()]


@dataclass(frozen=True)
class ExamRecord:
    """
    Represents one row of the exam schedule (klausuren.csv).

    raw_date looks like "Do., 26.06." (weekday, comma, day.month.) and
    raw_time like "10:30". The year is resolved at projection time.
    """

    id: int
    raw_date: str
    raw_time: str
    groups: str
    name: str
    examiner: str
    rooms: str

    @property
    def group_list(self) -> List[str]:
        return split_tokens(self.groups)

    @property
    def room_list(self) -> List[str]:
        return split_tokens(self.rooms)


@dataclass(frozen=True)
class ProjectedEvent:
    """
    An exam record with resolved start/end timestamps.

    Never stored: recompute it from the owning record when needed.
    """

    id: int
    title: str
    start: datetime
    end: datetime
    groups: str
    examiner: str
    rooms: str

    @property
    def date(self) -> date:
        return self.start.date()

    @property
    def start_iso(self) -> str:
        return self.start.strftime("%Y-%m-%dT%H:%M:%S")

    @property
    def end_iso(self) -> str:
        return self.end.strftime("%Y-%m-%dT%H:%M:%S")


@dataclass
class UserSelection:
    """
    The set of exam ids one anonymous user has marked for export.
    """

    token: uuid.UUID
    selected_ids: set[int] = field(default_factory=set)

    @property
    def count(self) -> int:
        return len(self.selected_ids)
