"""
In-memory exam repository.

Built once from a loaded schedule and read-only afterwards, so it can be
shared between callers without locking.

Filter semantics:
- group / room: exact match against ONE token of the comma-split field
- examiner / name: substring match against the whole field
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from myexams.errors import NotFoundError
from myexams.model import ExamRecord, ProjectedEvent
from myexams.projection import project, project_many
from myexams.source import LoadResult


class ExamRepository:
    def __init__(self, records: Sequence[ExamRecord], reference_year: Optional[int] = None) -> None:
        self._records: Tuple[ExamRecord, ...] = tuple(records)
        self._by_id: dict[int, ExamRecord] = {}
        for r in self._records:
            # first occurrence wins, same as the loader
            self._by_id.setdefault(r.id, r)
        self.reference_year = reference_year

    @classmethod
    def from_load(cls, result: LoadResult, reference_year: Optional[int] = None) -> "ExamRepository":
        return cls(result.records, reference_year=reference_year)

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> List[ExamRecord]:
        return list(self._records)

    # -----------------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------------

    def get(self, exam_id: int) -> Optional[ExamRecord]:
        return self._by_id.get(exam_id)

    def by_id(self, exam_id: int) -> ExamRecord:
        record = self._by_id.get(exam_id)
        if record is None:
            raise NotFoundError(f"Unknown exam id: {exam_id}")
        return record

    def records_for_ids(self, ids: Iterable[int]) -> List[ExamRecord]:
        """
        Resolve a selection into records, ordered by id.

        Ids that are no longer part of the schedule are dropped silently.
        """
        return [self._by_id[i] for i in sorted(set(ids)) if i in self._by_id]

    # -----------------------------------------------------------------------
    # Filtering
    # -----------------------------------------------------------------------

    def filter(
        self,
        group: Optional[str] = None,
        examiner: Optional[str] = None,
        room: Optional[str] = None,
        name: Optional[str] = None,
    ) -> List[ExamRecord]:
        """
        Return records matching every non-empty criterion (logical AND).
        """
        out: List[ExamRecord] = []
        for r in self._records:
            if group and group not in r.group_list:
                continue
            if examiner and examiner not in r.examiner:
                continue
            if room and room not in r.room_list:
                continue
            if name and name not in r.name:
                continue
            out.append(r)
        return out

    # -----------------------------------------------------------------------
    # Distinct values (for filter drop-downs)
    # -----------------------------------------------------------------------

    def _distinct(self, values: Callable[[ExamRecord], Iterable[str]]) -> List[str]:
        unique = {v.strip() for r in self._records for v in values(r)}
        unique.discard("")
        return sorted(unique)

    def distinct_groups(self) -> List[str]:
        return self._distinct(lambda r: r.group_list)

    def distinct_rooms(self) -> List[str]:
        return self._distinct(lambda r: r.room_list)

    def distinct_names(self) -> List[str]:
        return self._distinct(lambda r: [r.name])

    def distinct_examiners(self) -> List[str]:
        return self._distinct(lambda r: [r.examiner])

    # -----------------------------------------------------------------------
    # Events
    # -----------------------------------------------------------------------

    def events(self, records: Optional[Iterable[ExamRecord]] = None) -> List[ProjectedEvent]:
        """
        Project the given records (default: all). Unparsable dates are skipped.
        """
        source = self._records if records is None else records
        return project_many(source, self.reference_year)

    def event_by_id(self, exam_id: int) -> ProjectedEvent:
        """
        Project a single exam. Raises NotFoundError or ParseError.
        """
        return project(self.by_id(exam_id), self.reference_year)

    def sorted_event_dates(self) -> List[date]:
        """
        Ascending list of distinct exam days.
        """
        return sorted({ev.date for ev in self.events()})

    def date_range(self) -> Optional[Tuple[date, date]]:
        """
        (earliest, latest) exam day, or None if no exam has a usable date.
        """
        dates = self.sorted_event_dates()
        if not dates:
            return None
        return dates[0], dates[-1]
