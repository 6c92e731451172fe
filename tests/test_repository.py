"""
Unit tests for the exam repository.

Filter rules (pinned on purpose, do not unify):
- group / room: exact token of the comma-separated field
- examiner / name: substring of the whole field
"""

import unittest
from datetime import date

from myexams.errors import NotFoundError, ParseError
from myexams.model import ExamRecord
from myexams.repository import ExamRepository

RECORDS = [
    ExamRecord(1, "Mo., 23.06.", "08:30", "I2,IP2", "Mathematik 2", "Dr. Schmidt", "T151,T152"),
    ExamRecord(2, "Di., 24.06.", "10:30", "I4,IP4,M6-MI", "Datenbanken", "Prof. Meyer", "Dynexite"),
    ExamRecord(3, "Mi., 25.06.", "13:30", "I44", "Softwaretechnik", "Schmidt-Müller", "Dynexite,Coram"),
    ExamRecord(4, "Do., 26.06.", "10:30", " I4 , MI4", "Rechnernetze", "Prof. Wagner", "T151"),
    ExamRecord(5, "kaputt", "10:30", "I4", "Kaputtes Datum", "Prof. Wagner", "T151"),
    ExamRecord(6, "Mo., 23.06.", "13:30", "E2", "Elektrotechnik", "Dr. Becker", "T153"),
]


class TestFilter(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = ExamRepository(RECORDS, reference_year=2025)

    def test_no_criteria_returns_everything(self) -> None:
        self.assertEqual(len(self.repo.filter()), len(RECORDS))
        self.assertEqual(len(self.repo.filter(group="", examiner="", room="", name="")), len(RECORDS))

    def test_group_is_exact_token(self) -> None:
        ids = [r.id for r in self.repo.filter(group="I4")]
        # "I44" contains "I4" as substring but is a different group
        self.assertEqual(ids, [2, 4, 5])

    def test_room_is_exact_token(self) -> None:
        self.assertEqual([r.id for r in self.repo.filter(room="Dynexite")], [2, 3])
        self.assertEqual(self.repo.filter(room="Dynex"), [])

    def test_examiner_is_substring(self) -> None:
        ids = [r.id for r in self.repo.filter(examiner="Schmidt")]
        self.assertEqual(ids, [1, 3])

    def test_name_is_substring(self) -> None:
        self.assertEqual([r.id for r in self.repo.filter(name="technik")], [3, 6])

    def test_criteria_combine_with_and(self) -> None:
        ids = [r.id for r in self.repo.filter(group="I4", examiner="Wagner", room="T151")]
        self.assertEqual(ids, [4, 5])
        self.assertEqual(self.repo.filter(group="I4", name="Mathematik"), [])


class TestDistinctValues(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = ExamRepository(RECORDS, reference_year=2025)

    def test_groups_are_trimmed_tokens_sorted(self) -> None:
        self.assertEqual(self.repo.distinct_groups(), ["E2", "I2", "I4", "I44", "IP2", "IP4", "M6-MI", "MI4"])

    def test_rooms(self) -> None:
        self.assertEqual(self.repo.distinct_rooms(), ["Coram", "Dynexite", "T151", "T152", "T153"])

    def test_examiners_are_whole_fields(self) -> None:
        self.assertEqual(
            self.repo.distinct_examiners(),
            ["Dr. Becker", "Dr. Schmidt", "Prof. Meyer", "Prof. Wagner", "Schmidt-Müller"],
        )

    def test_names(self) -> None:
        names = self.repo.distinct_names()
        self.assertEqual(names, sorted(names))
        self.assertEqual(len(names), 6)


class TestLookupAndEvents(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = ExamRepository(RECORDS, reference_year=2025)

    def test_by_id(self) -> None:
        self.assertEqual(self.repo.by_id(2).name, "Datenbanken")
        self.assertIsNone(self.repo.get(99))
        with self.assertRaises(NotFoundError):
            self.repo.by_id(99)

    def test_records_for_ids_drops_stale_ids(self) -> None:
        records = self.repo.records_for_ids({4, 99, 1})
        self.assertEqual([r.id for r in records], [1, 4])

    def test_event_by_id(self) -> None:
        ev = self.repo.event_by_id(4)
        self.assertEqual(ev.start.isoformat(), "2025-06-26T10:30:00")
        with self.assertRaises(ParseError):
            self.repo.event_by_id(5)

    def test_events_skip_unparsable_dates(self) -> None:
        ids = [ev.id for ev in self.repo.events()]
        self.assertEqual(ids, [1, 2, 3, 4, 6])

    def test_sorted_event_dates_are_distinct_and_ascending(self) -> None:
        self.assertEqual(
            self.repo.sorted_event_dates(),
            [date(2025, 6, 23), date(2025, 6, 24), date(2025, 6, 25), date(2025, 6, 26)],
        )

    def test_date_range(self) -> None:
        self.assertEqual(self.repo.date_range(), (date(2025, 6, 23), date(2025, 6, 26)))
        self.assertIsNone(ExamRepository([], reference_year=2025).date_range())


if __name__ == "__main__":
    unittest.main()
