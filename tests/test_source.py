"""
Unit tests for loading the exam schedule.

Loader contract:
- fields are trimmed, row order is preserved
- broken rows are skipped and reported (row index + cause)
- an unreachable resource fails the whole load with SourceError
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from myexams.errors import SourceError
from myexams.source import default_source_path, load_exams, parse_exams_csv

CSV = (
    "ID,DATUM,ZEIT,GRUPPEN,NAME,PRUEFER,RAEUME\n"
    '1,"Do., 26.06.", 10:30 ,"I4,IP4", Datenbanken ,Prof. Meyer ,"Dynexite,Coram"\n'
    '2,"Fr., 27.06.",08:30,I2,Mathe 2,Dr. Schmidt,T151\n'
)


class TestParseExamsCsv(unittest.TestCase):
    def test_fields_are_trimmed_and_order_kept(self) -> None:
        result = parse_exams_csv(CSV)

        self.assertEqual(result.errors, [])
        self.assertEqual([r.id for r in result.records], [1, 2])

        first = result.records[0]
        self.assertEqual(first.raw_date, "Do., 26.06.")
        self.assertEqual(first.raw_time, "10:30")
        self.assertEqual(first.groups, "I4,IP4")
        self.assertEqual(first.name, "Datenbanken")
        self.assertEqual(first.examiner, "Prof. Meyer")
        self.assertEqual(first.rooms, "Dynexite,Coram")
        self.assertEqual(first.room_list, ["Dynexite", "Coram"])

    def test_broken_rows_are_skipped_and_reported(self) -> None:
        text = CSV + "x,\"Mo., 30.06.\",10:30,I4,Bad Id,Someone,T1\n" + "3,too,few\n" + '4,"Di., 01.07.",13:30,I6,Ok,Dr. X,T2\n'
        result = parse_exams_csv(text)

        self.assertEqual([r.id for r in result.records], [1, 2, 4])
        self.assertEqual([idx for idx, _ in result.errors], [3, 4])
        self.assertIn("invalid ID", result.errors[0][1])
        self.assertIn("expected 7 fields", result.errors[1][1])

    def test_duplicate_id_keeps_first(self) -> None:
        text = CSV + '1,"Mo., 30.06.",10:30,I4,Duplicate,Someone,T1\n'
        result = parse_exams_csv(text)

        self.assertEqual([r.name for r in result.records], ["Datenbanken", "Mathe 2"])
        self.assertEqual(result.errors, [(3, "duplicate ID 1")])

    def test_semicolon_delimiter(self) -> None:
        text = "ID;DATUM;ZEIT;GRUPPEN;NAME;PRUEFER;RAEUME\n" '5;Mo., 30.06.;10:30;I4,IP4;Netze;Prof. Wagner;T151\n'
        result = parse_exams_csv(text)

        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records[0].raw_date, "Mo., 30.06.")
        self.assertEqual(result.records[0].group_list, ["I4", "IP4"])

    def test_missing_column_yields_header_diagnostic(self) -> None:
        result = parse_exams_csv('ID,DATUM,ZEIT,GRUPPEN,NAME,PRUEFER\n1,"Do., 26.06.",10:30,I4,X,Y\n')

        self.assertEqual(result.records, [])
        self.assertEqual(result.errors, [(0, "header lacks columns: RAEUME")])

    def test_empty_text_yields_header_diagnostic(self) -> None:
        result = parse_exams_csv("")

        self.assertEqual(result.records, [])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0][0], 0)

    def test_trailing_empty_field_is_accepted(self) -> None:
        text = CSV.replace("T151\n", "T151,\n")
        result = parse_exams_csv(text)

        self.assertEqual(result.errors, [])
        self.assertEqual(result.records[1].rooms, "T151")

    def test_extra_non_empty_field_is_rejected(self) -> None:
        text = CSV.replace("T151\n", "T151,extra\n")
        result = parse_exams_csv(text)

        self.assertEqual([r.id for r in result.records], [1])
        self.assertEqual(result.errors, [(2, "expected 7 fields, got 8")])


class TestLoadExams(unittest.TestCase):
    def test_load_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "klausuren.csv"
            p.write_text(CSV, encoding="utf-8")
            result = load_exams(p)
            self.assertEqual(len(result.records), 2)

    def test_missing_file_raises_source_error(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SourceError):
                load_exams(Path(d) / "missing.csv")

    def test_source_error_is_an_io_error(self) -> None:
        self.assertTrue(issubclass(SourceError, OSError))

    def test_bundled_schedule_loads(self) -> None:
        self.assertTrue(default_source_path().exists())
        result = load_exams()
        self.assertGreater(len(result.records), 0)
        self.assertEqual(result.errors, [])

    def test_load_from_url(self) -> None:
        resp = mock.Mock()
        resp.text = CSV
        resp.encoding = "utf-8"
        resp.raise_for_status.return_value = None

        with mock.patch("myexams.source.requests.get", return_value=resp) as get:
            result = load_exams("https://example.org/klausuren.csv")

        get.assert_called_once_with("https://example.org/klausuren.csv", timeout=30)
        self.assertEqual([r.id for r in result.records], [1, 2])

    def test_url_failure_raises_source_error(self) -> None:
        with mock.patch("myexams.source.requests.get", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(SourceError):
                load_exams("https://example.org/klausuren.csv")


if __name__ == "__main__":
    unittest.main()
