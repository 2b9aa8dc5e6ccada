import unittest
from datetime import datetime

from smartcal.normalize import (
    calendar_label,
    event_location,
    format_event_title,
    normalize_record,
    normalize_records,
    parse_timestamp,
)


class TestParseTimestamp(unittest.TestCase):
    def test_naive_iso_string(self) -> None:
        self.assertEqual(parse_timestamp("2025-10-01T09:00:00"), datetime(2025, 10, 1, 9, 0))

    def test_utc_string_becomes_rome_wall_clock(self) -> None:
        self.assertEqual(parse_timestamp("2025-10-01T08:00:00.000Z"), datetime(2025, 10, 1, 10, 0))
        self.assertEqual(parse_timestamp("2025-12-01T08:00:00Z"), datetime(2025, 12, 1, 9, 0))

    def test_offset_becomes_rome_wall_clock(self) -> None:
        self.assertEqual(parse_timestamp("2025-10-01T10:00:00+02:00"), datetime(2025, 10, 1, 10, 0))
        self.assertEqual(parse_timestamp("2025-10-01T09:00:00+01:00"), datetime(2025, 10, 1, 10, 0))

    def test_invalid_values(self) -> None:
        self.assertIsNone(parse_timestamp("not a date"))
        self.assertIsNone(parse_timestamp(""))
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp(12345))


class TestNormalizeRecord(unittest.TestCase):
    def test_attaches_year_and_program(self) -> None:
        raw = {"title": "[DTM] Digital Strategy", "start": "2025-10-01T09:00:00", "end": "2025-10-01T11:00:00", "aula": "Room 1"}
        ev = normalize_record(raw, 1, "DTM - Year 1", timetable_url="https://x/?anno=1")

        self.assertIsNotNone(ev)
        assert ev is not None
        self.assertEqual(ev["year"], 1)
        self.assertEqual(ev["program"], "DTM - Year 1")
        self.assertEqual(ev["start"], datetime(2025, 10, 1, 9))
        self.assertEqual(ev["end"], datetime(2025, 10, 1, 11))
        self.assertEqual(ev["aula"], "Room 1")
        self.assertEqual(ev["_timetable_url"], "https://x/?anno=1")

    def test_raw_record_is_not_mutated(self) -> None:
        raw = {"title": "T", "start": "2025-10-01T09:00:00", "end": "2025-10-01T11:00:00"}
        normalize_record(raw, 2, "P")
        self.assertEqual(raw, {"title": "T", "start": "2025-10-01T09:00:00", "end": "2025-10-01T11:00:00"})

    def test_missing_or_malformed_dates_are_dropped(self) -> None:
        self.assertIsNone(normalize_record({"title": "T", "end": "2025-10-01T11:00:00"}, 1, "P"))
        self.assertIsNone(normalize_record({"title": "T", "start": "32.13.2025", "end": "2025-10-01T11:00:00"}, 1, "P"))
        self.assertIsNone(normalize_record("garbage", 1, "P"))

    def test_end_not_after_start_is_dropped(self) -> None:
        raw = {"title": "T", "start": "2025-10-01T11:00:00", "end": "2025-10-01T11:00:00"}
        self.assertIsNone(normalize_record(raw, 1, "P"))

    def test_records_keep_valid_ones_only(self) -> None:
        records = [
            {"title": "A", "start": "2025-10-01T09:00:00", "end": "2025-10-01T10:00:00"},
            {"title": "B", "start": "bad", "end": "2025-10-01T10:00:00"},
            {"title": "C", "start": "2025-10-02T09:00:00", "end": "2025-10-02T10:00:00"},
        ]
        out = normalize_records(records, 1, "P")
        self.assertEqual([e["title"] for e in out], ["A", "C"])

    def test_non_list_payload_gives_empty(self) -> None:
        self.assertEqual(normalize_records({"error": "x"}, 1, "P"), [])


class TestDisplayHelpers(unittest.TestCase):
    def test_strips_bracket_prefix_and_spaces(self) -> None:
        self.assertEqual(format_event_title({"title": "[DTM - 2 - ]   Analisi dei Dati   "}), "Analisi dei Dati")

    def test_removes_long_program_words(self) -> None:
        event = {"title": "Data Science International Advanced Lab", "program": "Data Science International"}
        self.assertEqual(format_event_title(event), "Advanced Lab")

    def test_falls_back_to_title_without_brackets(self) -> None:
        self.assertEqual(format_event_title({"title": "[DTM] DTM", "program": "DTM"}), "DTM")

    def test_calendar_label(self) -> None:
        self.assertEqual(calendar_label({"title": "[DTM] Basi di SE", "docente": "Prof. Rossi"}), "Basi di SE - Prof. Rossi")
        self.assertEqual(calendar_label({"title": "Metodi Numerici"}), "Metodi Numerici - No Instructor")

    def test_location_from_first_room(self) -> None:
        ev = {"aule": [{"des_ubicazione": "Via Zamboni 33", "des_risorsa": "Aula 1"}, {"des_risorsa": "Aula 2"}]}
        self.assertEqual(event_location(ev), "Via Zamboni 33 - Aula 1")
        self.assertEqual(event_location({"aule": []}), "")
        self.assertEqual(event_location({}), "")


if __name__ == "__main__":
    unittest.main()
