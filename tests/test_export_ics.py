import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from smartcal.export_ics import export_events_to_ics, render_ics
from smartcal.normalize import normalize_record


class TestExportICS(unittest.TestCase):
    def setUp(self) -> None:
        self.event = {
            "title": "Public Economics",
            "start": datetime(2026, 2, 19, 10, 15),
            "end": datetime(2026, 2, 19, 12, 0),
            "program": "ECON - Year 1",
            "year": 1,
            "docente": "Prof. Bianchi",
            "note": "Bring laptop",
            "aule": [{"des_ubicazione": "Piazza Scaravilli 2", "des_risorsa": "Aula A"}],
        }

    def test_utc_upstream_times_are_exported_as_rome_local_time(self) -> None:
        ev = normalize_record(
            {"title": "Lab", "start": "2025-10-01T08:00:00Z", "end": "2025-10-01T10:00:00Z"}, 1, "P - Year 1"
        )
        assert ev is not None
        lines = render_ics([ev]).split("\r\n")
        self.assertIn("X-WR-TIMEZONE:Europe/Rome", lines)
        self.assertIn("DTSTART:20251001T100000", lines)
        self.assertIn("DTEND:20251001T120000", lines)

    def test_export_creates_file_and_contains_calendar(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_events_to_ics([self.event], out)
            self.assertEqual(n, 1)
            text = out.read_text(encoding="utf-8")
            self.assertIn("BEGIN:VCALENDAR", text)
            self.assertIn("BEGIN:VEVENT", text)
            self.assertIn("SUMMARY:Public Economics", text)
            self.assertIn("DTSTART:20260219T101500", text)
            self.assertIn("DTEND:20260219T120000", text)

    def test_fields(self) -> None:
        text = render_ics([self.event])
        self.assertIn("LOCATION:Piazza Scaravilli 2 - Aula A", text)
        self.assertIn("CATEGORIES:ECON - Year 1", text)
        self.assertIn("Instructor: Prof. Bianchi", text)
        self.assertIn("Notes: Bring laptop", text)
        self.assertIn("METHOD:PUBLISH", text)
        self.assertIn("\r\n", text)

    def test_events_without_times_are_skipped(self) -> None:
        text = render_ics([{"title": "broken", "start": None, "end": None}])
        self.assertNotIn("BEGIN:VEVENT", text)


if __name__ == "__main__":
    unittest.main()
