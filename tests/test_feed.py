import json
import unittest
from urllib.parse import quote

from smartcal.errors import ConfigurationError
from smartcal.feed import build_feed, build_feed_events, resolve_feed_config
from smartcal.model import Profile
from smartcal.storage import MemoryProfileStore, profile_payload, sync_profile

MASTER_URL = "https://corsi.unibo.it/magistrale/DTM/orario-lezioni/@@orario_reale_json?anno=1&curricula=GEN"
TIMETABLES = [{"url": MASTER_URL, "name": "DTM - Year 1 - GEN"}]


def fake_fetch(url: str) -> list[dict]:
    if "anno=1" in url:
        return [{"title": "Digital Strategy", "start": "2025-10-01T09:00:00", "end": "2025-10-01T11:00:00", "docente": "Rossi"}]
    return [{"title": "Service Design", "start": "2025-10-02T09:00:00", "end": "2025-10-02T11:00:00"}]


class TestResolveFeedConfig(unittest.TestCase):
    def test_stored_profile_wins(self) -> None:
        store = MemoryProfileStore()
        store.set("p", Profile(timetables=TIMETABLES, course_keys=["K"]))
        config = resolve_feed_config(store, "p", urls_param=json.dumps([{"url": "x", "name": "y"}]))
        self.assertEqual(config.timetables, TIMETABLES)
        self.assertEqual(config.course_keys, ["K"])

    def test_nothing_configured(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_feed_config(MemoryProfileStore(), None, None)
        self.assertEqual(str(ctx.exception), "No calendar configuration provided")
        self.assertEqual(ctx.exception.status, 400)

    def test_unknown_profile_without_urls(self) -> None:
        with self.assertRaises(ConfigurationError):
            resolve_feed_config(MemoryProfileStore(), "missing", None)

    def test_cleared_profile_is_404(self) -> None:
        store = MemoryProfileStore()
        store.set("p", Profile(timetables=[]))
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_feed_config(store, "p", None)
        self.assertEqual(ctx.exception.status, 404)

    def test_urls_param_list(self) -> None:
        config = resolve_feed_config(None, None, quote(json.dumps(TIMETABLES)))
        self.assertEqual(config.timetables, TIMETABLES)
        self.assertIsNone(config.filters)

    def test_urls_param_object(self) -> None:
        raw = json.dumps({"timetables": TIMETABLES, "filters": {"DTM": {}}, "courseKeys": ["K"]})
        config = resolve_feed_config(None, None, raw)
        self.assertEqual(config.filters, {"DTM": {}})
        self.assertEqual(config.course_keys, ["K"])

    def test_invalid_json(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_feed_config(None, None, "{broken")
        self.assertEqual(str(ctx.exception), "Invalid calendar configuration")

    def test_object_without_timetables(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_feed_config(None, None, json.dumps({"timetables": []}))
        self.assertEqual(str(ctx.exception), "No valid timetables provided")


class TestBuildFeed(unittest.TestCase):
    def test_unfiltered_feed_contains_all_years(self) -> None:
        store = MemoryProfileStore()
        store.set("p", Profile(timetables=TIMETABLES))
        text = build_feed(store, "p", fetch=fake_fetch)

        self.assertIn("BEGIN:VCALENDAR", text)
        self.assertEqual(text.count("BEGIN:VEVENT"), 2)
        self.assertIn("SUMMARY:Digital Strategy", text)
        self.assertIn("SUMMARY:Service Design", text)

    def test_filter_matching_nothing_gives_empty_feed(self) -> None:
        store = MemoryProfileStore()
        store.set("p", Profile(timetables=TIMETABLES, filters={"Other": {}}))
        text = build_feed(store, "p", fetch=fake_fetch)
        self.assertNotIn("BEGIN:VEVENT", text)

    def test_synced_year_override_is_used(self) -> None:
        settings = {
            "profile_id": "p",
            "timetables": TIMETABLES,
            "program_years": {"DTM - Year 1 - GEN": 3},
            "filters": {},
            "course_keys": [],
        }
        store = MemoryProfileStore()
        self.assertTrue(sync_profile(store, profile_payload(settings)))

        config = resolve_feed_config(store, "p")
        self.assertEqual(config.program_years, {"DTM - Year 1 - GEN": 3})

        urls: list[str] = []

        def recording_fetch(url: str) -> list[dict]:
            urls.append(url)
            return []

        build_feed_events(config, fetch=recording_fetch)
        self.assertEqual(sorted(u.split("anno=")[1][0] for u in urls), ["1", "2", "3"])

    def test_inline_year_override(self) -> None:
        raw = json.dumps({"timetables": TIMETABLES, "programYears": {"DTM - Year 1 - GEN": 1, "bad": "x"}})
        config = resolve_feed_config(None, None, raw)
        self.assertEqual(config.program_years, {"DTM - Year 1 - GEN": 1})
        self.assertEqual([e["title"] for e in build_feed_events(config, fetch=fake_fetch)], ["Digital Strategy"])

    def test_year_filter(self) -> None:
        config = resolve_feed_config(
            None, None, json.dumps({"timetables": TIMETABLES, "filters": {"DTM": {"selectedYears": [2]}}})
        )
        events = build_feed_events(config, fetch=fake_fetch)
        self.assertEqual([e["title"] for e in events], ["Service Design"])


if __name__ == "__main__":
    unittest.main()
