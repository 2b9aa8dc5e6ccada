import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from smartcal.config import Config, load_config


class TestConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = Config.from_dict({})
        self.assertEqual(cfg.request_timeout, 10.0)
        self.assertEqual(cfg.log_level, "INFO")
        self.assertFalse(cfg.empty_selection_means_all)

    def test_bad_values_fall_back(self) -> None:
        with self.assertLogs("smartcal.config", level="WARNING"):
            cfg = Config.from_dict({"request_timeout": "soon", "max_workers": -1, "log_level": "loud"})
        self.assertEqual(cfg.request_timeout, 10.0)
        self.assertEqual(cfg.max_workers, 8)
        self.assertEqual(cfg.log_level, "INFO")

    def test_load_from_file_with_env_override(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text(json.dumps({"request_timeout": 5, "data_dir": d}), encoding="utf-8")
            with mock.patch.dict(os.environ, {"SMARTCAL_TIMEOUT": "3"}):
                cfg = load_config(p)
            self.assertEqual(cfg.request_timeout, 3.0)
            self.assertEqual(cfg.settings_path, Path(d) / "settings.json")

    def test_non_mapping_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(p)

    def test_missing_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with mock.patch.dict(os.environ, {}, clear=False):
                os.environ.pop("SMARTCAL_TIMEOUT", None)
                cfg = load_config(Path(d) / "missing.json")
            self.assertEqual(cfg.request_timeout, 10.0)


if __name__ == "__main__":
    unittest.main()
