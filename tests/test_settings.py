from __future__ import annotations

import unittest
from pathlib import Path
from unittest.mock import patch

from config import BACKUP_RETENTION, LOCK_ATTEMPTS, OFFICE_COORDS
from main import build_settings, parse_args
from project_settings import AppSettings


class AppSettingsTestCase(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = AppSettings(data_dir=Path("/srv/trips"))
        self.assertEqual(settings.data_file, Path("/srv/trips/trips_data.json"))
        self.assertEqual(settings.backup_dir, Path("/srv/trips/backups"))
        self.assertEqual(settings.lock_file, Path("/srv/trips/.lock"))
        self.assertEqual(settings.backup_retention, BACKUP_RETENTION)
        self.assertEqual(settings.lock_attempts, LOCK_ATTEMPTS)
        self.assertEqual(settings.default_coords, OFFICE_COORDS)

    def test_from_env(self) -> None:
        settings = AppSettings.from_env({"DATA_DIR": "/tmp/trips", "PORT": "4000", "HOST": "0.0.0.0"})
        self.assertEqual(settings.data_dir, Path("/tmp/trips"))
        self.assertEqual(settings.port, 4000)
        self.assertEqual(settings.host, "0.0.0.0")

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(ValueError):
            AppSettings.from_env({"PORT": "abc"})
        with self.assertRaises(ValueError):
            AppSettings().with_updates(backup_retention=0)
        with self.assertRaises(ValueError):
            AppSettings().with_updates(lock_attempts=0)

    def test_cli_flags_override_environment(self) -> None:
        args = parse_args(["--data-dir", "/opt/trips", "--port", "5050", "--no-browser"])
        with patch.dict("os.environ", {"DATA_DIR": "/tmp/ignored", "PORT": "4000"}):
            settings = build_settings(args)
        self.assertEqual(settings.data_dir, Path("/opt/trips"))
        self.assertEqual(settings.port, 5050)
        self.assertTrue(args.no_browser)


if __name__ == "__main__":
    unittest.main()
