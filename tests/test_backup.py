from __future__ import annotations

import asyncio
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from datastore.backup import BackupRotator, BackupScheduler


class BackupRotatorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp_dir.name)
        self.source = self.root / "trips_data.json"
        self.backup_dir = self.root / "backups"

    def tearDown(self) -> None:
        self.tmp_dir.cleanup()

    def test_snapshot_is_noop_without_data_file(self) -> None:
        rotator = BackupRotator(self.source, self.backup_dir)
        self.assertIsNone(rotator.snapshot())
        self.assertEqual(rotator.backups(), [])

    def test_snapshot_copies_current_content(self) -> None:
        self.source.write_text('{"trips": []}', encoding="utf-8")
        rotator = BackupRotator(self.source, self.backup_dir)
        path = rotator.snapshot()
        self.assertIsNotNone(path)
        self.assertEqual(path.read_text(encoding="utf-8"), '{"trips": []}')
        self.assertTrue(path.name.startswith("trips_backup_"))

    def test_same_second_snapshots_get_distinct_sorted_names(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        frozen = datetime(2026, 2, 1, 10, 15, 0, tzinfo=timezone.utc)
        rotator = BackupRotator(self.source, self.backup_dir, clock=lambda: frozen)
        created = [rotator.snapshot() for _ in range(3)]
        self.assertEqual(
            [path.name for path in created],
            [
                "trips_backup_2026-02-01T10-15-00.json",
                "trips_backup_2026-02-01T10-15-00_001.json",
                "trips_backup_2026-02-01T10-15-00_002.json",
            ],
        )
        self.assertEqual(rotator.backups(), created)

    def test_retention_keeps_most_recent_hundred(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        ticks = iter(
            datetime(2026, 2, 1, tzinfo=timezone.utc) + timedelta(seconds=idx // 7)
            for idx in range(150)
        )
        rotator = BackupRotator(self.source, self.backup_dir, retention=100, clock=lambda: next(ticks))
        created = [rotator.snapshot() for _ in range(150)]
        self.assertTrue(all(path is not None for path in created))
        self.assertEqual(len(set(created)), 150)
        remaining = rotator.backups()
        self.assertEqual(len(remaining), 100)
        self.assertEqual(remaining, created[-100:])

    def test_retention_with_real_clock(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        rotator = BackupRotator(self.source, self.backup_dir, retention=100)
        created = [rotator.snapshot() for _ in range(150)]
        self.assertEqual(len(rotator.backups()), 100)
        self.assertEqual(rotator.backups(), created[-100:])

    def test_unrelated_files_are_left_alone(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        self.backup_dir.mkdir()
        keep = self.backup_dir / "README.txt"
        keep.write_text("notes", encoding="utf-8")
        rotator = BackupRotator(self.source, self.backup_dir, retention=1)
        rotator.snapshot()
        rotator.snapshot()
        self.assertTrue(keep.exists())
        self.assertEqual(len(rotator.backups()), 1)

    def test_concurrent_snapshots_never_overwrite_each_other(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        frozen = datetime(2026, 2, 1, 10, 15, 0, tzinfo=timezone.utc)
        workers = 4
        for round_no in range(10):
            backup_dir = self.root / f"backups_{round_no}"
            rotator = BackupRotator(self.source, backup_dir, clock=lambda: frozen)
            barrier = threading.Barrier(workers)
            results = []

            def take() -> None:
                barrier.wait()
                results.append(rotator.snapshot())

            threads = [threading.Thread(target=take) for _ in range(workers)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
            self.assertTrue(all(path is not None for path in results))
            self.assertEqual(len(set(results)), workers)
            self.assertEqual(len(rotator.backups()), workers)

    def test_counter_past_999_keeps_creation_order(self) -> None:
        self.source.write_text("{}", encoding="utf-8")
        self.backup_dir.mkdir()
        stamp = "2026-02-01T10-15-00"
        for name in (f"trips_backup_{stamp}.json", f"trips_backup_{stamp}_999.json"):
            (self.backup_dir / name).write_text("{}", encoding="utf-8")
        frozen = datetime(2026, 2, 1, 10, 15, 0, tzinfo=timezone.utc)
        rotator = BackupRotator(self.source, self.backup_dir, retention=2, clock=lambda: frozen)
        created = rotator.snapshot()
        self.assertEqual(created.name, f"trips_backup_{stamp}_1000.json")
        self.assertEqual(
            [path.name for path in rotator.backups()],
            [f"trips_backup_{stamp}_999.json", f"trips_backup_{stamp}_1000.json"],
        )

    def test_failures_are_swallowed(self) -> None:
        self.source.mkdir()
        rotator = BackupRotator(self.source, self.backup_dir)
        with self.assertLogs("datastore.backup", level="WARNING"):
            self.assertIsNone(rotator.snapshot())


class BackupSchedulerTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_periodic_snapshots_until_stopped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            source = root / "trips_data.json"
            source.write_text("{}", encoding="utf-8")
            rotator = BackupRotator(source, root / "backups")
            scheduler = BackupScheduler(rotator, interval=0.02)
            await scheduler.start()
            self.assertTrue(scheduler.running)
            await asyncio.sleep(0.15)
            await scheduler.stop()
            self.assertFalse(scheduler.running)
            await asyncio.sleep(0.05)
            count = len(rotator.backups())
            self.assertGreaterEqual(count, 1)
            await asyncio.sleep(0.1)
            self.assertEqual(len(rotator.backups()), count)


if __name__ == "__main__":
    unittest.main()
