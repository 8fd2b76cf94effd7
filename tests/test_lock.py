from __future__ import annotations

import asyncio
import tempfile
import time
import unittest
from pathlib import Path

from datastore.errors import LockTimeout
from datastore.lock import LockManager


class LockManagerTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.lock_path = Path(self.tmp.name) / ".lock"

    async def asyncTearDown(self) -> None:
        self.tmp.cleanup()

    async def test_acquire_creates_marker_and_release_removes_it(self) -> None:
        lock = LockManager(self.lock_path, attempts=3, delay=0.01)
        await lock.acquire()
        self.assertTrue(lock.is_held)
        self.assertTrue(self.lock_path.exists())
        lock.release()
        self.assertFalse(lock.is_held)
        self.assertFalse(self.lock_path.exists())

    async def test_release_is_idempotent(self) -> None:
        lock = LockManager(self.lock_path, attempts=3, delay=0.01)
        await lock.acquire()
        lock.release()
        lock.release()
        LockManager(self.lock_path).release()
        self.assertFalse(self.lock_path.exists())

    async def test_second_acquire_without_release_times_out(self) -> None:
        lock = LockManager(self.lock_path, attempts=3, delay=0.01)
        await lock.acquire()
        with self.assertRaises(LockTimeout):
            await lock.acquire()
        lock.release()
        self.assertFalse(self.lock_path.exists())

    async def test_contender_gets_lock_after_holder_releases(self) -> None:
        holder = LockManager(self.lock_path, attempts=10, delay=0.02)
        contender = LockManager(self.lock_path, attempts=10, delay=0.02)
        await holder.acquire()

        async def _release_later() -> None:
            await asyncio.sleep(0.05)
            holder.release()

        releaser = asyncio.create_task(_release_later())
        await contender.acquire()
        await releaser
        self.assertTrue(contender.is_held)
        self.assertFalse(holder.is_held)
        contender.release()

    async def test_contender_times_out_when_holder_never_releases(self) -> None:
        holder = LockManager(self.lock_path, attempts=10, delay=0.01)
        contender = LockManager(self.lock_path, attempts=5, delay=0.01)
        await holder.acquire()
        started = time.perf_counter()
        with self.assertRaises(LockTimeout):
            await contender.acquire()
        self.assertGreaterEqual(time.perf_counter() - started, 0.03)
        self.assertTrue(holder.is_held)
        self.assertTrue(self.lock_path.exists())
        holder.release()

    async def test_concurrent_acquires_yield_exactly_one_immediate_winner(self) -> None:
        first = LockManager(self.lock_path, attempts=1, delay=0.01)
        second = LockManager(self.lock_path, attempts=1, delay=0.01)
        results = await asyncio.gather(first.acquire(), second.acquire(), return_exceptions=True)
        winners = [result for result in results if result is None]
        failures = [result for result in results if isinstance(result, LockTimeout)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(failures), 1)
        self.assertEqual(first.is_held + second.is_held, 1)
        first.release()
        second.release()

    async def test_held_releases_on_error(self) -> None:
        lock = LockManager(self.lock_path, attempts=2, delay=0.01)
        with self.assertRaises(RuntimeError):
            async with lock.held():
                raise RuntimeError("boom")
        self.assertFalse(lock.is_held)
        self.assertFalse(self.lock_path.exists())

    async def test_other_os_errors_are_not_retried(self) -> None:
        blocker = Path(self.tmp.name) / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        lock = LockManager(blocker / ".lock", attempts=50, delay=0.1)
        started = time.perf_counter()
        with self.assertRaises(OSError):
            await lock.acquire()
        self.assertLess(time.perf_counter() - started, 1.0)
        self.assertFalse(lock.is_held)


if __name__ == "__main__":
    unittest.main()
