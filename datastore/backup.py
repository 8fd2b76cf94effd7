from __future__ import annotations

import asyncio
import logging
import re
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "trips_backup_"
_STAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
_NAME_ATTEMPTS = 5


class BackupRotator:
    """Timestamped copies of the data file with bounded retention.

    Names look like ``trips_backup_2026-02-01T10-15-00.json``; further
    snapshots within the same second get ``_001``, ``_002``... Ordering uses
    the parsed stamp and counter, so a ``_1000`` still sorts after ``_999``.

    Snapshots are serialised by a thread lock because the periodic and
    shutdown snapshots run in worker threads outside the write lock. Targets
    are opened with exclusive create so an existing backup is never
    overwritten.
    """

    def __init__(
        self,
        source: Path | str,
        backup_dir: Path | str,
        *,
        retention: int = 100,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if retention < 1:
            raise ValueError("retention must be >= 1")
        self._source = Path(source)
        self._backup_dir = Path(backup_dir)
        self._retention = retention
        self._prefix = prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._mutex = threading.Lock()
        self._pattern = re.compile(
            re.escape(prefix) + r"(?P<stamp>\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})(?:_(?P<seq>\d+))?\.json$"
        )

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    def backups(self) -> List[Path]:
        """Existing snapshots, oldest first."""
        if not self._backup_dir.is_dir():
            return []
        found = []
        for path in self._backup_dir.iterdir():
            match = self._pattern.match(path.name)
            if match:
                found.append(((match.group("stamp"), int(match.group("seq") or 0)), path))
        return [path for _, path in sorted(found)]

    def snapshot(self) -> Optional[Path]:
        """Copy the data file into the backup directory; never raises."""
        with self._mutex:
            try:
                if not self._source.exists():
                    return None
                self._backup_dir.mkdir(parents=True, exist_ok=True)
                target = self._copy_exclusive()
                self._prune()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Backup of %s failed: %s", self._source, exc)
                return None
        logger.debug("Backup written to %s", target)
        return target

    def _copy_exclusive(self) -> Path:
        with self._source.open("rb") as source:
            for _ in range(_NAME_ATTEMPTS):
                target = self._next_name()
                try:
                    handle = target.open("xb")
                except FileExistsError:
                    continue
                try:
                    with handle:
                        shutil.copyfileobj(source, handle)
                except BaseException:
                    target.unlink(missing_ok=True)
                    raise
                return target
        raise FileExistsError(f"No free backup name in {self._backup_dir}")

    def _next_name(self) -> Path:
        stamp = self._clock().strftime(_STAMP_FORMAT)
        highest: Optional[int] = None
        for path in self._backup_dir.iterdir():
            match = self._pattern.match(path.name)
            if not match or match.group("stamp") != stamp:
                continue
            seq = int(match.group("seq") or 0)
            highest = seq if highest is None else max(highest, seq)
        if highest is None:
            return self._backup_dir / f"{self._prefix}{stamp}.json"
        return self._backup_dir / f"{self._prefix}{stamp}_{highest + 1:03d}.json"

    def _prune(self) -> None:
        existing = self.backups()
        excess = len(existing) - self._retention
        if excess <= 0:
            return
        for path in existing[:excess]:
            path.unlink(missing_ok=True)
        logger.info("Pruned %s old backup(s) from %s", excess, self._backup_dir)


class BackupScheduler:
    """Takes a snapshot every ``interval`` seconds in the background."""

    def __init__(self, rotator: BackupRotator, interval: float) -> None:
        self._rotator = rotator
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(max(self._interval, 0.01))
            await asyncio.to_thread(self._rotator.snapshot)
