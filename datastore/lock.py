from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from filelock import SoftFileLock, Timeout

from .errors import LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """Exclusive write lock represented by a marker file on disk.

    The marker is created with ``O_CREAT | O_EXCL`` so it also serialises a
    second process pointed at the same data directory. The lock is not
    reentrant: acquiring it twice without a release contends with itself and
    ends in ``LockTimeout``.
    """

    def __init__(self, path: Path | str, *, attempts: int = 10, delay: float = 0.1) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self._path = Path(path)
        self._attempts = attempts
        self._delay = delay
        self._held: Optional[SoftFileLock] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_held(self) -> bool:
        return self._held is not None

    def marker_present(self) -> bool:
        return self._path.exists()

    async def acquire(self) -> None:
        for attempt in range(1, self._attempts + 1):
            # A fresh instance per attempt keeps filelock's own reentrancy
            # counter out of the picture.
            candidate = SoftFileLock(str(self._path))
            try:
                candidate.acquire(blocking=False)
            except Timeout:
                if attempt < self._attempts:
                    await asyncio.sleep(self._delay)
                continue
            self._held = candidate
            return
        logger.warning(
            "Write lock %s still taken after %s attempts", self._path, self._attempts
        )
        raise LockTimeout(
            f"Could not acquire the write lock after {self._attempts} attempts"
        )

    def release(self) -> None:
        held, self._held = self._held, None
        if held is None:
            return
        # SoftFileLock unlinks the marker and ignores a marker that is already gone.
        held.release(force=True)

    def discard_marker(self) -> bool:
        """Release and delete the marker even when another owner left it.

        Only for shutdown. Returns True when a marker this manager did not
        hold was removed.
        """
        self.release()
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        logger.warning("Removed leftover lock marker %s", self._path)
        return True

    @asynccontextmanager
    async def held(self) -> AsyncIterator["LockManager"]:
        await self.acquire()
        try:
            yield self
        finally:
            self.release()
