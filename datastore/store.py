from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import AsyncIterator, Callable

from utils.io import load_json_text, save_json

from .backup import BackupRotator
from .errors import CorruptData, DocumentNotFound
from .lock import LockManager
from .models import ClientEntry, Document, DocumentConfig, Trip, utc_now

logger = logging.getLogger(__name__)


def default_document() -> Document:
    """Document written on first boot: one example trip, ``lastId = 1``."""
    now = utc_now()
    return Document(
        trips=[
            Trip(
                id=1,
                traveler="Ana García",
                destination="Madrid",
                start_date=date(2026, 1, 19),
                end_date=date(2026, 1, 21),
                client="Iberdrola",
                project="Instalación eólica offshore",
                coords=(40.4168, -3.7038),
                created_by="admin",
                created_at=now,
            )
        ],
        clients=[ClientEntry(id=1, name="Iberdrola")],
        config=DocumentConfig(last_id=1, last_updated=now),
    )


class DataStore:
    """Reads and writes the trips document.

    Reads never take the lock; they rely on writes replacing the file
    atomically. Writes hold the lock, snapshot the current file, stamp
    ``config.lastUpdated`` and replace the file, releasing the lock on every
    exit path.
    """

    def __init__(
        self,
        path: Path | str,
        lock: LockManager,
        rotator: BackupRotator,
        *,
        clock: Callable = utc_now,
    ) -> None:
        self._path = Path(path)
        self._lock = lock
        self._rotator = rotator
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock(self) -> LockManager:
        return self._lock

    def exists(self) -> bool:
        return self._path.exists()

    def read(self) -> Document:
        try:
            payload = load_json_text(self._path)
        except FileNotFoundError as exc:
            raise DocumentNotFound(f"Data file not found: {self._path}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Data file %s is not valid JSON: %s", self._path, exc)
            raise CorruptData(f"Data file is not valid JSON: {exc}") from exc
        try:
            return Document.from_dict(payload)
        except (TypeError, ValueError) as exc:
            logger.error("Data file %s failed validation: %s", self._path, exc)
            raise CorruptData(f"Data file failed validation: {exc}") from exc

    async def write(self, document: Document) -> None:
        async with self._lock.held():
            await self._write_locked(document)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Document]:
        """Hold the lock across read, mutation and write.

        The yielded document is written back when the block exits normally;
        if the block raises, the file is left untouched.
        """
        async with self._lock.held():
            document = await asyncio.to_thread(self.read)
            yield document
            await self._write_locked(document)

    @staticmethod
    def next_id(document: Document) -> int:
        highest = max((trip.id for trip in document.trips), default=0)
        document.config.last_id = max(document.config.last_id, highest) + 1
        return document.config.last_id

    async def initialize(self) -> bool:
        """Seed the default document when none exists; True if seeded."""
        if self._path.exists():
            logger.info("Data file found at %s", self._path)
            return False
        async with self._lock.held():
            if self._path.exists():
                return False
            document = default_document()
            await self._write_locked(document)
        logger.info("Seeded %s with %s example trip(s)", self._path, len(document.trips))
        return True

    async def _write_locked(self, document: Document) -> None:
        if not self._lock.is_held:
            raise RuntimeError("Document writes require the write lock")
        await asyncio.to_thread(self._rotator.snapshot)
        document.config.last_updated = self._clock()
        payload = document.to_dict()
        await asyncio.to_thread(save_json, payload, self._path)
