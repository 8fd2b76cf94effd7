from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from datastore.errors import AlreadyExists, CorruptData, ValidationFailed
from datastore.lock import LockManager
from datastore.models import Coords, parse_coords
from utils.io import load_json_text, save_json

logger = logging.getLogger(__name__)

DEFAULT_LOCATIONS: Tuple[Tuple[str, Coords], ...] = (
    ("Beasain", (43.04426527618791, -2.2100984760320834)),
    ("Madrid", (40.4168, -3.7038)),
    ("Barcelona", (41.3851, 2.1734)),
)


@dataclass
class Location:
    name: str
    coords: Coords

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "coords": [self.coords[0], self.coords[1]]}


def _normalise_name(name: object) -> str:
    return str(name or "").strip().lower()


class LocationCatalog:
    """Named places offered when entering a trip destination.

    Writes share the data file's lock so that one writer at a time touches
    the data directory.
    """

    def __init__(self, path: Path | str, lock: LockManager) -> None:
        self._path = Path(path)
        self._lock = lock

    @property
    def path(self) -> Path:
        return self._path

    def ensure_seeded(self) -> bool:
        if self._path.exists():
            return False
        try:
            save_json([Location(name, coords).to_dict() for name, coords in DEFAULT_LOCATIONS], self._path)
        except OSError as exc:
            logger.warning("Could not create %s: %s", self._path, exc)
            return False
        logger.info("Location catalog created at %s", self._path)
        return True

    def entries(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            return []
        payload = self._load()
        return payload if isinstance(payload, list) else []

    async def create(self, name: object, coords: object) -> Location:
        location = self._validate(name, coords)
        async with self._lock.held():
            current = await asyncio.to_thread(self._load) if self._path.exists() else []
            entries = list(current) if isinstance(current, list) else []
            wanted = _normalise_name(location.name)
            for entry in entries:
                existing = entry.get("name") if isinstance(entry, Mapping) else None
                if _normalise_name(existing) == wanted:
                    raise AlreadyExists(f"Location '{location.name}' already exists")
            entries.append(location.to_dict())
            await asyncio.to_thread(save_json, entries, self._path)
        logger.info("Location '%s' added", location.name)
        return location

    def _validate(self, name: object, coords: object) -> Location:
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailed("Invalid format: expected {name, coords:[lat, lon]}")
        if not isinstance(coords, (list, tuple)) or len(coords) != 2:
            raise ValidationFailed("Invalid format: expected {name, coords:[lat, lon]}")
        pair = parse_coords(coords)
        if pair is None:
            raise ValidationFailed("Invalid coordinates")
        return Location(name=name.strip(), coords=pair)

    def _load(self) -> Any:
        try:
            return load_json_text(self._path) if self._path.stat().st_size else []
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Location catalog %s is unreadable: %s", self._path, exc)
            raise CorruptData(f"Location catalog is not valid JSON: {exc}") from exc
