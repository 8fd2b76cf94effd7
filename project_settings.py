"""Runtime configuration for the travel tracker.

Every component receives an ``AppSettings`` instance at construction instead of
reading module-level paths, so tests and the launcher can point the whole
application at any directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Tuple

from config import (
    BACKUP_DIR_NAME,
    BACKUP_INTERVAL_SECONDS,
    BACKUP_RETENTION,
    CLIENTS_FILE_NAME,
    DATA_FILE_NAME,
    DEFAULT_DATA_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    IS_PACKAGED,
    LOCATIONS_FILE_NAME,
    LOCK_ATTEMPTS,
    LOCK_FILE_NAME,
    LOCK_RETRY_DELAY_SECONDS,
    OFFICE_COORDS,
)


@dataclass(slots=True)
class AppSettings:
    """Paths, limits and network options for one running instance."""

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    data_file_name: str = DATA_FILE_NAME
    backup_dir_name: str = BACKUP_DIR_NAME
    lock_file_name: str = LOCK_FILE_NAME
    locations_file_name: str = LOCATIONS_FILE_NAME
    clients_file_name: str = CLIENTS_FILE_NAME
    backup_retention: int = BACKUP_RETENTION
    backup_interval_seconds: float = BACKUP_INTERVAL_SECONDS
    lock_attempts: int = LOCK_ATTEMPTS
    lock_retry_delay: float = LOCK_RETRY_DELAY_SECONDS
    default_coords: Tuple[float, float] = OFFICE_COORDS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    packaged: bool = IS_PACKAGED

    @property
    def data_file(self) -> Path:
        return self.data_dir / self.data_file_name

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / self.backup_dir_name

    @property
    def lock_file(self) -> Path:
        return self.data_dir / self.lock_file_name

    @property
    def locations_file(self) -> Path:
        return self.data_dir / self.locations_file_name

    @property
    def clients_file(self) -> Path:
        return self.data_dir / self.clients_file_name

    @property
    def mode(self) -> str:
        return "packaged" if self.packaged else "development"

    def with_updates(self, **changes: object) -> "AppSettings":
        """Return a validated copy with the given fields replaced."""
        updated = replace(self, **changes)
        updated.data_dir = Path(updated.data_dir)
        updated.validate()
        return updated

    def validate(self) -> None:
        """Validate invariants, raising ValueError if anything is invalid."""
        if self.backup_retention < 1:
            raise ValueError("backup_retention must be >= 1.")
        if self.backup_interval_seconds <= 0:
            raise ValueError("backup_interval_seconds must be > 0.")
        if self.lock_attempts < 1:
            raise ValueError("lock_attempts must be >= 1.")
        if self.lock_retry_delay < 0:
            raise ValueError("lock_retry_delay must be >= 0.")
        if len(self.default_coords) != 2:
            raise ValueError("default_coords must be a [lat, lon] pair.")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port {self.port}.")

    def ensure_directories(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, object]:
        return {
            "data_dir": str(self.data_dir),
            "data_file": str(self.data_file),
            "backup_dir": str(self.backup_dir),
            "backup_retention": self.backup_retention,
            "backup_interval_seconds": self.backup_interval_seconds,
            "lock_attempts": self.lock_attempts,
            "lock_retry_delay": self.lock_retry_delay,
            "host": self.host,
            "port": self.port,
            "mode": self.mode,
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppSettings":
        """Build settings from DATA_DIR / HOST / PORT environment variables."""
        env = os.environ if environ is None else environ
        instance = cls()
        data_dir = env.get("DATA_DIR")
        if data_dir:
            instance.data_dir = Path(data_dir).expanduser()
        host = env.get("HOST")
        if host:
            instance.host = host
        port = env.get("PORT")
        if port:
            try:
                instance.port = int(port)
            except ValueError as exc:
                raise ValueError(f"PORT must be an integer, got {port!r}") from exc
        instance.validate()
        return instance
