"""
Project-wide configuration.

Static defaults for the data directory layout, the write lock budget and the
backup policy. Runtime overrides (environment, CLI flags) are applied by
``project_settings.AppSettings`` - keep this file for plain defaults only.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Final, Tuple

# A frozen executable keeps its data next to the binary, not inside the bundle.
IS_PACKAGED: Final[bool] = bool(getattr(sys, "frozen", False))

# Root directory of the project (useful for resolving relative paths).
BASE_DIR: Final[Path] = (
    Path(sys.executable).resolve().parent if IS_PACKAGED else Path(__file__).resolve().parent
)

# Default data directory; overridden by the DATA_DIR environment variable.
DEFAULT_DATA_DIR: Final[Path] = BASE_DIR / "data"

DATA_FILE_NAME: Final[str] = "trips_data.json"
BACKUP_DIR_NAME: Final[str] = "backups"
LOCK_FILE_NAME: Final[str] = ".lock"
LOCATIONS_FILE_NAME: Final[str] = "locations.json"
CLIENTS_FILE_NAME: Final[str] = "clients.json"

# Backups kept on disk; older snapshots are pruned after every new one.
BACKUP_RETENTION: Final[int] = 100
BACKUP_INTERVAL_SECONDS: Final[int] = 60 * 60  # hourly

# Write lock budget: 10 attempts x 100ms, roughly one second in total.
LOCK_ATTEMPTS: Final[int] = 10
LOCK_RETRY_DELAY_SECONDS: Final[float] = 0.1

# Head office, used whenever a trip arrives without usable coordinates.
OFFICE_COORDS: Final[Tuple[float, float]] = (43.04426527618791, -2.2100984760320834)

DOCUMENT_VERSION: Final[str] = "2.3.0"
DEFAULT_TRIP_COLOR: Final[str] = "#c10230"
DEFAULT_CREATED_BY: Final[str] = "user"

DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 3001
