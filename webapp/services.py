from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Mapping

from catalogs import ClientCatalog, LocationCatalog
from config import DEFAULT_CREATED_BY, DEFAULT_TRIP_COLOR
from datastore import (
    BackupRotator,
    BackupScheduler,
    DataStore,
    LockManager,
    LockTimeout,
    Trip,
    TripNotFound,
    TRIP_STATUSES,
    ValidationFailed,
)
from datastore.models import parse_coords, parse_date, utc_now
from project_settings import AppSettings

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("traveler", "destination", "start_date", "end_date", "client", "project")
TEXT_FIELDS = ("traveler", "destination", "client", "project")

_FIELD_LABELS = {
    "traveler": "traveler",
    "destination": "destination",
    "start_date": "startDate",
    "end_date": "endDate",
    "client": "client",
    "project": "project",
}


def _clean_text(fields: Mapping[str, Any], key: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"Field '{_FIELD_LABELS[key]}' is required")
    return value.strip()


def _clean_date(fields: Mapping[str, Any], key: str) -> date:
    value = fields.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationFailed(f"Field '{_FIELD_LABELS[key]}' is required")
    try:
        return parse_date(value)
    except ValueError as exc:
        raise ValidationFailed(
            f"Field '{_FIELD_LABELS[key]}' must be a YYYY-MM-DD date"
        ) from exc


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationFailed("endDate cannot be before startDate")


class TripService:
    """Trip operations behind the HTTP layer.

    Every mutation runs inside ``DataStore.transaction`` so the ID counter and
    the trip list are read and written under one lock hold.
    """

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings
        self._lock = LockManager(
            settings.lock_file,
            attempts=settings.lock_attempts,
            delay=settings.lock_retry_delay,
        )
        self._rotator = BackupRotator(
            settings.data_file,
            settings.backup_dir,
            retention=settings.backup_retention,
        )
        self._store = DataStore(settings.data_file, self._lock, self._rotator)
        self._scheduler = BackupScheduler(self._rotator, settings.backup_interval_seconds)
        self._locations = LocationCatalog(settings.locations_file, self._lock)
        self._clients = ClientCatalog(settings.clients_file)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def store(self) -> DataStore:
        return self._store

    @property
    def rotator(self) -> BackupRotator:
        return self._rotator

    @property
    def lock(self) -> LockManager:
        return self._lock

    @property
    def locations(self) -> LocationCatalog:
        return self._locations

    @property
    def clients(self) -> ClientCatalog:
        return self._clients

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    async def startup(self) -> None:
        self._settings.ensure_directories()
        if self._lock.marker_present():
            logger.warning(
                "Lock marker %s already exists; writes will time out until it is removed",
                self._lock.path,
            )
        try:
            await self._store.initialize()
        except LockTimeout:
            logger.error(
                "Could not seed %s: lock marker %s is in place; remove it and restart",
                self._settings.data_file,
                self._lock.path,
            )
        self._locations.ensure_seeded()
        await self._scheduler.start()
        logger.info(
            "Trip store ready (data: %s, backups: %s, mode: %s)",
            self._settings.data_file,
            self._settings.backup_dir,
            self._settings.mode,
        )

    async def shutdown(self) -> None:
        logger.info("Shutting down trip store")
        await self._scheduler.stop()
        self._lock.discard_marker()
        await asyncio.to_thread(self._rotator.snapshot)

    # ------------------------------------------------------------------ #
    # Trips
    # ------------------------------------------------------------------ #
    def list_trips(self) -> List[Dict[str, Any]]:
        return [trip.to_dict() for trip in self._store.read().trips]

    def get_trip(self, trip_id: int) -> Dict[str, Any]:
        trip = self._store.read().find_trip(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip.to_dict()

    async def create_trip(
        self, fields: Mapping[str, Any], *, created_by: str = DEFAULT_CREATED_BY
    ) -> Dict[str, Any]:
        cleaned = {key: _clean_text(fields, key) for key in TEXT_FIELDS}
        start = _clean_date(fields, "start_date")
        end = _clean_date(fields, "end_date")
        _check_range(start, end)
        coords = parse_coords(fields.get("coords")) or tuple(self._settings.default_coords)

        async with self._store.transaction() as document:
            trip = Trip(
                id=self._store.next_id(document),
                traveler=cleaned["traveler"],
                destination=cleaned["destination"],
                start_date=start,
                end_date=end,
                client=cleaned["client"],
                project=cleaned["project"],
                coords=coords,
                color=DEFAULT_TRIP_COLOR,
                status="Approved",
                created_by=created_by,
                created_at=utc_now(),
            )
            document.trips.append(trip)
        logger.info("Trip %s created for %s", trip.id, trip.traveler)
        return trip.to_dict()

    async def update_trip(self, trip_id: int, patch: Mapping[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for key in TEXT_FIELDS:
            if key in patch:
                changes[key] = _clean_text(patch, key)
        for key in ("start_date", "end_date"):
            if key in patch:
                changes[key] = _clean_date(patch, key)
        if "status" in patch:
            if patch["status"] not in TRIP_STATUSES:
                raise ValidationFailed(
                    f"Field 'status' must be one of {', '.join(TRIP_STATUSES)}"
                )
            changes["status"] = patch["status"]
        coords = parse_coords(patch.get("coords")) if "coords" in patch else None
        if coords is not None:
            changes["coords"] = coords

        async with self._store.transaction() as document:
            trip = document.find_trip(trip_id)
            if trip is None:
                raise TripNotFound(trip_id)
            _check_range(
                changes.get("start_date", trip.start_date),
                changes.get("end_date", trip.end_date),
            )
            for key, value in changes.items():
                setattr(trip, key, value)
            trip.modified_at = utc_now()
        logger.info("Trip %s updated (%s)", trip_id, ", ".join(sorted(changes)) or "no fields")
        return trip.to_dict()

    async def delete_trip(self, trip_id: int) -> Dict[str, Any]:
        async with self._store.transaction() as document:
            idx = document.index_of(trip_id)
            if idx == -1:
                raise TripNotFound(trip_id)
            removed = document.trips.pop(idx)
        logger.info("Trip %s deleted", trip_id)
        return removed.to_dict()

    def stats(self) -> Dict[str, int]:
        trips = self._store.read().trips
        return {
            "totalTrips": len(trips),
            "travelers": len({trip.traveler for trip in trips}),
            "clients": len({trip.client for trip in trips}),
        }

    def health(self) -> Dict[str, Any]:
        return {
            "status": "OK",
            "timestamp": utc_now().isoformat(),
            "dataDir": str(self._settings.data_dir),
            "mode": self._settings.mode,
        }

    # ------------------------------------------------------------------ #
    # Catalogs
    # ------------------------------------------------------------------ #
    def list_locations(self) -> List[Dict[str, Any]]:
        return self._locations.entries()

    async def create_location(self, name: object, coords: object) -> Dict[str, Any]:
        location = await self._locations.create(name, coords)
        return location.to_dict()

    def client_names(self) -> List[str]:
        return self._clients.names()
