from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, get_args

from config import DEFAULT_TRIP_COLOR, DOCUMENT_VERSION

TripStatus = Literal["Approved", "Pending", "Rejected", "Cancelled"]
TRIP_STATUSES: Tuple[str, ...] = get_args(TripStatus)

Coords = Tuple[float, float]

_TRIP_KEYS = frozenset(
    {
        "id",
        "traveler",
        "destination",
        "startDate",
        "endDate",
        "client",
        "project",
        "coords",
        "color",
        "status",
        "createdBy",
        "createdAt",
        "modifiedAt",
    }
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 timestamp, accepting the trailing ``Z`` form."""
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_date(value: object) -> date:
    if not isinstance(value, str):
        raise ValueError(f"Invalid date {value!r}")
    return date.fromisoformat(value.strip())


def parse_coords(value: object) -> Optional[Coords]:
    """Return a ``(lat, lon)`` pair, or None when the value is not usable."""
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return None
    if len(value) != 2:
        return None
    pair = []
    for item in value:
        if isinstance(item, bool) or item is None:
            return None
        try:
            number = float(item)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        pair.append(number)
    return pair[0], pair[1]


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Field '{key}' must be a string")
    return value


def _require_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field '{key}' must be an integer")
    return value


@dataclass
class Trip:
    id: int
    traveler: str
    destination: str
    start_date: date
    end_date: date
    client: str
    project: str
    coords: Coords
    created_at: datetime
    color: str = DEFAULT_TRIP_COLOR
    status: TripStatus = "Approved"
    created_by: str = ""
    modified_at: Optional[datetime] = None
    # Keys written by other tools are carried through unchanged.
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extras)
        payload.update(
            {
                "id": self.id,
                "traveler": self.traveler,
                "destination": self.destination,
                "startDate": self.start_date.isoformat(),
                "endDate": self.end_date.isoformat(),
                "client": self.client,
                "project": self.project,
                "coords": [self.coords[0], self.coords[1]],
                "color": self.color,
                "status": self.status,
                "createdBy": self.created_by,
                "createdAt": format_timestamp(self.created_at),
            }
        )
        if self.modified_at is not None:
            payload["modifiedAt"] = format_timestamp(self.modified_at)
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Trip":
        if not isinstance(payload, Mapping):
            raise ValueError("Trip entries must be objects")
        coords = parse_coords(payload.get("coords"))
        if coords is None:
            raise ValueError(f"Trip {payload.get('id')!r} has invalid coords")
        status = payload.get("status", "Approved")
        if status not in TRIP_STATUSES:
            raise ValueError(f"Trip {payload.get('id')!r} has unknown status {status!r}")
        modified = payload.get("modifiedAt")
        return cls(
            id=_require_int(payload, "id"),
            traveler=_require_str(payload, "traveler"),
            destination=_require_str(payload, "destination"),
            start_date=parse_date(payload.get("startDate")),
            end_date=parse_date(payload.get("endDate")),
            client=_require_str(payload, "client"),
            project=_require_str(payload, "project"),
            coords=coords,
            created_at=parse_timestamp(payload.get("createdAt")),
            color=str(payload.get("color") or DEFAULT_TRIP_COLOR),
            status=status,
            created_by=str(payload.get("createdBy") or ""),
            modified_at=parse_timestamp(modified) if modified else None,
            extras={key: value for key, value in payload.items() if key not in _TRIP_KEYS},
        )


@dataclass
class ClientEntry:
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ClientEntry":
        if not isinstance(payload, Mapping):
            raise ValueError("Client entries must be objects")
        return cls(id=_require_int(payload, "id"), name=_require_str(payload, "name"))


@dataclass
class DocumentConfig:
    last_id: int = 0
    version: str = DOCUMENT_VERSION
    last_updated: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastId": self.last_id,
            "version": self.version,
            "lastUpdated": format_timestamp(self.last_updated),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "DocumentConfig":
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ValueError("'config' must be an object")
        last_id = payload.get("lastId", 0)
        if isinstance(last_id, bool) or not isinstance(last_id, int) or last_id < 0:
            raise ValueError("'config.lastId' must be a non-negative integer")
        updated = payload.get("lastUpdated")
        return cls(
            last_id=last_id,
            version=str(payload.get("version") or DOCUMENT_VERSION),
            last_updated=parse_timestamp(updated) if updated else None,
        )


@dataclass
class Document:
    """The single root object persisted in the data file."""

    trips: List[Trip] = field(default_factory=list)
    clients: List[ClientEntry] = field(default_factory=list)
    config: DocumentConfig = field(default_factory=DocumentConfig)

    def find_trip(self, trip_id: int) -> Optional[Trip]:
        for trip in self.trips:
            if trip.id == trip_id:
                return trip
        return None

    def index_of(self, trip_id: int) -> int:
        for idx, trip in enumerate(self.trips):
            if trip.id == trip_id:
                return idx
        return -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trips": [trip.to_dict() for trip in self.trips],
            "clients": [client.to_dict() for client in self.clients],
            "config": self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "Document":
        if not isinstance(payload, Mapping):
            raise ValueError("Document root must be an object")
        trips = payload.get("trips", [])
        clients = payload.get("clients", [])
        if not isinstance(trips, list):
            raise ValueError("'trips' must be a list")
        if not isinstance(clients, list):
            raise ValueError("'clients' must be a list")
        document = cls(
            trips=[Trip.from_dict(item) for item in trips],
            clients=[ClientEntry.from_dict(item) for item in clients],
            config=DocumentConfig.from_dict(payload.get("config")),
        )
        seen: set[int] = set()
        for trip in document.trips:
            if trip.id in seen:
                raise ValueError(f"Duplicate trip id {trip.id}")
            seen.add(trip.id)
        return document
