"""Data file layer: write lock, backup rotation and the trips document store."""

from .backup import BackupRotator, BackupScheduler
from .errors import (
    AlreadyExists,
    CatalogNotFound,
    CorruptData,
    DocumentNotFound,
    LockTimeout,
    NotFound,
    StorageError,
    TripNotFound,
    ValidationFailed,
)
from .lock import LockManager
from .models import ClientEntry, Document, DocumentConfig, Trip, TRIP_STATUSES
from .store import DataStore, default_document

__all__ = [
    "AlreadyExists",
    "BackupRotator",
    "BackupScheduler",
    "CatalogNotFound",
    "ClientEntry",
    "CorruptData",
    "DataStore",
    "Document",
    "DocumentConfig",
    "DocumentNotFound",
    "LockManager",
    "LockTimeout",
    "NotFound",
    "StorageError",
    "TRIP_STATUSES",
    "Trip",
    "TripNotFound",
    "ValidationFailed",
    "default_document",
]
