from __future__ import annotations


class StorageError(RuntimeError):
    """Base class for failures of the data file layer."""


class LockTimeout(StorageError):
    """The write lock could not be obtained within the retry budget."""


class CorruptData(StorageError):
    """A persisted document failed to parse or validate."""


class DocumentNotFound(StorageError):
    pass


class NotFound(LookupError):
    """A requested entity does not exist."""


class TripNotFound(NotFound):
    def __init__(self, trip_id: int) -> None:
        super().__init__(f"Trip {trip_id} not found")
        self.trip_id = trip_id


class CatalogNotFound(NotFound):
    def __init__(self, path: object) -> None:
        super().__init__(f"Catalog file not found: {path}")
        self.path = str(path)


class ValidationFailed(ValueError):
    pass


class AlreadyExists(ValueError):
    pass
