"""Auxiliary catalogs: named locations and client names."""

from .clients import ClientCatalog, clean_client_name
from .locations import DEFAULT_LOCATIONS, Location, LocationCatalog

__all__ = [
    "ClientCatalog",
    "DEFAULT_LOCATIONS",
    "Location",
    "LocationCatalog",
    "clean_client_name",
]
