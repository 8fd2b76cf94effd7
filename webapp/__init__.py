from .app import create_app
from .services import TripService

__all__ = ["create_app", "TripService"]
