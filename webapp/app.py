from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict, Field

from config import DOCUMENT_VERSION
from datastore import (
    AlreadyExists,
    CatalogNotFound,
    LockTimeout,
    NotFound,
    StorageError,
    ValidationFailed,
)
from project_settings import AppSettings

from .services import TripService

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger(__name__)


class TripPayload(BaseModel):
    """Incoming trip fields; only the keys actually sent are applied."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    traveler: Optional[str] = None
    destination: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    client: Optional[str] = None
    project: Optional[str] = None
    coords: Any = None
    status: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class LocationPayload(BaseModel):
    name: Any = None
    coords: Any = None


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, f"Invalid request: {details}")

    @app.exception_handler(AlreadyExists)
    async def _conflict(request: Request, exc: AlreadyExists) -> JSONResponse:
        return _error(409, str(exc))

    @app.exception_handler(CatalogNotFound)
    async def _catalog_missing(request: Request, exc: CatalogNotFound) -> JSONResponse:
        return _error(404, "Catalog file not found", path=exc.path)

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(LockTimeout)
    async def _busy(request: Request, exc: LockTimeout) -> JSONResponse:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        response = _error(503, "Data file is busy, please retry")
        response.headers["Retry-After"] = "1"
        return response

    @app.exception_handler(StorageError)
    async def _storage_failure(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or AppSettings.from_env()
    service = TripService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await service.startup()
        try:
            yield
        finally:
            await service.shutdown()

    app = FastAPI(title="Corporate Trips", version=DOCUMENT_VERSION, lifespan=lifespan)
    app.state.service = service
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    templates = Jinja2Templates(directory=BASE_DIR / "templates")
    _register_error_handlers(app)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        trips = await asyncio.to_thread(service.list_trips)
        stats = await asyncio.to_thread(service.stats)
        return templates.TemplateResponse(request, "index.html", {"trips": trips, "stats": stats})

    @app.get("/api/health")
    async def health() -> JSONResponse:
        return JSONResponse(service.health())

    @app.get("/api/clients")
    async def list_clients() -> JSONResponse:
        return JSONResponse(await asyncio.to_thread(service.client_names))

    @app.get("/api/trips")
    async def list_trips() -> JSONResponse:
        return JSONResponse(await asyncio.to_thread(service.list_trips))

    @app.get("/api/trips/{trip_id}")
    async def get_trip(trip_id: int) -> JSONResponse:
        return JSONResponse(await asyncio.to_thread(service.get_trip, trip_id))

    @app.post("/api/trips")
    async def create_trip(payload: TripPayload) -> JSONResponse:
        trip = await service.create_trip(payload.changes())
        return JSONResponse(trip, status_code=201)

    @app.put("/api/trips/{trip_id}")
    async def update_trip(trip_id: int, payload: TripPayload) -> JSONResponse:
        return JSONResponse(await service.update_trip(trip_id, payload.changes()))

    @app.delete("/api/trips/{trip_id}")
    async def delete_trip(trip_id: int) -> JSONResponse:
        removed = await service.delete_trip(trip_id)
        return JSONResponse({"message": "Trip deleted", "trip": removed})

    @app.get("/api/locations")
    async def list_locations() -> JSONResponse:
        return JSONResponse(await asyncio.to_thread(service.list_locations))

    @app.post("/api/locations")
    async def create_location(payload: LocationPayload) -> JSONResponse:
        location = await service.create_location(payload.name, payload.coords)
        return JSONResponse(location, status_code=201)

    @app.get("/api/stats")
    async def stats() -> JSONResponse:
        return JSONResponse(await asyncio.to_thread(service.stats))

    return app
