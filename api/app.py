"""FastAPI application exposing the import batch jobs as stateless endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.auth import AuthorizationError, optional_admin, require_admin
from api.dependencies import PipelineServices, get_services
from api.schemas import (
    AreaSeedRequest,
    AreaSeedResponse,
    CuisineLinkRequest,
    CuisineLinkResponse,
    PhotoRefreshRequest,
    PhotoRefreshResponse,
    RadiusImportRequest,
    RadiusImportResponse,
)
from config import ConfigurationError
from db import DatabaseError
from scripts.area_seeder import AreaSeeder
from scripts.link_cuisines import CuisineLinker
from scripts.photo_refresher import PhotoRefresher
from scripts.radius_importer import RadiusImporter
from utils.places_client import PlacesAPIError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["import"])


@router.post(
    "/bulk-import-restaurants",
    response_model=AreaSeedResponse,
    response_model_exclude_unset=True,
)
def seed_areas(
    payload: Optional[AreaSeedRequest] = None,
    services: PipelineServices = Depends(get_services),
) -> dict:
    """Import the top restaurants for one slice of the seed area list."""
    payload = payload or AreaSeedRequest()
    seeder = AreaSeeder(
        services.db, places=services.places, rehoster=services.rehoster, config=services.config
    )
    return seeder.run(start_index=payload.start_index, batch_size=payload.batch_size)


@router.post("/import-google-places", response_model=RadiusImportResponse)
def import_radius(
    payload: RadiusImportRequest,
    services: PipelineServices = Depends(get_services),
    user_id: str = Depends(require_admin),
) -> dict:
    """Import restaurants around a coordinate (administrators only)."""
    logger.info(f"Radius import requested by {user_id}")
    importer = RadiusImporter(
        services.db, places=services.places, rehoster=services.rehoster, config=services.config
    )
    return importer.run(payload.latitude, payload.longitude, payload.radius)


@router.post("/refresh-restaurant-photos", response_model=PhotoRefreshResponse)
def refresh_photos(
    payload: Optional[PhotoRefreshRequest] = None,
    services: PipelineServices = Depends(get_services),
    user_id: Optional[str] = Depends(optional_admin),
) -> dict:
    """Replace stored photos for one restaurant or one page of restaurants."""
    payload = payload or PhotoRefreshRequest()
    refresher = PhotoRefresher(
        services.db, places=services.places, rehoster=services.rehoster, config=services.config
    )
    return refresher.run(
        restaurant_id=payload.restaurant_id, batch_size=payload.batch_size, offset=payload.offset
    )


@router.post("/link-cuisines", response_model=CuisineLinkResponse)
def link_cuisines(
    payload: Optional[CuisineLinkRequest] = None,
    services: PipelineServices = Depends(get_services),
) -> dict:
    """Backfill cuisine links for one page of imported restaurants."""
    payload = payload or CuisineLinkRequest()
    linker = CuisineLinker(services.db, places=services.places, config=services.config)
    return linker.run(batch_size=payload.batch_size, offset=payload.offset)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app() -> FastAPI:
    app = FastAPI(title="Restaurant Directory Import")
    app.include_router(router)

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        logger.error(f"Database error: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(request: Request, exc: AuthorizationError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(PlacesAPIError)
    async def places_error_handler(request: Request, exc: PlacesAPIError):
        logger.error(f"Import error: {exc}")
        return _error(502, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors())
        return _error(400, f"Invalid or missing parameters: {fields}")

    return app


app = create_app()
