"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import FastAPI

from facility_booking.controllers.auth_controller import router as auth_router
from facility_booking.controllers.booking_controller import router as booking_router
from facility_booking.controllers.facility_controller import router as facility_router
from facility_booking.domain.models import Localized, Schedule, ScheduleKind
from facility_booking.repository.booking_store import BookingStore
from facility_booking.repository.data_repository import DataRepository
from facility_booking.services.auth_service import AuthService
from facility_booking.services.booking_service import BookingService
from facility_booking.services.catalog_service import FacilityCatalogService
from facility_booking.services.equipment_service import EquipmentRegistryService
from facility_booking.utils.config import Settings, get_settings
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    The booking service is the only component holding the booking store.
    """
    settings = settings or get_settings()

    # --- Repositories (SQLite connection factories over one database file) ---
    repository = DataRepository(settings)
    booking_store = BookingStore(settings)

    # --- Services ---
    booking_service = BookingService(
        store=booking_store,
        room_directory=repository,
        settings=settings,
    )
    catalog_service = FacilityCatalogService(
        repository=repository,
        booking_service=booking_service,
        settings=settings,
    )
    equipment_service = EquipmentRegistryService(repository=repository, settings=settings)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(auth_router)
    app.include_router(facility_router)
    app.include_router(booking_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.booking_service = booking_service
    app.state.catalog_service = catalog_service
    app.state.equipment_service = equipment_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; the demo booking is proposed through
    the booking service like any other booking.
    """
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository
    booking_service: BookingService = app.state.booking_service

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo facility (skipped if catalog not empty)")
        if repository.seed_demo_facility():
            start = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
            booking_service.propose_booking(
                Schedule(
                    id="s_physio",
                    room_id="r_therapy_101",
                    title=Localized("Physio Session", "جلسة علاج طبيعي"),
                    kind=ScheduleKind.THERAPY,
                    start=start,
                    end=start + timedelta(hours=1),
                ),
                can_manage=True,
            )

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
