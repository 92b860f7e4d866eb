"""FastAPI application for AppointmentHub."""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from appointment_hub import __version__
from appointment_hub.api.middleware import APIKeyMiddleware, RequestLoggingMiddleware
from appointment_hub.api.routes import (
    appointments,
    availability,
    health,
    notifications,
    reschedules,
    slots,
)
from appointment_hub.config import Settings, get_settings
from appointment_hub.core.stores import (
    AppointmentStore,
    AvailabilityStore,
    InMemoryAppointmentStore,
    InMemoryAvailabilityStore,
    InMemoryNotificationStore,
    NotificationStore,
)
from appointment_hub.errors import (
    NotFoundError,
    PersistenceError,
    RescheduleStateError,
    SlotConflictError,
    ValidationError,
)
from appointment_hub.observability import BookingEventLogger
from appointment_hub.scheduling.slots import SlotGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting AppointmentHub API")

    settings: Settings = app.state.settings
    owns_engine = False

    if app.state.appointment_store is None or app.state.notification_store is None:
        if settings.storage_backend == "memory":
            app.state.appointment_store = InMemoryAppointmentStore()
            app.state.notification_store = InMemoryNotificationStore()
        else:
            from appointment_hub.core.database import get_session_factory, init_db
            from appointment_hub.core.repository import (
                SqlAppointmentStore,
                SqlAvailabilityStore,
                SqlNotificationStore,
            )

            await init_db()
            factory = get_session_factory()
            app.state.appointment_store = SqlAppointmentStore(factory)
            app.state.notification_store = SqlNotificationStore(factory)
            app.state.availability_store = (
                app.state.availability_store or SqlAvailabilityStore(factory)
            )
            owns_engine = True

    if app.state.availability_store is None:
        app.state.availability_store = InMemoryAvailabilityStore()

    logger.info(f"AppointmentHub API started (storage={settings.storage_backend})")

    yield

    logger.info("Shutting down AppointmentHub API")
    if owns_engine:
        from appointment_hub.core.database import dispose_engine

        await dispose_engine()


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    appointment_store: Optional[AppointmentStore] = None,
    notification_store: Optional[NotificationStore] = None,
    availability_store: Optional[AvailabilityStore] = None,
    event_logger: Optional[BookingEventLogger] = None,
    clock: Callable[[], date] = date.today,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="AppointmentHub API",
        description="Appointment slots, bookings and reschedule confirmations",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.appointment_store = appointment_store
    app.state.notification_store = notification_store
    app.state.availability_store = availability_store
    app.state.slot_generator = SlotGenerator.from_settings(settings)
    app.state.event_logger = event_logger or BookingEventLogger(
        log_dir=settings.event_log_dir, enabled=settings.event_log_enabled
    )
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    if settings.api_key:
        app.add_middleware(APIKeyMiddleware, api_key=settings.api_key)

    app.include_router(health.router, tags=["health"])
    app.include_router(slots.router, prefix="/api/v1", tags=["slots"])
    app.include_router(availability.router, prefix="/api/v1", tags=["availability"])
    app.include_router(appointments.router, prefix="/api/v1", tags=["appointments"])
    app.include_router(reschedules.router, prefix="/api/v1", tags=["reschedules"])
    app.include_router(notifications.router, prefix="/api/v1", tags=["notifications"])

    # Exception handlers

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error(422, "Validation failed", exc)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, "Not found", exc)

    @app.exception_handler(SlotConflictError)
    async def slot_conflict_handler(request: Request, exc: SlotConflictError):
        return _error(409, "Slot unavailable", exc)

    @app.exception_handler(RescheduleStateError)
    async def state_error_handler(request: Request, exc: RescheduleStateError):
        return _error(409, "Invalid state", exc)

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"Persistence failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "error": "Storage temporarily unavailable, please try again",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )

    return app
