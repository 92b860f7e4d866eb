"""Health check endpoints."""

from fastapi import APIRouter, Request

from appointment_hub import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "service": "appointment-hub",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Readiness check - verifies the stores can be read."""
    errors = []

    store = request.app.state.appointment_store
    if store is None:
        errors.append("Appointment store not initialised")
    else:
        try:
            await store.fetch_appointments(provider_id="__readiness__")
        except Exception as e:
            errors.append(f"Appointment store check failed: {e}")

    if request.app.state.notification_store is None:
        errors.append("Notification store not initialised")

    if errors:
        return {
            "status": "not_ready",
            "errors": errors,
        }

    return {
        "status": "ready",
        "storage": request.app.state.settings.storage_backend,
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - basic process health."""
    return {"status": "alive"}
