"""
Main API router for Tickets Service.
Combines all API endpoints and provides health checks.
"""

from fastapi import APIRouter
import logging

from tickets_service.api.dependencies import check_service_health
from tickets_service.schemas.ticketing import HealthCheckResponse

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# Create main router
router = APIRouter(prefix="/api/v1")

# Include sub-routers
from tickets_service.api.v1.events import router as events_router
from tickets_service.api.v1.tickets import router as tickets_router
from tickets_service.api.v1.checkin import router as checkin_router
from tickets_service.api.v1.preferences import router as preferences_router

router.include_router(events_router)
router.include_router(tickets_router)
router.include_router(checkin_router)
router.include_router(preferences_router)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint for the tickets service.

    Returns:
        Service health status
    """
    try:
        health_status = await check_service_health()

        return HealthCheckResponse(
            status=health_status["overall"],
            version=SERVICE_VERSION,
            storage=health_status["storage"],
            database=health_status["database"],
            redis=health_status["redis"]
        )

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthCheckResponse(
            status="unhealthy",
            version=SERVICE_VERSION,
            storage="unknown",
            database="unknown",
            redis="unknown"
        )


@router.get("/info")
async def service_info():
    """
    Service information endpoint.

    Returns:
        Service information and capabilities
    """
    return {
        "service": "Tickets Service",
        "version": SERVICE_VERSION,
        "description": "Event ticketing with capacity tracking and QR check-in",
        "capabilities": [
            "Event hosting and local search",
            "Ticket issuance with capacity enforcement",
            "Signed QR payloads",
            "Two-phase check-in",
            "User preference sync"
        ],
        "endpoints": {
            "events": "/api/v1/events",
            "tickets": "/api/v1/tickets",
            "check_in": "/api/v1/check-in",
            "preferences": "/api/v1/preferences",
            "health": "/api/v1/health",
            "docs": "/docs"
        }
    }
