"""
Main FastAPI application for Tickets Service.
Handles application startup, middleware, and routing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time

from tickets_service.core.config import config
from tickets_service.core.exceptions import TicketingError
from tickets_service.db.redis_client import redis_manager
from tickets_service.stores import close_storage, initialize_storage
from tickets_service.api.v1.router import router as api_router, SERVICE_VERSION

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def _redis_required() -> bool:
    cache_config = await config.get_cache_config()
    consistency_config = await config.get_consistency_config()
    return cache_config["enabled"] or consistency_config["enable_distributed_locks"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Tickets Service...")

    use_redis = False
    try:
        await initialize_storage()
        logger.info("Ticketing storage initialized")

        use_redis = await _redis_required()
        if use_redis:
            await redis_manager.initialize()
            logger.info("Redis manager initialized")

        logger.info("Tickets Service started successfully")

    except Exception as e:
        logger.error(f"Failed to start Tickets Service: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Tickets Service...")

    try:
        await close_storage()
        logger.info("Ticketing storage closed")

        if use_redis:
            await redis_manager.close()
            logger.info("Redis connections closed")

        await config.close()
        logger.info("Tickets Service shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


def error_response(status_code: int, error_code: str, message: Any,
                   details: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """JSON error body shared by every exception handler."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "error_message": message,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat()
        },
        headers=headers
    )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    application = FastAPI(
        title="Tickets Service",
        description="Event ticketing with capacity tracking and QR check-in for EventHorizon",
        version=SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add request processing time to response headers."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @application.exception_handler(TicketingError)
    async def ticketing_exception_handler(request: Request, exc: TicketingError):
        """Map domain errors to their HTTP status and error code."""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
        return error_response(exc.status_code, exc.error_code, exc.message, exc.details)

    @application.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"{request.method} {request.url.path} returned {exc.status_code}: {exc.detail}")
        return error_response(exc.status_code, "HTTP_ERROR", exc.detail, headers=exc.headers)

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Last-resort handler; the client only sees a generic message."""
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return error_response(500, "INTERNAL_SERVER_ERROR", "An internal server error occurred")

    application.include_router(api_router)

    @application.get("/")
    async def root():
        """Root endpoint with service information."""
        return {
            "service": "Tickets Service",
            "version": SERVICE_VERSION,
            "status": "running",
            "endpoints": {
                "api": "/api/v1",
                "health": "/api/v1/health",
                "docs": "/docs",
                "redoc": "/redoc"
            }
        }

    @application.get("/health")
    async def simple_health_check():
        """Simple health check endpoint."""
        return {"status": "healthy", "service": "tickets"}

    return application


# Create FastAPI application
app = create_app()
