"""
API dependencies for Tickets Service.
Handles authentication, authorization, and common dependencies.
"""

from typing import Dict, Any
from fastapi import Depends, HTTPException, status, Path
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import logging

from tickets_service.core.config import config
from tickets_service.core.exceptions import PermissionDeniedError
from tickets_service.db.database import db_manager
from tickets_service.db.redis_client import redis_manager
from tickets_service.models import Event
from tickets_service.services.event_service import event_service
from tickets_service.stores import get_storage

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()


class AuthenticationError(Exception):
    """Custom exception for authentication errors."""
    pass


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """
    Extract and validate the caller from a JWT bearer token.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Dictionary with user_id, name, email and role

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        jwt_secret = await config.get_jwt_secret()
        jwt_algorithm = await config.get_jwt_algorithm()

        payload = jwt.decode(
            credentials.credentials,
            jwt_secret,
            algorithms=[jwt_algorithm]
        )

        user_id = payload.get("user_id")
        if not user_id:
            raise AuthenticationError("Invalid token: missing user_id")

        return {
            "user_id": str(user_id),
            "name": payload.get("name") or "",
            "email": payload.get("email"),
            "role": payload.get("role") or "user",
        }

    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"


def is_event_host(event: Event, user: Dict[str, Any]) -> bool:
    """Admins act as host of every event."""
    return is_admin(user) or (event.creator_id is not None and event.creator_id == user["user_id"])


async def get_hosted_event(
    event_id: str = Path(..., description="Event ID"),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Event:
    """
    Resolve an event the caller hosts.

    Raises:
        EventNotFoundError: If the event does not exist
        PermissionDeniedError: If the caller is not its host
    """
    event = await event_service.get_event(event_id)

    if not is_event_host(event, user):
        logger.warning(f"User {user['user_id']} denied host access to event {event_id}")
        raise PermissionDeniedError(
            "Only the event host can perform this action",
            {"event_id": event_id}
        )
    return event


async def check_service_health() -> Dict[str, Any]:
    """
    Check the health of all service dependencies.

    Returns:
        Dictionary with health status of all components
    """
    health_status = {
        "storage": "unknown",
        "database": "not_configured",
        "redis": "not_configured",
        "overall": "unknown"
    }

    try:
        storage = get_storage()
        health_status["storage"] = storage.name if storage.health_check() else "unhealthy"
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")
        health_status["storage"] = "unhealthy"

    if db_manager.is_initialized:
        health_status["database"] = "healthy" if db_manager.health_check() else "unhealthy"

    if redis_manager._initialized:
        redis_healthy = await redis_manager.health_check()
        health_status["redis"] = "healthy" if redis_healthy else "unhealthy"

    unhealthy = [key for key in ("storage", "database", "redis") if health_status[key] == "unhealthy"]
    health_status["overall"] = "unhealthy" if unhealthy else "healthy"

    return health_status
