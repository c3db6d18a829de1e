"""
Preferences API endpoints for Tickets Service.
"""

from fastapi import APIRouter, Depends
from typing import Any, Dict
import logging

from tickets_service.api.dependencies import get_current_user
from tickets_service.services.preferences_service import preferences_service
from tickets_service.schemas.ticketing import PreferencesResponse, PreferencesUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("/", response_model=PreferencesResponse)
async def get_preferences(user: Dict[str, Any] = Depends(get_current_user)):
    """Saved events, reminders and history for the caller."""
    preferences = await preferences_service.get_preferences(user["user_id"])
    return PreferencesResponse(**preferences)


@router.put("/", response_model=PreferencesResponse)
async def sync_preferences(
    update: PreferencesUpdate,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Merge the supplied lists into the caller's stored preferences."""
    preferences = await preferences_service.sync_preferences(
        user["user_id"],
        update.model_dump(exclude_none=True)
    )
    return PreferencesResponse(**preferences)
