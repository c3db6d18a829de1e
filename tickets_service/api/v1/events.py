"""
Event API endpoints for Tickets Service.
Handles event creation, search, capacity and host dashboards.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from typing import Any, Dict, List, Optional
import logging

from tickets_service.api.dependencies import get_current_user, get_hosted_event
from tickets_service.core.exceptions import TicketingError
from tickets_service.models import Event
from tickets_service.services.capacity_service import capacity_service
from tickets_service.services.event_service import event_service
from tickets_service.services.issuance_service import issuance_service
from tickets_service.schemas.ticketing import (
    CapacityUpdate,
    CapacityUpdateResponse,
    CategoryEnum,
    DateFilterEnum,
    EventCreate,
    EventResponse,
    EventStatsResponse,
    TicketResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Create a new event hosted by the caller.

    Args:
        event_data: Event creation data
        user: Authenticated user

    Returns:
        Created event
    """
    try:
        event = await event_service.create_event(event_data.model_dump(), host=user)
        return EventResponse.model_validate(event)

    except TicketingError:
        raise
    except Exception as e:
        logger.error(f"Event creation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create event"
        )


@router.get("/", response_model=List[EventResponse])
async def search_events(
    q: Optional[str] = Query(None, max_length=200, description="Text to match"),
    category: CategoryEnum = Query(CategoryEnum.ALL, description="Category filter"),
    date: DateFilterEnum = Query(DateFilterEnum.ALL, description="Date filter"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Search locally stored events.

    Returns:
        Matching events ordered by date
    """
    try:
        events = await event_service.search_events(
            query=q,
            category=category.value,
            date_filter=date.value
        )
        return [EventResponse.model_validate(event) for event in events]

    except TicketingError:
        raise
    except Exception as e:
        logger.error(f"Event search failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search events"
        )


@router.get("/hosting", response_model=List[EventResponse])
async def get_hosted_events(user: Dict[str, Any] = Depends(get_current_user)):
    """Events created by the caller."""
    events = await event_service.list_hosted_events(user["user_id"])
    return [EventResponse.model_validate(event) for event in events]


@router.get("/attending", response_model=List[EventResponse])
async def get_attending_events(user: Dict[str, Any] = Depends(get_current_user)):
    """Events the caller holds tickets for."""
    events = await event_service.list_attending_events(user["user_id"])
    return [EventResponse.model_validate(event) for event in events]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str = Path(..., description="Event ID"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get a specific event by ID.

    Raises:
        EventNotFoundError: If the event does not exist
    """
    snapshot = await event_service.get_event_snapshot(event_id)
    return EventResponse.model_validate(snapshot)


@router.put("/{event_id}/capacity", response_model=CapacityUpdateResponse)
async def update_capacity(
    capacity: CapacityUpdate,
    event: Event = Depends(get_hosted_event)
):
    """
    Change an event's capacity. Host or admin only.

    Lowering capacity below the seats already sold is accepted; no further
    tickets are sold until capacity is raised again.
    """
    updated = await capacity_service.set_event_capacity(event.id, capacity.max_seats)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )

    return CapacityUpdateResponse(success=True, event_id=event.id, max_seats=capacity.max_seats)


@router.get("/{event_id}/stats", response_model=EventStatsResponse)
async def get_event_stats(event: Event = Depends(get_hosted_event)):
    """Sales and check-in stats for the host dashboard."""
    stats = await capacity_service.get_event_stats(event.id)
    return EventStatsResponse(**stats)


@router.get("/{event_id}/tickets", response_model=List[TicketResponse])
async def get_event_tickets(event: Event = Depends(get_hosted_event)):
    """Tickets issued for an event. Host or admin only."""
    tickets = await issuance_service.list_event_tickets(event.id)
    return [TicketResponse.model_validate(ticket) for ticket in tickets]
