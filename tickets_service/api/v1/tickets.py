"""
Ticket API endpoints for Tickets Service.
Handles joining events and retrieving issued tickets.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path
from fastapi.responses import Response
from typing import Any, Dict, List
import logging

from tickets_service.api.dependencies import get_current_user, is_event_host
from tickets_service.core.exceptions import EventNotFoundError, TicketingError
from tickets_service.models import Ticket
from tickets_service.services.event_service import event_service
from tickets_service.services.issuance_service import issuance_service
from tickets_service.services.qr_codec import render_svg
from tickets_service.schemas.ticketing import (
    JoinEventRequest,
    JoinEventResponse,
    TicketResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


async def _check_ticket_access(ticket: Ticket, user: Dict[str, Any]):
    """Owner, event host and admins may read a ticket."""
    if ticket.user_id == user["user_id"]:
        return
    try:
        event = await event_service.get_event(ticket.event_id)
    except EventNotFoundError:
        event = None
    if event is None or not is_event_host(event, user):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found or access denied"
        )


@router.post("/join", response_model=JoinEventResponse, status_code=status.HTTP_201_CREATED)
async def join_event(
    join_data: JoinEventRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Join an event and receive a ticket.

    Args:
        join_data: Event id and, for events not stored yet, their details
        user: Authenticated user

    Returns:
        Issued ticket with its QR payload

    Raises:
        EventNotFoundError, DuplicateTicketError, SoldOutError, StorageError
    """
    try:
        ticket = await issuance_service.join_event(
            user=user,
            event_id=join_data.event_id,
            external_event=join_data.event.model_dump() if join_data.event else None
        )

        return JoinEventResponse(
            success=True,
            message="Ticket issued successfully",
            ticket=TicketResponse.model_validate(ticket)
        )

    except TicketingError:
        raise
    except Exception as e:
        logger.error(f"Join event failed for user {user['user_id']}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to issue ticket"
        )


@router.get("/", response_model=List[TicketResponse])
async def get_user_tickets(user: Dict[str, Any] = Depends(get_current_user)):
    """Tickets held by the caller, newest first."""
    tickets = await issuance_service.list_user_tickets(user["user_id"])
    return [TicketResponse.model_validate(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str = Path(..., description="Ticket ID"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get a specific ticket by ID.

    Raises:
        HTTPException: If the ticket is not found or access is denied
    """
    ticket = await issuance_service.get_ticket(ticket_id)
    await _check_ticket_access(ticket, user)
    return TicketResponse.model_validate(ticket)


@router.get("/{ticket_id}/qr")
async def get_ticket_qr(
    ticket_id: str = Path(..., description="Ticket ID"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """QR image for a ticket as SVG."""
    ticket = await issuance_service.get_ticket(ticket_id)
    await _check_ticket_access(ticket, user)

    if not ticket.qr_code_data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket has no QR payload"
        )

    return Response(content=render_svg(ticket.qr_code_data), media_type="image/svg+xml")
