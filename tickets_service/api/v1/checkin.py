"""
Check-in API endpoints for Tickets Service.
Scanners verify a QR payload first and confirm entry as a separate step.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path
from typing import Any, Dict
import logging

from tickets_service.api.dependencies import get_current_user, is_event_host
from tickets_service.core.exceptions import EventNotFoundError, PermissionDeniedError, TicketNotFoundError
from tickets_service.models import Ticket
from tickets_service.services.checkin_service import MESSAGE_NOT_FOUND, checkin_service
from tickets_service.services.event_service import event_service
from tickets_service.services.issuance_service import issuance_service
from tickets_service.schemas.ticketing import (
    ConfirmCheckInResponse,
    TicketResponse,
    VerifyRequest,
    VerifyResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/check-in", tags=["check-in"])


async def _can_view(ticket: Ticket, user: Dict[str, Any]) -> bool:
    if ticket.user_id == user["user_id"]:
        return True
    try:
        event = await event_service.get_event(ticket.event_id)
    except EventNotFoundError:
        return False
    return is_event_host(event, user)


@router.post("/verify", response_model=VerifyResponse)
async def verify_ticket(
    verify_data: VerifyRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Verify scanned QR text without redeeming the ticket.
    Undecodable or unknown payloads come back with valid=false. Tickets are
    only revealed to their holder, the event host and admins; anyone else
    gets the not-found result.
    """
    result = await checkin_service.scan_and_verify(verify_data.payload)
    ticket = result["ticket"]

    if ticket is not None and not await _can_view(ticket, user):
        logger.warning(f"User {user['user_id']} denied verification of ticket {ticket.id}")
        return VerifyResponse(valid=False, state="invalid", message=MESSAGE_NOT_FOUND, ticket=None)

    return VerifyResponse(
        valid=result["valid"],
        state=result["state"],
        message=result["message"],
        ticket=TicketResponse.model_validate(ticket) if ticket is not None else None
    )


@router.post("/{ticket_id}/confirm", response_model=ConfirmCheckInResponse)
async def confirm_check_in(
    ticket_id: str = Path(..., description="Ticket ID"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Redeem a ticket at the door. Host of the ticket's event or admin only.

    Returns:
        success=false when the ticket was already used or storage failed
    """
    try:
        ticket = await issuance_service.get_ticket(ticket_id)
        event = await event_service.get_event(ticket.event_id)
    except (TicketNotFoundError, EventNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found"
        )

    if not is_event_host(event, user):
        logger.warning(f"User {user['user_id']} denied check-in for ticket {ticket_id}")
        raise PermissionDeniedError(
            "Only the event host can check in tickets",
            {"ticket_id": ticket_id}
        )

    confirmed = await checkin_service.confirm_check_in(ticket_id)

    return ConfirmCheckInResponse(
        success=confirmed,
        ticket_id=ticket_id,
        message="Checked in" if confirmed else "Ticket already used or check-in unavailable"
    )
