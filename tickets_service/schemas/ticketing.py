"""
Pydantic schemas for Tickets Service.
Handles request/response validation and serialization.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum


class TicketStatusEnum(str, Enum):
    """Ticket status enumeration for API."""
    ACTIVE = "active"
    USED = "used"


class CategoryEnum(str, Enum):
    ALL = "all"
    MUSIC = "music"
    TECH = "tech"
    FOOD = "food"
    ARTS = "arts"
    SPORTS = "sports"


class DateFilterEnum(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEKEND = "weekend"
    WEEK = "week"
    NEXT_7_DAYS = "next7days"
    MONTH = "month"


# Request schemas
class EventCreate(BaseModel):
    """Schema for a host creating an event."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: str = Field("", max_length=10000, description="Event description")
    location: str = Field("", max_length=500, description="Venue or address")
    category: Optional[str] = Field(None, max_length=50, description="Event category")
    date: Optional[str] = Field(None, max_length=100, description="Display date text")
    iso_date: Optional[datetime] = Field(None, description="Machine-readable start time")
    image_url: Optional[str] = Field(None, max_length=1000)
    source_url: Optional[str] = Field(None, max_length=1000)
    price_value: Decimal = Field(Decimal("0.00"), ge=0, description="Ticket price, 0 for free events")
    max_seats: Optional[int] = Field(None, ge=0, description="Capacity, empty for no limit")

    @field_validator('price_value')
    @classmethod
    def validate_price(cls, v):
        """Validate price has at most 2 decimal places."""
        if v.as_tuple().exponent < -2:
            raise ValueError('Price cannot have more than 2 decimal places')
        return v

    @field_validator('category')
    @classmethod
    def normalize_category(cls, v):
        return v.strip().lower() if v else v


class ExternalEventData(EventCreate):
    """Details of an externally discovered event, used to create it on its first sale."""


class JoinEventRequest(BaseModel):
    """Schema for joining an event."""

    event_id: Optional[str] = Field(None, max_length=64, description="Event to join")
    event: Optional[ExternalEventData] = Field(None, description="External event details for events not yet stored")

    @field_validator('event_id')
    @classmethod
    def validate_event_id(cls, v):
        if v is not None and not v.strip():
            raise ValueError('event_id cannot be blank')
        return v

    @model_validator(mode='after')
    def require_event_reference(self):
        """Either an event id or external event details must be given."""
        if not self.event_id and self.event is None:
            raise ValueError('Either event_id or event details are required')
        return self


class CapacityUpdate(BaseModel):
    """Schema for a host changing an event's capacity."""

    max_seats: Optional[int] = Field(..., ge=0, description="New capacity, null for no limit")


class VerifyRequest(BaseModel):
    """Schema for submitting scanned QR text."""

    payload: str = Field(..., max_length=4096, description="Text decoded from the QR image")


class PreferencesUpdate(BaseModel):
    """Schema for syncing user preferences. Omitted fields are left unchanged."""

    saved_events: Optional[List[Dict[str, Any]]] = None
    reminders: Optional[List[str]] = None
    history: Optional[List[Dict[str, Any]]] = None


# Response schemas
class EventResponse(BaseModel):
    """Schema for event response."""

    id: str
    title: str
    description: str
    location: str
    category: Optional[str]
    date: Optional[str]
    iso_date: Optional[datetime]
    image_url: Optional[str]
    source_url: Optional[str]
    is_user_created: bool
    price_value: float
    max_seats: Optional[int]
    sold_seats: int
    creator_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    """Schema for ticket response."""

    id: str
    legacy_id: Optional[str] = None
    event_id: str
    user_id: str
    user_name: str
    qr_code_data: Optional[str]
    status: TicketStatusEnum
    purchase_date: datetime
    redeemed_at: Optional[datetime]
    seat_number: Optional[int]
    price_paid: float

    @field_validator('status', mode='before')
    @classmethod
    def unwrap_status(cls, v):
        return getattr(v, "value", v)

    class Config:
        from_attributes = True


class JoinEventResponse(BaseModel):
    """Schema for join event response."""

    success: bool
    message: str
    ticket: TicketResponse


class CapacityUpdateResponse(BaseModel):
    success: bool
    event_id: str
    max_seats: Optional[int]


class EventStatsResponse(BaseModel):
    """Schema for host dashboard stats."""

    event_id: str
    sold_seats: int
    max_seats: Optional[int]
    seats_left: Optional[int]
    is_sold_out: bool
    revenue: float
    attendee_count: int
    checked_in_count: int


class VerifyResponse(BaseModel):
    """Schema for scan verification result."""

    valid: bool
    state: str = Field(..., description="valid, used or invalid")
    message: str
    ticket: Optional[TicketResponse] = None


class ConfirmCheckInResponse(BaseModel):
    success: bool
    ticket_id: str
    message: str


class PreferencesResponse(BaseModel):
    user_id: str
    saved_events: List[Dict[str, Any]] = []
    reminders: List[str] = []
    history: List[Dict[str, Any]] = []
    updated_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error_code: str
    error_message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    timestamp: datetime = Field(default_factory=datetime.now)
    version: str
    storage: str
    database: str
    redis: str
