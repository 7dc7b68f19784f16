"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus, PaymentStatus
from ..models.booking_history import BookingAction
from ..models.session import Activity


class CustomerSnapshot(BaseModel):
    """Customer details copied onto the booking at creation time."""

    id: Optional[str] = Field(None, description="Identity-service user ID; defaults to the email for walk-ins")
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class PaymentInfo(BaseModel):
    """Payment state as reported by the payment collaborator."""

    status: PaymentStatus = Field(PaymentStatus.PENDING, description="Payment status")
    reference: Optional[str] = Field(None, max_length=255, description="Opaque transaction reference")


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    session_id: UUID = Field(..., description="ID of the session to book")
    seats: int = Field(..., ge=1, description="Number of seats to book")
    unit_price: Optional[Decimal] = Field(
        None, ge=0, description="Price per seat from the catalog; defaults to the session price"
    )
    customer: Optional[CustomerSnapshot] = Field(
        None, description="Customer details; taken from the caller when omitted"
    )
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    package_type: Optional[str] = Field(None, max_length=50)
    special_requests: Optional[str] = Field(None, max_length=1000)


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: Optional[str] = Field(None, max_length=500, description="Optional cancellation reason")


class PaymentUpdateRequest(PaymentInfo):
    """Schema for recording a payment outcome."""
    pass


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    qr_token: str
    session_id: Optional[UUID]
    branch_id: UUID
    activity: Optional[Activity]
    date: Optional[str]
    time: Optional[str]
    customer_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    seats: int
    unit_price: Decimal
    total_amount: Decimal
    package_type: Optional[str] = None
    special_requests: Optional[str] = None
    payment_status: PaymentStatus
    payment_reference: Optional[str]
    status: BookingStatus
    cancelled_at: Optional[datetime]
    is_verified: bool
    verified_at: Optional[datetime]
    verified_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    """Schema for booking list responses."""

    bookings: List[BookingResponse]
    total: int
    limit: int
    offset: int


class CreateBookingResponse(BaseModel):
    """Response for successful booking creation."""

    booking: BookingResponse
    qr_payload: str = Field(..., description="JSON string to encode in the customer's QR code")
    message: str = "Booking created successfully"


class CancelBookingResponse(BaseModel):
    """Response for successful booking cancellation."""

    booking: BookingResponse
    message: str = "Booking cancelled successfully"


class BookingHistoryResponse(BaseModel):
    """Schema for booking history entries."""

    id: UUID
    booking_id: UUID
    action: BookingAction
    details: Optional[str]
    performed_by: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingHistoryListResponse(BaseModel):
    """Schema for booking history list responses."""

    history: List[BookingHistoryResponse]
    total: int


class SessionRosterResponse(BaseModel):
    """Bookings holding seats on one session."""

    session_id: UUID
    total_seats: int
    booked_seats: int
    available_seats: int
    verified_seats: int
    bookings: List[BookingResponse]
