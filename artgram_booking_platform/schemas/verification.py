"""
Pydantic schemas for QR check-in.
"""

import enum
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus, PaymentStatus
from ..models.session import Activity


class VerificationOutcome(str, enum.Enum):
    """Result of presenting a QR code."""
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"


class VerifyRequest(BaseModel):
    """Scanned QR content: a bare token or the JSON payload printed on the ticket."""

    qr_code: str = Field(..., max_length=2048, description="Raw scanner output")


class BookingSummary(BaseModel):
    """What the door staff sees after a scan."""

    booking_id: UUID
    session_id: Optional[UUID]
    branch_id: UUID
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    activity: Optional[Activity]
    date: Optional[str]
    time: Optional[str]
    seats: int
    status: BookingStatus
    payment_status: PaymentStatus
    is_verified: bool


class VerificationResponse(BaseModel):
    """Outcome of a verification attempt."""

    outcome: VerificationOutcome
    message: str
    booking: BookingSummary
    verified_at: datetime
    verified_by: str
