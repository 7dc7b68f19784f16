"""
FastAPI routes for booking management.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.booking import BookingStatus
from ..schemas.booking import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingHistoryListResponse,
    BookingHistoryResponse,
    BookingListResponse,
    BookingResponse,
    CancelBookingResponse,
    CreateBookingResponse,
    PaymentUpdateRequest,
)
from ..schemas.common import Actor
from ..services.booking_service import BookingService
from ..utils.dependencies import get_current_actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=CreateBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Book seats on a session.

    Seats are reserved atomically; when the session has fewer free seats
    than requested the call fails with 409 and nothing is stored.
    """
    booking, qr_payload = await BookingService(db).create_booking(
        session_id=request.session_id,
        seats=request.seats,
        actor=actor,
        customer=request.customer,
        unit_price=request.unit_price,
        payment=request.payment,
        package_type=request.package_type,
        special_requests=request.special_requests,
    )
    return CreateBookingResponse(
        booking=BookingResponse.model_validate(booking),
        qr_payload=qr_payload,
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    branch_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    date: Optional[str] = Query(None, description="Session date (YYYY-MM-DD)"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """List bookings visible to the caller, newest first."""
    bookings, total = await BookingService(db).list_bookings(
        actor,
        branch_id=branch_id,
        session_id=session_id,
        date=date,
        status=booking_status,
        limit=limit,
        offset=offset,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Get a single booking."""
    return await BookingService(db).get_booking(booking_id, actor)


@router.get("/{booking_id}/history", response_model=BookingHistoryListResponse)
async def get_booking_history(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Get the audit trail of a booking."""
    history = await BookingService(db).get_booking_history(booking_id, actor)
    return BookingHistoryListResponse(
        history=[BookingHistoryResponse.model_validate(h) for h in history],
        total=len(history),
    )


@router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: UUID,
    request: Optional[BookingCancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a booking and return its seats to the session.

    Cancelling twice fails with 409 and releases nothing the second time.
    """
    booking = await BookingService(db).cancel_booking(
        booking_id, actor, reason=request.reason if request else None
    )
    return CancelBookingResponse(booking=BookingResponse.model_validate(booking))


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def record_payment(
    booking_id: UUID,
    request: PaymentUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Record a payment outcome reported by the payment provider."""
    return await BookingService(db).record_payment(booking_id, request, actor)
