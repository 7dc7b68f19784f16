"""
Booking service for creating, cancelling and querying seat bookings.
"""

import json
import logging
import secrets
import time
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import transaction
from ..models.base import utc_now
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.booking_history import BookingHistory, BookingAction
from ..models.session import Activity, ActivitySession
from ..schemas.booking import CustomerSnapshot, PaymentInfo
from ..schemas.common import Actor, ActorRole
from ..utils.exceptions import (
    AuthorizationError,
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    InvalidBookingStateError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from .capacity_service import CapacityManager

logger = logging.getLogger(__name__)


def generate_qr_token(prefix: str = "QR") -> str:
    """Build a fresh check-in token: <prefix>-<epoch ms>-<random hex>."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(8)}"


def build_qr_payload(booking: Booking) -> str:
    """JSON document printed in the customer's QR code."""
    return json.dumps(
        {"type": "booking", "qrCode": booking.qr_token, "bookingId": str(booking.id)},
        separators=(",", ":")
    )


class BookingService:
    """Service for managing bookings against session capacity."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.capacity = CapacityManager(session)

    async def create_booking(
        self,
        session_id: UUID,
        seats: int,
        actor: Actor,
        customer: Optional[CustomerSnapshot] = None,
        unit_price: Optional[Decimal] = None,
        payment: Optional[PaymentInfo] = None,
        package_type: Optional[str] = None,
        special_requests: Optional[str] = None
    ) -> Tuple[Booking, str]:
        """
        Reserve seats and record the booking in one transaction.

        Args:
            session_id: Session to book
            seats: Number of seats
            actor: Caller; customers always book for themselves
            customer: Customer snapshot; required when staff book for a walk-in
            unit_price: Catalog price per seat; defaults to the session price
            payment: Payment status and reference from the payment collaborator
            package_type: Optional package chosen by the customer
            special_requests: Optional free-text requests

        Returns:
            The booking and its QR payload

        Raises:
            ValidationError: For a bad seat count, missing customer or missing price
            SessionNotFoundError: When the session does not exist
            SessionInactiveError: When the session is disabled
            CapacityExceededError: When not enough seats are free
        """
        if seats < 1:
            raise ValidationError("Seats must be at least 1", field_errors={"seats": ["must be >= 1"]})
        if seats > self.settings.max_seats_per_booking:
            raise ValidationError(
                f"Cannot book more than {self.settings.max_seats_per_booking} seats at once",
                field_errors={"seats": [f"must be <= {self.settings.max_seats_per_booking}"]}
            )

        snapshot = self._resolve_customer(customer, actor)
        payment = payment or PaymentInfo()

        logger.info(f"Creating booking for customer {snapshot.id}, session {session_id}, seats {seats}")

        async with transaction(self.session):
            await self.capacity.reserve(session_id, seats)

            activity_session = await self._get_session(session_id)

            price = unit_price if unit_price is not None else activity_session.price
            if price is None:
                raise ValidationError(
                    "Unit price is required for sessions without a price",
                    field_errors={"unit_price": ["required"]}
                )
            price = Decimal(price)

            booking = Booking(
                qr_token=generate_qr_token(self.settings.qr_token_prefix),
                session_id=activity_session.id,
                branch_id=activity_session.branch_id,
                activity=activity_session.activity,
                date=activity_session.date,
                time=activity_session.time,
                customer_id=snapshot.id,
                customer_name=snapshot.name,
                customer_email=snapshot.email,
                customer_phone=snapshot.phone,
                seats=seats,
                unit_price=price,
                total_amount=price * seats,
                package_type=package_type,
                special_requests=special_requests,
                payment_status=payment.status,
                payment_reference=payment.reference,
                status=BookingStatus.ACTIVE,
                is_verified=False,
            )
            self.session.add(booking)
            await self.session.flush()

            await self._create_booking_history(
                booking.id,
                BookingAction.CREATED,
                f"Booked {seats} seat(s) on {activity_session.activity.value} "
                f"{activity_session.date} {activity_session.time}",
                actor.id
            )

        log_business_event(
            "booking_created",
            {"booking_id": str(booking.id), "session_id": str(session_id), "seats": seats},
            user_id=actor.id
        )
        logger.info(f"Booking {booking.id} created successfully")
        return booking, build_qr_payload(booking)

    async def cancel_booking(self, booking_id: UUID, actor: Actor, reason: Optional[str] = None) -> Booking:
        """
        Cancel an active booking and return its seats.

        The status flip is a conditional update, so racing cancellations
        release the seats exactly once. Verified bookings may be cancelled;
        their verification record is kept.

        Raises:
            BookingNotFoundError: When the booking does not exist
            AuthorizationError: When the actor may not cancel the booking
            BookingAlreadyCancelledError: When the booking is already cancelled
            InvalidBookingStateError: When the booking is in another final state
        """
        logger.info(f"Cancelling booking {booking_id}")

        async with transaction(self.session):
            booking = await self._get_booking_or_raise(booking_id)
            self._ensure_can_access(booking, actor)

            result = await self.session.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == BookingStatus.ACTIVE)
                .values(status=BookingStatus.CANCELLED, cancelled_at=utc_now())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                booking = await self._get_booking_or_raise(booking_id)
                if booking.status == BookingStatus.CANCELLED:
                    raise BookingAlreadyCancelledError(str(booking_id))
                raise InvalidBookingStateError(str(booking_id), booking.status.value, BookingStatus.ACTIVE.value)

            if booking.session_id is not None:
                await self.capacity.release(booking.session_id, booking.seats)

            history_details = "Booking cancelled"
            if reason:
                history_details += f" - Reason: {reason}"
            await self._create_booking_history(booking.id, BookingAction.CANCELLED, history_details, actor.id)

            booking = await self._get_booking_or_raise(booking_id)

        log_business_event(
            "booking_cancelled",
            {"booking_id": str(booking_id), "seats": booking.seats, "was_verified": booking.is_verified},
            user_id=actor.id
        )
        logger.info(f"Booking {booking_id} cancelled successfully")
        return booking

    async def record_payment(self, booking_id: UUID, payment: PaymentInfo, actor: Actor) -> Booking:
        """
        Record a payment outcome on an active booking.

        Raises:
            BookingNotFoundError: When the booking does not exist
            AuthorizationError: When the actor may not update the booking
            InvalidBookingStateError: When the booking is not active
        """
        async with transaction(self.session):
            booking = await self._get_booking_or_raise(booking_id)
            self._ensure_can_access(booking, actor)

            if booking.status != BookingStatus.ACTIVE:
                raise InvalidBookingStateError(str(booking_id), booking.status.value, BookingStatus.ACTIVE.value)

            previous = booking.payment_status
            booking.payment_status = payment.status
            if payment.reference is not None:
                booking.payment_reference = payment.reference

            await self._create_booking_history(
                booking.id,
                BookingAction.PAYMENT_UPDATED,
                f"Payment {previous.value} -> {payment.status.value}",
                actor.id
            )
            await self.session.flush()

        logger.info(f"Booking {booking_id} payment status set to {payment.status.value}")
        return booking

    async def get_booking(self, booking_id: UUID, actor: Actor) -> Booking:
        """Get a booking the actor is allowed to see."""
        booking = await self._get_booking_or_raise(booking_id)
        self._ensure_can_access(booking, actor)
        return booking

    async def list_bookings(
        self,
        actor: Actor,
        branch_id: Optional[UUID] = None,
        session_id: Optional[UUID] = None,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Booking], int]:
        """
        List bookings visible to the actor, newest first.

        Customers see their own bookings, branch managers those of their
        branch and admins all of them.
        """
        filters = []
        if actor.role == ActorRole.CUSTOMER:
            filters.append(Booking.customer_id == actor.id)
        elif actor.role == ActorRole.BRANCH_MANAGER:
            if branch_id is not None and branch_id != actor.branch_id:
                raise AuthorizationError("You can only view bookings of your own branch")
            filters.append(Booking.branch_id == actor.branch_id)

        if branch_id is not None:
            filters.append(Booking.branch_id == branch_id)
        if session_id is not None:
            filters.append(Booking.session_id == session_id)
        if date is not None:
            filters.append(Booking.date == date)
        if status is not None:
            filters.append(Booking.status == status)

        count_result = await self.session.execute(select(func.count(Booking.id)).where(*filters))
        total = count_result.scalar_one()

        result = await self.session.execute(
            select(Booking)
            .where(*filters)
            .order_by(Booking.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_available_sessions(
        self,
        branch_id: UUID,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        activity: Optional[Activity] = None
    ) -> List[ActivitySession]:
        """
        List active sessions of a branch, by date then time.

        Either date bound may be omitted to leave that side of the range open.
        Sold-out sessions are included so callers can show them as full.
        """
        query = select(ActivitySession).where(
            ActivitySession.branch_id == branch_id,
            ActivitySession.is_active.is_(True)
        )
        if date_from is not None:
            query = query.where(ActivitySession.date >= date_from)
        if date_to is not None:
            query = query.where(ActivitySession.date <= date_to)
        if activity is not None:
            query = query.where(ActivitySession.activity == activity)

        result = await self.session.execute(
            query
            .order_by(ActivitySession.date.asc(), ActivitySession.time.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_booking_history(self, booking_id: UUID, actor: Actor) -> List[BookingHistory]:
        """Get the audit trail of a booking, oldest first."""
        await self.get_booking(booking_id, actor)

        result = await self.session.execute(
            select(BookingHistory)
            .where(BookingHistory.booking_id == booking_id)
            .order_by(BookingHistory.created_at.asc())
        )
        return list(result.scalars().all())

    # Private helper methods

    def _resolve_customer(self, customer: Optional[CustomerSnapshot], actor: Actor) -> CustomerSnapshot:
        """Customers book as themselves; staff must name the customer."""
        if actor.role == ActorRole.CUSTOMER:
            name = (customer.name if customer else None) or actor.name
            email = (customer.email if customer else None) or actor.email
            phone = (customer.phone if customer else None) or actor.phone
            if not name or not email:
                raise ValidationError(
                    "Customer name and email are required",
                    field_errors={"customer": ["name and email are required"]}
                )
            return CustomerSnapshot(id=actor.id, name=name, email=email, phone=phone)

        if customer is None:
            raise ValidationError(
                "Customer details are required when booking on behalf of a customer",
                field_errors={"customer": ["required"]}
            )
        return customer.model_copy(update={"id": customer.id or customer.email})

    def _ensure_can_access(self, booking: Booking, actor: Actor) -> None:
        if actor.role == ActorRole.CUSTOMER:
            if booking.customer_id != actor.id:
                raise AuthorizationError("You can only manage your own bookings")
        elif not actor.can_manage_branch(booking.branch_id):
            raise AuthorizationError("You can only manage bookings of your own branch")

    async def _get_session(self, session_id: UUID) -> ActivitySession:
        result = await self.session.execute(
            select(ActivitySession)
            .where(ActivitySession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _get_booking_or_raise(self, booking_id: UUID) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def _create_booking_history(
        self,
        booking_id: UUID,
        action: BookingAction,
        details: str,
        performed_by: Optional[str] = None
    ) -> None:
        """Create a booking history entry."""
        history = BookingHistory(
            booking_id=booking_id,
            action=action,
            details=details,
            performed_by=performed_by
        )
        self.session.add(history)
