"""
Booking model for seat reservations against activity sessions.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .session import Activity, activity_type

if TYPE_CHECKING:
    from .session import ActivitySession
    from .booking_history import BookingHistory


class BookingStatus(enum.Enum):
    """Enumeration for booking status."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(enum.Enum):
    """Payment state as reported by the payment collaborator."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Booking(Base):
    """A customer's reservation of seats on one session, with its check-in token."""

    __tablename__ = "bookings"

    # Sole credential presented at check-in
    qr_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # Null only for legacy free-form bookings
    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Snapshot of the session slot
    branch_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    activity: Mapped[Optional[Activity]] = mapped_column(activity_type, nullable=True)
    date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    # Snapshot of the customer at booking time
    customer_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Booking details
    seats: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    package_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Payment info
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, values_callable=_enum_values, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, values_callable=_enum_values, name="booking_status"),
        default=BookingStatus.ACTIVE,
        nullable=False,
        index=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Check-in
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    session: Mapped[Optional["ActivitySession"]] = relationship("ActivitySession", back_populates="bookings")

    booking_history: Mapped[List["BookingHistory"]] = relationship(
        "BookingHistory",
        back_populates="booking",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("seats > 0", name="ck_bookings_seats_positive"),
        CheckConstraint("total_amount >= 0", name="ck_bookings_total_amount_non_negative"),
        CheckConstraint(
            "NOT is_verified OR (verified_at IS NOT NULL AND verified_by IS NOT NULL)",
            name="ck_bookings_verification_complete"
        ),
    )

    @property
    def is_active(self) -> bool:
        """Check if the booking still holds its seats."""
        return self.status == BookingStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, session_id={self.session_id}, "
            f"seats={self.seats}, status={self.status.value}, verified={self.is_verified})>"
        )
