"""
Activity session model: one bookable time-slot at a branch with seat capacity.
"""

import enum
import uuid
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .branch import Branch
    from .booking import Booking


class Activity(enum.Enum):
    """Activities a branch can schedule."""
    SLIME = "slime"
    TUFTING = "tufting"


# Shared column type so PostgreSQL creates the enum once
activity_type = Enum(Activity, values_callable=lambda e: [m.value for m in e], name="activity")


class ActivitySession(Base):
    """
    A bookable instance of an activity at a branch on a date and time.

    Seat counters (booked_seats, available_seats, total_seats) are written
    only through CapacityManager.
    """

    __tablename__ = "sessions"

    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("branches.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Branch-local calendar date and wall-clock time, stored as text
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    activity: Mapped[Activity] = mapped_column(activity_type, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Capacity management
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    booked_seats: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    type: Mapped[str] = mapped_column(String(100), nullable=False)
    age_group: Mapped[str] = mapped_column(String(50), nullable=False)

    # Informational only; the booking fixes its own price
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    branch: Mapped["Branch"] = relationship("Branch", back_populates="sessions")
    bookings: Mapped[List["Booking"]] = relationship("Booking", back_populates="session")

    __table_args__ = (
        CheckConstraint("total_seats > 0", name="ck_sessions_total_seats_positive"),
        CheckConstraint("booked_seats >= 0", name="ck_sessions_booked_seats_non_negative"),
        CheckConstraint("booked_seats <= total_seats", name="ck_sessions_booked_within_total"),
        CheckConstraint(
            "available_seats = total_seats - booked_seats",
            name="ck_sessions_available_consistency"
        ),
        CheckConstraint("price IS NULL OR price >= 0", name="ck_sessions_price_non_negative"),
        Index("ix_sessions_branch_date_activity", "branch_id", "date", "activity"),
        Index("ix_sessions_branch_date_time", "branch_id", "date", "time"),
    )

    @property
    def is_sold_out(self) -> bool:
        """Check if every seat is booked."""
        return self.available_seats == 0

    def __repr__(self) -> str:
        return (
            f"<ActivitySession(id={self.id}, activity={self.activity.value}, "
            f"date={self.date} {self.time}, seats={self.available_seats}/{self.total_seats})>"
        )
