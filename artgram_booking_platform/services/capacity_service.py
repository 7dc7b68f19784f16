"""
Seat capacity management for activity sessions.

Every change to a session's seat counters goes through CapacityManager as a
single conditional UPDATE, so the database serializes racing writers on the
session row and the counters never leave the range 0..total_seats.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.session import ActivitySession
from ..utils.exceptions import (
    CapacityExceededError,
    InvalidCapacityError,
    SessionInactiveError,
    SessionNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatCounts:
    """Seat counters of one session as persisted."""

    session_id: UUID
    total_seats: int
    booked_seats: int
    available_seats: int
    is_active: bool = True


class CapacityManager:
    """
    Reserve and release seats on sessions.

    Runs inside the caller's transaction and never commits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def reserve(self, session_id: UUID, seats: int) -> SeatCounts:
        """
        Take seats from a session.

        Args:
            session_id: Session to book
            seats: Number of seats, at least 1

        Returns:
            Counters after the reservation

        Raises:
            ValidationError: When seats is below 1
            SessionNotFoundError: When the session does not exist
            SessionInactiveError: When the session is disabled
            CapacityExceededError: When fewer than `seats` seats are free
        """
        if seats < 1:
            raise ValidationError("Seats must be at least 1", field_errors={"seats": ["must be >= 1"]})

        stmt = (
            update(ActivitySession)
            .where(
                ActivitySession.id == session_id,
                ActivitySession.is_active.is_(True),
                ActivitySession.total_seats - ActivitySession.booked_seats >= seats
            )
            .values(
                booked_seats=ActivitySession.booked_seats + seats,
                available_seats=ActivitySession.total_seats - ActivitySession.booked_seats - seats
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            counts = await self.get_counts(session_id)
            if counts is None:
                raise SessionNotFoundError(str(session_id))
            if not counts.is_active:
                raise SessionInactiveError(str(session_id))
            logger.info(
                f"Reservation of {seats} seats refused on session {session_id}: "
                f"{counts.available_seats} available"
            )
            raise CapacityExceededError(
                requested=seats,
                available=counts.available_seats,
                session_id=str(session_id)
            )

        counts = await self._require_counts(session_id)
        logger.debug(f"Reserved {seats} seats on session {session_id}, {counts.available_seats} left")
        return counts

    async def release(self, session_id: UUID, seats: int) -> SeatCounts:
        """
        Return seats to a session.

        Booked seats are clamped at zero. Releases are not deduplicated; the
        caller must release each reservation once.

        Raises:
            ValidationError: When seats is below 1
            SessionNotFoundError: When the session does not exist
        """
        if seats < 1:
            raise ValidationError("Seats must be at least 1", field_errors={"seats": ["must be >= 1"]})

        new_booked = case(
            (ActivitySession.booked_seats >= seats, ActivitySession.booked_seats - seats),
            else_=0
        )
        stmt = (
            update(ActivitySession)
            .where(ActivitySession.id == session_id)
            .values(
                booked_seats=new_booked,
                available_seats=ActivitySession.total_seats - new_booked
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            raise SessionNotFoundError(str(session_id))

        counts = await self._require_counts(session_id)
        logger.debug(f"Released {seats} seats on session {session_id}, {counts.available_seats} available")
        return counts

    async def set_capacity(self, session_id: UUID, new_total: int) -> SeatCounts:
        """
        Change a session's total seats.

        Raises:
            ValidationError: When new_total is below 1
            SessionNotFoundError: When the session does not exist
            InvalidCapacityError: When more than new_total seats are booked
        """
        if new_total < 1:
            raise ValidationError(
                "Total seats must be at least 1",
                field_errors={"total_seats": ["must be >= 1"]}
            )

        stmt = (
            update(ActivitySession)
            .where(
                ActivitySession.id == session_id,
                ActivitySession.booked_seats <= new_total
            )
            .values(
                total_seats=new_total,
                available_seats=new_total - ActivitySession.booked_seats
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            counts = await self.get_counts(session_id)
            if counts is None:
                raise SessionNotFoundError(str(session_id))
            raise InvalidCapacityError(str(session_id), requested_total=new_total, booked=counts.booked_seats)

        counts = await self._require_counts(session_id)
        logger.info(f"Session {session_id} capacity set to {new_total}")
        return counts

    async def reconcile(self, session_id: UUID, booked_seats: int) -> SeatCounts:
        """
        Overwrite booked seats with a recounted value.

        Only the reconciliation routine calls this.

        Raises:
            ValidationError: When booked_seats is negative
            SessionNotFoundError: When the session does not exist
            InvalidCapacityError: When booked_seats exceeds total seats
        """
        if booked_seats < 0:
            raise ValidationError("Booked seats cannot be negative")

        stmt = (
            update(ActivitySession)
            .where(
                ActivitySession.id == session_id,
                ActivitySession.total_seats >= booked_seats
            )
            .values(
                booked_seats=booked_seats,
                available_seats=ActivitySession.total_seats - booked_seats
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            counts = await self.get_counts(session_id)
            if counts is None:
                raise SessionNotFoundError(str(session_id))
            raise InvalidCapacityError(str(session_id), requested_total=counts.total_seats, booked=booked_seats)

        counts = await self._require_counts(session_id)
        logger.warning(f"Session {session_id} booked seats reconciled to {booked_seats}")
        return counts

    async def get_counts(self, session_id: UUID) -> Optional[SeatCounts]:
        """Read the persisted counters, bypassing the identity map."""
        result = await self.session.execute(
            select(
                ActivitySession.id,
                ActivitySession.total_seats,
                ActivitySession.booked_seats,
                ActivitySession.available_seats,
                ActivitySession.is_active
            ).where(ActivitySession.id == session_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return SeatCounts(
            session_id=row.id,
            total_seats=row.total_seats,
            booked_seats=row.booked_seats,
            available_seats=row.available_seats,
            is_active=row.is_active
        )

    async def _require_counts(self, session_id: UUID) -> SeatCounts:
        counts = await self.get_counts(session_id)
        if counts is None:
            raise SessionNotFoundError(str(session_id))
        return counts
