"""
Seat counter reconciliation.

Compares each session's booked seats with the seats held by its
non-cancelled bookings and, on request, rewrites the counter.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import transaction
from ..models.base import utc_now
from ..models.booking import Booking, BookingStatus
from ..models.session import ActivitySession
from ..schemas.admin import ReconciliationReport, SeatDrift
from ..utils.exceptions import InvalidCapacityError
from ..utils.logging_config import log_business_event
from .capacity_service import CapacityManager

logger = logging.getLogger(__name__)


def _live_seats_subquery():
    return (
        select(
            Booking.session_id.label("session_id"),
            func.sum(Booking.seats).label("seats")
        )
        .where(
            Booking.session_id.is_not(None),
            Booking.status != BookingStatus.CANCELLED
        )
        .group_by(Booking.session_id)
        .subquery()
    )


class ReconciliationService:
    """Service for detecting and repairing seat counter drift."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.capacity = CapacityManager(session)

    async def check(self, branch_id: Optional[UUID] = None, date_from: Optional[str] = None) -> ReconciliationReport:
        """Report every session whose counter disagrees with its bookings."""
        sessions_checked = await self._count_sessions(branch_id, date_from)
        drift = await self._find_drift(branch_id, date_from)

        for item in drift:
            log_business_event(
                "seat_drift_detected",
                {
                    "session_id": str(item.session_id),
                    "recorded_booked_seats": item.recorded_booked_seats,
                    "actual_booked_seats": item.actual_booked_seats,
                }
            )

        return ReconciliationReport(checked_at=utc_now(), sessions_checked=sessions_checked, drift=drift)

    async def repair(self, branch_id: Optional[UUID] = None, date_from: Optional[str] = None) -> ReconciliationReport:
        """
        Rewrite drifted counters to the seats held by live bookings.

        Each session is recounted under its row lock before the write, so a
        booking committed meanwhile is included. Sessions whose live bookings
        exceed total seats are reported but left untouched.
        """
        async with transaction(self.session):
            sessions_checked = await self._count_sessions(branch_id, date_from)
            drift = await self._find_drift(branch_id, date_from)

            for item in drift:
                await self.session.execute(
                    select(ActivitySession.id)
                    .where(ActivitySession.id == item.session_id)
                    .with_for_update()
                )
                actual = await self._live_seats(item.session_id)
                item.actual_booked_seats = actual
                try:
                    await self.capacity.reconcile(item.session_id, actual)
                except InvalidCapacityError as e:
                    item.error = e.message
                    logger.error(f"Cannot reconcile session {item.session_id}: {e.message}")
                    continue
                item.repaired = True

        repaired = sum(1 for item in drift if item.repaired)
        logger.info(f"Reconciliation repaired {repaired} of {len(drift)} drifted sessions")
        return ReconciliationReport(
            checked_at=utc_now(),
            sessions_checked=sessions_checked,
            drift=drift,
            repaired=repaired
        )

    async def _find_drift(self, branch_id: Optional[UUID], date_from: Optional[str]) -> List[SeatDrift]:
        live = _live_seats_subquery()
        actual = func.coalesce(live.c.seats, 0)

        query = (
            select(ActivitySession, actual.label("actual"))
            .outerjoin(live, live.c.session_id == ActivitySession.id)
            .where(ActivitySession.booked_seats != actual)
            .order_by(ActivitySession.date, ActivitySession.time)
        )
        query = self._scope(query, branch_id, date_from)

        result = await self.session.execute(query)
        return [
            SeatDrift(
                session_id=activity_session.id,
                branch_id=activity_session.branch_id,
                activity=activity_session.activity,
                date=activity_session.date,
                time=activity_session.time,
                total_seats=activity_session.total_seats,
                recorded_booked_seats=activity_session.booked_seats,
                actual_booked_seats=int(actual_seats),
            )
            for activity_session, actual_seats in result.all()
        ]

    async def _live_seats(self, session_id: UUID) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Booking.seats), 0)).where(
                Booking.session_id == session_id,
                Booking.status != BookingStatus.CANCELLED
            )
        )
        return int(result.scalar_one())

    async def _count_sessions(self, branch_id: Optional[UUID], date_from: Optional[str]) -> int:
        query = self._scope(select(func.count(ActivitySession.id)), branch_id, date_from)
        result = await self.session.execute(query)
        return result.scalar_one()

    @staticmethod
    def _scope(query, branch_id: Optional[UUID], date_from: Optional[str]):
        if branch_id is not None:
            query = query.where(ActivitySession.branch_id == branch_id)
        if date_from is not None:
            query = query.where(ActivitySession.date >= date_from)
        return query
