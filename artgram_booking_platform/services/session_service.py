"""
Session service for creating, editing and removing activity sessions.
"""

import logging
from datetime import date as date_type
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..database import transaction
from ..models.booking import Booking, BookingStatus
from ..models.branch import Branch
from ..models.session import Activity, ActivitySession
from ..schemas.common import Actor
from ..schemas.session import SessionCreate, SessionTemplate, SessionUpdate
from ..utils.exceptions import (
    ActivityNotAllowedError,
    AuthorizationError,
    BranchClosedError,
    BranchNotFoundError,
    SessionHasBookingsError,
    SessionNotFoundError,
)
from .capacity_service import CapacityManager

logger = logging.getLogger(__name__)

# Metadata a manager may edit after creation; date, time, activity and branch
# are snapshotted onto bookings and stay fixed.
EDITABLE_FIELDS = ("label", "type", "age_group", "price", "notes", "is_active")
CLEARABLE_FIELDS = ("label", "price", "notes")


def is_monday(day: str) -> bool:
    return date_type.fromisoformat(day).weekday() == 0


def ensure_branch_access(actor: Actor, branch_id: UUID) -> None:
    """Raise unless the actor may manage the branch."""
    if not actor.can_manage_branch(branch_id):
        raise AuthorizationError(
            "You can only manage sessions of your own branch",
            required_permission="branch_manager"
        )


def ensure_activity_allowed(branch: Branch, activity: Activity) -> None:
    if not branch.allows_activity(activity):
        raise ActivityNotAllowedError(str(branch.id), activity.value)


async def load_branch(session: AsyncSession, branch_id: UUID, lock: bool = False) -> Branch:
    """
    Load a branch, optionally taking its row lock.

    The lock serializes schedule changes for one branch.
    """
    query = select(Branch).where(Branch.id == branch_id)
    if lock:
        query = query.with_for_update()
    result = await session.execute(query)
    branch = result.scalar_one_or_none()
    if branch is None:
        raise BranchNotFoundError(str(branch_id))
    return branch


def build_session(
    branch_id: UUID,
    day: str,
    activity: Activity,
    template: SessionTemplate,
    created_by: Optional[str],
    is_active: bool = True
) -> ActivitySession:
    """Materialize a template as a new, empty session."""
    return ActivitySession(
        branch_id=branch_id,
        date=day,
        time=template.time,
        activity=activity,
        label=template.label or template.time,
        total_seats=template.total_seats,
        booked_seats=0,
        available_seats=template.total_seats,
        type=template.type,
        age_group=template.age_group,
        price=template.price,
        notes=template.notes,
        is_active=is_active,
        created_by=created_by,
    )


class SessionService:
    """Service for managing individual sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.capacity = CapacityManager(session)

    async def create_session(self, data: SessionCreate, actor: Actor) -> ActivitySession:
        """
        Create a single session.

        Raises:
            BranchNotFoundError: When the branch does not exist
            AuthorizationError: When the actor cannot manage the branch
            ActivityNotAllowedError: When the branch does not run the activity
            BranchClosedError: When the date is a Monday and the branch is closed
        """
        ensure_branch_access(actor, data.branch_id)

        async with transaction(self.session):
            branch = await load_branch(self.session, data.branch_id, lock=True)
            ensure_activity_allowed(branch, data.activity)
            if is_monday(data.date) and not branch.allow_monday:
                raise BranchClosedError(str(branch.id), data.date)

            activity_session = build_session(
                branch.id, data.date, data.activity, data, actor.id, is_active=data.is_active
            )
            self.session.add(activity_session)
            await self.session.flush()

        logger.info(
            f"Session {activity_session.id} created: {data.activity.value} "
            f"{data.date} {data.time} at branch {data.branch_id}"
        )
        await CacheInvalidator.invalidate_branch_availability(data.branch_id)
        return activity_session

    async def update_session(self, session_id: UUID, data: SessionUpdate, actor: Actor) -> ActivitySession:
        """
        Edit session metadata and, optionally, its capacity.

        Raises:
            SessionNotFoundError: When the session does not exist
            AuthorizationError: When the actor cannot manage the branch
            InvalidCapacityError: When the new capacity is below booked seats
        """
        async with transaction(self.session):
            activity_session = await self._get_session_or_raise(session_id)
            ensure_branch_access(actor, activity_session.branch_id)

            changes = data.model_dump(exclude_unset=True)
            if changes.get("total_seats") is not None:
                await self.capacity.set_capacity(session_id, changes["total_seats"])
                activity_session = await self._get_session_or_raise(session_id)

            for field in EDITABLE_FIELDS:
                if field not in changes:
                    continue
                value = changes[field]
                if value is None and field not in CLEARABLE_FIELDS:
                    continue
                if field == "label" and not value:
                    value = activity_session.time
                setattr(activity_session, field, value)

            await self.session.flush()

        logger.info(f"Session {session_id} updated: {sorted(changes)}")
        await CacheInvalidator.invalidate_branch_availability(activity_session.branch_id)
        return activity_session

    async def set_capacity(self, session_id: UUID, total_seats: int, actor: Actor) -> ActivitySession:
        """Change a session's total seats."""
        async with transaction(self.session):
            activity_session = await self._get_session_or_raise(session_id)
            ensure_branch_access(actor, activity_session.branch_id)
            await self.capacity.set_capacity(session_id, total_seats)
            activity_session = await self._get_session_or_raise(session_id)

        await CacheInvalidator.invalidate_branch_availability(activity_session.branch_id)
        return activity_session

    async def delete_session(self, session_id: UUID, actor: Actor) -> None:
        """
        Delete a session that holds no bookings.

        Raises:
            SessionNotFoundError: When the session does not exist
            AuthorizationError: When the actor cannot manage the branch
            SessionHasBookingsError: When seats are booked or live bookings exist
        """
        async with transaction(self.session):
            activity_session = await self._get_session_or_raise(session_id)
            branch_id = activity_session.branch_id
            ensure_branch_access(actor, branch_id)

            live_bookings = await self._count_live_bookings([session_id])
            if live_bookings or activity_session.booked_seats:
                raise SessionHasBookingsError([session_id], max(live_bookings, 1))

            # Cancelled bookings keep their slot snapshot
            await self.session.execute(
                update(Booking)
                .where(Booking.session_id == session_id)
                .values(session_id=None)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(
                delete(ActivitySession)
                .where(ActivitySession.id == session_id, ActivitySession.booked_seats == 0)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # A booking landed after the check above
                raise SessionHasBookingsError([session_id], 1)

            self.session.expunge(activity_session)

        logger.info(f"Session {session_id} deleted by {actor.id}")
        await CacheInvalidator.invalidate_branch_availability(branch_id)

    async def get_session(self, session_id: UUID) -> ActivitySession:
        """Get a session by ID."""
        return await self._get_session_or_raise(session_id)

    async def get_session_roster(self, session_id: UUID, actor: Actor) -> Tuple[ActivitySession, List[Booking]]:
        """
        Get a session and its non-cancelled bookings, oldest first.

        Raises:
            SessionNotFoundError: When the session does not exist
            AuthorizationError: When the actor cannot manage the branch
        """
        activity_session = await self._get_session_or_raise(session_id)
        ensure_branch_access(actor, activity_session.branch_id)

        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.session_id == session_id,
                Booking.status != BookingStatus.CANCELLED
            )
            .order_by(Booking.created_at.asc())
        )
        return activity_session, list(result.scalars().all())

    async def _get_session_or_raise(self, session_id: UUID) -> ActivitySession:
        result = await self.session.execute(
            select(ActivitySession)
            .where(ActivitySession.id == session_id)
            .execution_options(populate_existing=True)
        )
        activity_session = result.scalar_one_or_none()
        if activity_session is None:
            raise SessionNotFoundError(str(session_id))
        return activity_session

    async def _count_live_bookings(self, session_ids: List[UUID]) -> int:
        if not session_ids:
            return 0
        result = await self.session.execute(
            select(func.count(Booking.id)).where(
                Booking.session_id.in_(session_ids),
                Booking.status != BookingStatus.CANCELLED
            )
        )
        return result.scalar_one()
