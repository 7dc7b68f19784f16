"""
Bulk session scheduling for branches.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..config import get_settings
from ..database import transaction
from ..models.booking import Booking, BookingStatus
from ..models.session import Activity, ActivitySession
from ..schemas.common import Actor
from ..schemas.session import GenerationReport, SessionSpec, SessionTemplate, normalize_date
from ..utils.exceptions import BranchClosedError, SessionHasBookingsError, ValidationError
from ..utils.logging_config import log_business_event
from .session_service import (
    build_session,
    ensure_activity_allowed,
    ensure_branch_access,
    is_monday,
    load_branch,
)

logger = logging.getLogger(__name__)


def parse_day(value) -> str:
    try:
        return normalize_date(value)
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD", field_errors={"date": ["invalid"]})


def default_templates(activity: Activity) -> List[SessionTemplate]:
    """Configured time slots for an activity."""
    configured = get_settings().default_session_templates.get(activity.value, [])
    return [SessionTemplate.model_validate(template) for template in configured]


class SessionGenerationService:
    """Service for generating and replacing a branch's sessions in bulk."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ensure_sessions_for_dates(
        self,
        branch_id: UUID,
        dates: Iterable,
        activity: Activity,
        actor: Actor,
        templates: Optional[Sequence[SessionTemplate]] = None
    ) -> GenerationReport:
        """
        Materialize templates on every date that has no sessions yet.

        A date counts as seeded when any session of the activity exists for
        the branch on it, so a partially seeded day is never topped up.
        Mondays are skipped unless the branch opens on Mondays.

        Raises:
            BranchNotFoundError: When the branch does not exist
            AuthorizationError: When the actor cannot manage the branch
            ActivityNotAllowedError: When the branch does not run the activity
            ValidationError: When there are no templates to apply
        """
        ensure_branch_access(actor, branch_id)

        days = list(dict.fromkeys(parse_day(d) for d in dates))
        slots = list(templates) if templates else default_templates(activity)
        if not slots:
            raise ValidationError(f"No session templates configured for {activity.value}")

        report = GenerationReport()

        async with transaction(self.session):
            branch = await load_branch(self.session, branch_id, lock=True)
            ensure_activity_allowed(branch, activity)

            existing = await self._seeded_dates(branch_id, activity, days)

            for day in days:
                if day in existing:
                    report.skipped_existing.append(day)
                    continue
                if is_monday(day) and not branch.allow_monday:
                    report.skipped_closed.append(day)
                    continue

                for slot in slots:
                    self.session.add(build_session(branch_id, day, activity, slot, actor.id))
                    report.created += 1
                report.created_dates.append(day)

            await self.session.flush()

        log_business_event(
            "sessions_generated",
            {
                "branch_id": str(branch_id),
                "activity": activity.value,
                "sessions_created": report.created,
                "skipped_existing": len(report.skipped_existing),
                "skipped_closed": len(report.skipped_closed),
            },
            user_id=actor.id
        )
        logger.info(
            f"Generated {report.created} {activity.value} sessions for branch {branch_id} "
            f"on {len(report.created_dates)} date(s)"
        )
        if report.created:
            await CacheInvalidator.invalidate_branch_availability(branch_id)
        return report

    async def bulk_replace(
        self,
        branch_id: UUID,
        date,
        specs: Sequence[SessionSpec],
        actor: Actor
    ) -> Tuple[int, List[ActivitySession]]:
        """
        Replace every session of a branch on one date.

        Refuses while any non-cancelled booking references a session on that
        date, so no live booking is orphaned.

        Returns:
            Number of sessions deleted and the sessions created

        Raises:
            BranchNotFoundError: When the branch does not exist
            AuthorizationError: When the actor cannot manage the branch
            ActivityNotAllowedError: When a spec uses an activity the branch does not run
            BranchClosedError: When the date is a Monday and the branch is closed
            SessionHasBookingsError: When live bookings exist on the date
        """
        ensure_branch_access(actor, branch_id)
        day = parse_day(date)

        async with transaction(self.session):
            branch = await load_branch(self.session, branch_id, lock=True)
            for spec in specs:
                ensure_activity_allowed(branch, spec.activity)
            if specs and is_monday(day) and not branch.allow_monday:
                raise BranchClosedError(str(branch_id), day)

            result = await self.session.execute(
                select(ActivitySession.id, ActivitySession.booked_seats).where(
                    ActivitySession.branch_id == branch_id,
                    ActivitySession.date == day
                )
            )
            current = result.all()
            current_ids = [row.id for row in current]

            if current_ids:
                count_result = await self.session.execute(
                    select(func.count(Booking.id)).where(
                        Booking.session_id.in_(current_ids),
                        Booking.status != BookingStatus.CANCELLED
                    )
                )
                live_bookings = count_result.scalar_one()
                booked = [row.id for row in current if row.booked_seats > 0]
                if live_bookings or booked:
                    raise SessionHasBookingsError(current_ids, max(live_bookings, len(booked)))

                # Cancelled bookings keep their slot snapshot
                await self.session.execute(
                    update(Booking)
                    .where(Booking.session_id.in_(current_ids))
                    .values(session_id=None)
                    .execution_options(synchronize_session=False)
                )
                await self.session.execute(
                    delete(ActivitySession)
                    .where(ActivitySession.id.in_(current_ids))
                    .execution_options(synchronize_session=False)
                )

            created = [
                build_session(branch_id, day, spec.activity, spec, actor.id, is_active=spec.is_active)
                for spec in specs
            ]
            self.session.add_all(created)
            await self.session.flush()

        created.sort(key=lambda s: (s.time, s.activity.value))

        log_business_event(
            "sessions_replaced",
            {"branch_id": str(branch_id), "date": day, "sessions_deleted": len(current_ids), "sessions_created": len(created)},
            user_id=actor.id
        )
        logger.info(f"Replaced {len(current_ids)} sessions with {len(created)} for branch {branch_id} on {day}")
        await CacheInvalidator.invalidate_branch_availability(branch_id)
        return len(current_ids), created

    async def _seeded_dates(self, branch_id: UUID, activity: Activity, days: List[str]) -> set:
        if not days:
            return set()
        result = await self.session.execute(
            select(ActivitySession.date)
            .where(
                ActivitySession.branch_id == branch_id,
                ActivitySession.activity == activity,
                ActivitySession.date.in_(days)
            )
            .distinct()
        )
        return set(result.scalars().all())
