"""
Tests for session administration and bulk scheduling.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from artgram_booking_platform.models import Activity, ActivitySession, Booking, BookingStatus, Branch
from artgram_booking_platform.schemas.session import (
    SessionCreate,
    SessionSpec,
    SessionTemplate,
    SessionUpdate,
)
from artgram_booking_platform.services.booking_service import BookingService
from artgram_booking_platform.services.session_generation_service import SessionGenerationService
from artgram_booking_platform.services.session_service import SessionService
from artgram_booking_platform.utils.exceptions import (
    ActivityNotAllowedError,
    AuthorizationError,
    BranchClosedError,
    BranchNotFoundError,
    InvalidCapacityError,
    SessionHasBookingsError,
    SessionNotFoundError,
    ValidationError,
)

SESSION_DATE = "2026-10-20"
MONDAY = "2026-10-26"

TEMPLATES = [
    SessionTemplate(time="10:00", label="10:00 AM", total_seats=15, type="Slime Play & Demo", age_group="3+ years", price=750),
    SessionTemplate(time="13:00", total_seats=12, type="Slime Play & Making", age_group="8+ years", price=750),
]


async def sessions_on(db, branch_id, day):
    result = await db.execute(
        select(ActivitySession)
        .where(ActivitySession.branch_id == branch_id, ActivitySession.date == day)
        .order_by(ActivitySession.time)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def slime_spec(time="10:00", total_seats=10, **overrides):
    fields = dict(
        time=time,
        total_seats=total_seats,
        type="Slime Play & Demo",
        age_group="3+ years",
        activity=Activity.SLIME,
        price=Decimal("750"),
    )
    fields.update(overrides)
    return SessionSpec(**fields)


@pytest.mark.asyncio
class TestSessionService:

    async def test_create_session(self, db, branch, manager):
        data = SessionCreate(branch_id=branch.id, date=SESSION_DATE, **slime_spec().model_dump())

        created = await SessionService(db).create_session(data, manager)

        assert (created.total_seats, created.booked_seats, created.available_seats) == (10, 0, 10)
        assert created.label == "10:00"
        assert created.created_by == manager.id

    async def test_create_on_closed_monday(self, db, branch, admin):
        data = SessionCreate(branch_id=branch.id, date=MONDAY, **slime_spec().model_dump())

        with pytest.raises(BranchClosedError):
            await SessionService(db).create_session(data, admin)

    async def test_create_disallowed_activity(self, db, slime_only_branch, admin):
        data = SessionCreate(
            branch_id=slime_only_branch.id,
            date=SESSION_DATE,
            **slime_spec(activity=Activity.TUFTING, type="Small Tufting (8x8)").model_dump()
        )

        with pytest.raises(ActivityNotAllowedError):
            await SessionService(db).create_session(data, admin)

    async def test_manager_limited_to_own_branch(self, db, slime_only_branch, manager):
        data = SessionCreate(branch_id=slime_only_branch.id, date=SESSION_DATE, **slime_spec().model_dump())

        with pytest.raises(AuthorizationError):
            await SessionService(db).create_session(data, manager)

    async def test_unknown_branch(self, db, admin):
        data = SessionCreate(branch_id=uuid.uuid4(), date=SESSION_DATE, **slime_spec().model_dump())

        with pytest.raises(BranchNotFoundError):
            await SessionService(db).create_session(data, admin)

    async def test_update_metadata_and_capacity(self, db, make_session, manager):
        activity_session = await make_session(total_seats=10, booked_seats=4)

        updated = await SessionService(db).update_session(
            activity_session.id,
            SessionUpdate(label="Morning", notes="Bring aprons", price=None, total_seats=6),
            manager
        )

        assert updated.label == "Morning"
        assert updated.notes == "Bring aprons"
        assert updated.price is None
        assert (updated.total_seats, updated.booked_seats, updated.available_seats) == (6, 4, 2)

    async def test_update_capacity_below_booked(self, session_factory, make_session, manager):
        activity_session = await make_session(total_seats=10, booked_seats=5)

        async with session_factory() as db:
            with pytest.raises(InvalidCapacityError):
                await SessionService(db).update_session(
                    activity_session.id, SessionUpdate(label="Changed", total_seats=2), manager
                )

        async with session_factory() as db:
            stored = await SessionService(db).get_session(activity_session.id)
        assert stored.total_seats == 10
        assert stored.label == "10:00 AM"

    async def test_deactivate(self, db, activity_session, manager):
        updated = await SessionService(db).update_session(
            activity_session.id, SessionUpdate(is_active=False), manager
        )
        assert updated.is_active is False

    async def test_delete_empty_session(self, db, activity_session, admin):
        service = SessionService(db)

        await service.delete_session(activity_session.id, admin)

        with pytest.raises(SessionNotFoundError):
            await service.get_session(activity_session.id)

    async def test_delete_with_live_booking_is_refused(self, db, activity_session, customer, admin):
        await BookingService(db).create_booking(activity_session.id, 1, customer)

        with pytest.raises(SessionHasBookingsError):
            await SessionService(db).delete_session(activity_session.id, admin)

    async def test_delete_after_cancellation(self, db, activity_session, customer, admin):
        booking, _ = await BookingService(db).create_booking(activity_session.id, 1, customer)
        await BookingService(db).cancel_booking(booking.id, customer)

        await SessionService(db).delete_session(activity_session.id, admin)

        stored = await BookingService(db).get_booking(booking.id, admin)
        assert stored.session_id is None
        assert stored.date == SESSION_DATE

    async def test_roster_lists_live_bookings(self, db, activity_session, customer, another_customer, manager):
        service = BookingService(db)
        kept, _ = await service.create_booking(activity_session.id, 2, customer)
        dropped, _ = await service.create_booking(activity_session.id, 1, another_customer)
        await service.cancel_booking(dropped.id, another_customer)

        activity_session, bookings = await SessionService(db).get_session_roster(activity_session.id, manager)

        assert [b.id for b in bookings] == [kept.id]
        assert activity_session.booked_seats == 2


@pytest.mark.asyncio
class TestEnsureSessionsForDates:

    async def test_generates_templates_and_skips_monday(self, db, branch, admin):
        service = SessionGenerationService(db)

        report = await service.ensure_sessions_for_dates(
            branch.id, [SESSION_DATE, "2026-10-21", MONDAY], Activity.SLIME, admin, templates=TEMPLATES
        )

        assert report.created == 4
        assert report.created_dates == [SESSION_DATE, "2026-10-21"]
        assert report.skipped_closed == [MONDAY]
        created = await sessions_on(db, branch.id, SESSION_DATE)
        assert [(s.time, s.label, s.total_seats) for s in created] == [
            ("10:00", "10:00 AM", 15),
            ("13:00", "13:00", 12),
        ]
        assert all(s.booked_seats == 0 and s.available_seats == s.total_seats for s in created)
        assert await sessions_on(db, branch.id, MONDAY) == []

    async def test_second_run_creates_nothing(self, db, branch, admin):
        service = SessionGenerationService(db)
        await service.ensure_sessions_for_dates(branch.id, [SESSION_DATE], Activity.SLIME, admin, templates=TEMPLATES)

        report = await service.ensure_sessions_for_dates(
            branch.id, [SESSION_DATE, SESSION_DATE], Activity.SLIME, admin, templates=TEMPLATES
        )

        assert report.created == 0
        assert report.skipped_existing == [SESSION_DATE]
        assert len(await sessions_on(db, branch.id, SESSION_DATE)) == 2

    async def test_partially_seeded_date_is_left_alone(self, db, make_session, branch, admin):
        await make_session(time="18:00")

        report = await SessionGenerationService(db).ensure_sessions_for_dates(
            branch.id, [SESSION_DATE], Activity.SLIME, admin, templates=TEMPLATES
        )

        assert report.created == 0
        assert len(await sessions_on(db, branch.id, SESSION_DATE)) == 1

    async def test_activities_are_seeded_independently(self, db, make_session, branch, admin):
        await make_session(time="18:00")

        report = await SessionGenerationService(db).ensure_sessions_for_dates(
            branch.id, [SESSION_DATE], Activity.TUFTING, admin
        )

        # Configured tufting defaults: three slots
        assert report.created == 3

    async def test_monday_allowed_branch(self, session_factory, db, branch, admin):
        async with session_factory() as setup:
            stored = await setup.get(Branch, branch.id)
            stored.allow_monday = True
            await setup.commit()

        report = await SessionGenerationService(db).ensure_sessions_for_dates(
            branch.id, [MONDAY], Activity.SLIME, admin, templates=TEMPLATES
        )

        assert report.created_dates == [MONDAY]

    async def test_disallowed_activity(self, db, slime_only_branch, admin):
        with pytest.raises(ActivityNotAllowedError):
            await SessionGenerationService(db).ensure_sessions_for_dates(
                slime_only_branch.id, [SESSION_DATE], Activity.TUFTING, admin
            )

    async def test_bad_date(self, db, branch, admin):
        with pytest.raises(ValidationError):
            await SessionGenerationService(db).ensure_sessions_for_dates(
                branch.id, ["20-10-2026"], Activity.SLIME, admin
            )

    async def test_manager_limited_to_own_branch(self, db, slime_only_branch, manager):
        with pytest.raises(AuthorizationError):
            await SessionGenerationService(db).ensure_sessions_for_dates(
                slime_only_branch.id, [SESSION_DATE], Activity.SLIME, manager
            )


@pytest.mark.asyncio
class TestBulkReplace:

    async def test_replaces_sessions_of_the_day(self, db, make_session, branch, admin):
        await make_session(time="10:00")
        await make_session(time="12:00")
        other_day = await make_session(date="2026-10-21")

        deleted, created = await SessionGenerationService(db).bulk_replace(
            branch.id,
            SESSION_DATE,
            [slime_spec(time="15:00"), slime_spec(time="09:00", total_seats=20)],
            admin
        )

        assert deleted == 2
        assert [(s.time, s.total_seats) for s in created] == [("09:00", 20), ("15:00", 10)]
        assert [s.time for s in await sessions_on(db, branch.id, SESSION_DATE)] == ["09:00", "15:00"]
        assert [s.id for s in await sessions_on(db, branch.id, "2026-10-21")] == [other_day.id]

    async def test_refused_while_bookings_are_live(self, session_factory, make_session, branch, customer, admin):
        activity_session = await make_session()
        async with session_factory() as db:
            await BookingService(db).create_booking(activity_session.id, 2, customer)

        async with session_factory() as db:
            with pytest.raises(SessionHasBookingsError):
                await SessionGenerationService(db).bulk_replace(
                    branch.id, SESSION_DATE, [slime_spec(time="15:00")], admin
                )

        async with session_factory() as db:
            remaining = await sessions_on(db, branch.id, SESSION_DATE)
        assert [s.id for s in remaining] == [activity_session.id]
        assert remaining[0].booked_seats == 2

    async def test_cancelled_bookings_keep_their_snapshot(self, db, make_session, branch, customer, admin):
        activity_session = await make_session()
        booking, _ = await BookingService(db).create_booking(activity_session.id, 2, customer)
        await BookingService(db).cancel_booking(booking.id, customer)

        deleted, _ = await SessionGenerationService(db).bulk_replace(branch.id, SESSION_DATE, [], admin)

        assert deleted == 1
        result = await db.execute(
            select(Booking).where(Booking.id == booking.id).execution_options(populate_existing=True)
        )
        stored = result.scalar_one()
        assert stored.session_id is None
        assert stored.status == BookingStatus.CANCELLED
        assert (stored.date, stored.time) == (SESSION_DATE, "10:00")

    async def test_closed_monday(self, db, branch, admin):
        with pytest.raises(BranchClosedError):
            await SessionGenerationService(db).bulk_replace(branch.id, MONDAY, [slime_spec()], admin)

    async def test_disallowed_activity(self, db, slime_only_branch, admin):
        with pytest.raises(ActivityNotAllowedError):
            await SessionGenerationService(db).bulk_replace(
                slime_only_branch.id,
                SESSION_DATE,
                [slime_spec(activity=Activity.TUFTING)],
                admin
            )
