"""
Tests for CapacityManager: seat counters stay within 0..total_seats,
including under concurrent reservations from separate database sessions.
"""

import asyncio
import uuid

import pytest

from artgram_booking_platform.database import transaction
from artgram_booking_platform.services.capacity_service import CapacityManager
from artgram_booking_platform.utils.exceptions import (
    CapacityExceededError,
    InvalidCapacityError,
    SessionInactiveError,
    SessionNotFoundError,
    ValidationError,
)


async def reserve_in_own_session(session_factory, session_id, seats):
    async with session_factory() as db:
        try:
            async with transaction(db):
                await CapacityManager(db).reserve(session_id, seats)
        except CapacityExceededError:
            return False
    return True


@pytest.mark.asyncio
class TestReserve:

    async def test_fill_session_then_refuse(self, db, activity_session):
        """15-seat session: 1 seat, 14 more, then one too many."""
        capacity = CapacityManager(db)

        counts = await capacity.reserve(activity_session.id, 1)
        assert (counts.booked_seats, counts.available_seats) == (1, 14)

        counts = await capacity.reserve(activity_session.id, 14)
        assert (counts.booked_seats, counts.available_seats) == (15, 0)

        with pytest.raises(CapacityExceededError) as exc_info:
            await capacity.reserve(activity_session.id, 1)
        assert exc_info.value.details["available"] == 0

        counts = await capacity.get_counts(activity_session.id)
        assert counts.booked_seats == 15

    async def test_exact_boundary(self, db, make_session):
        activity_session = await make_session(total_seats=10, booked_seats=4)
        capacity = CapacityManager(db)

        with pytest.raises(CapacityExceededError):
            await capacity.reserve(activity_session.id, 7)

        counts = await capacity.reserve(activity_session.id, 6)
        assert counts.available_seats == 0
        assert counts.booked_seats == counts.total_seats

    async def test_rejects_non_positive_seats(self, db, activity_session):
        with pytest.raises(ValidationError):
            await CapacityManager(db).reserve(activity_session.id, 0)

    async def test_unknown_session(self, db):
        with pytest.raises(SessionNotFoundError):
            await CapacityManager(db).reserve(uuid.uuid4(), 1)

    async def test_inactive_session(self, db, make_session):
        activity_session = await make_session(is_active=False)

        with pytest.raises(SessionInactiveError):
            await CapacityManager(db).reserve(activity_session.id, 1)

        counts = await CapacityManager(db).get_counts(activity_session.id)
        assert counts.booked_seats == 0

    async def test_concurrent_reservations_never_oversell(self, session_factory, make_session):
        """N free seats and N+1 racing single-seat reservations: exactly one loses."""
        activity_session = await make_session(total_seats=5)

        results = await asyncio.gather(*(
            reserve_in_own_session(session_factory, activity_session.id, 1)
            for _ in range(6)
        ))

        assert results.count(True) == 5
        assert results.count(False) == 1

        async with session_factory() as db:
            counts = await CapacityManager(db).get_counts(activity_session.id)
        assert counts.booked_seats == 5
        assert counts.available_seats == 0

    async def test_concurrent_multi_seat_reservations(self, session_factory, make_session):
        activity_session = await make_session(total_seats=10)

        results = await asyncio.gather(*(
            reserve_in_own_session(session_factory, activity_session.id, 3)
            for _ in range(5)
        ))

        assert results.count(True) == 3

        async with session_factory() as db:
            counts = await CapacityManager(db).get_counts(activity_session.id)
        assert counts.booked_seats == 9
        assert counts.available_seats == 1


@pytest.mark.asyncio
class TestRelease:

    async def test_release_returns_seats(self, db, make_session):
        activity_session = await make_session(total_seats=10, booked_seats=10)

        counts = await CapacityManager(db).release(activity_session.id, 3)

        assert (counts.booked_seats, counts.available_seats) == (7, 3)

    async def test_release_clamps_at_zero(self, db, make_session):
        activity_session = await make_session(total_seats=10, booked_seats=2)

        counts = await CapacityManager(db).release(activity_session.id, 5)

        assert counts.booked_seats == 0
        assert counts.available_seats == 10

    async def test_release_unknown_session(self, db):
        with pytest.raises(SessionNotFoundError):
            await CapacityManager(db).release(uuid.uuid4(), 1)


@pytest.mark.asyncio
class TestSetCapacity:

    async def test_below_booked_is_refused(self, db, make_session):
        """Shrinking to 2 seats with 5 booked fails and changes nothing."""
        activity_session = await make_session(total_seats=10, booked_seats=5)
        capacity = CapacityManager(db)

        with pytest.raises(InvalidCapacityError) as exc_info:
            await capacity.set_capacity(activity_session.id, 2)
        assert exc_info.value.details["booked_seats"] == 5

        counts = await capacity.get_counts(activity_session.id)
        assert (counts.total_seats, counts.booked_seats, counts.available_seats) == (10, 5, 5)

    async def test_shrink_to_booked(self, db, make_session):
        activity_session = await make_session(total_seats=10, booked_seats=5)

        counts = await CapacityManager(db).set_capacity(activity_session.id, 5)

        assert (counts.total_seats, counts.available_seats) == (5, 0)

    async def test_grow(self, db, make_session):
        activity_session = await make_session(total_seats=10, booked_seats=10)

        counts = await CapacityManager(db).set_capacity(activity_session.id, 12)

        assert counts.available_seats == 2

    async def test_rejects_zero(self, db, activity_session):
        with pytest.raises(ValidationError):
            await CapacityManager(db).set_capacity(activity_session.id, 0)


@pytest.mark.asyncio
async def test_counters_stay_in_range_across_operations(db, make_session):
    activity_session = await make_session(total_seats=8)
    capacity = CapacityManager(db)

    operations = [
        (capacity.reserve, 5),
        (capacity.set_capacity, 6),
        (capacity.reserve, 2),
        (capacity.release, 4),
        (capacity.set_capacity, 3),
        (capacity.reserve, 1),
        (capacity.release, 9),
    ]
    for operation, value in operations:
        try:
            counts = await operation(activity_session.id, value)
        except (CapacityExceededError, InvalidCapacityError):
            counts = await capacity.get_counts(activity_session.id)
        assert 0 <= counts.booked_seats <= counts.total_seats
        assert counts.available_seats == counts.total_seats - counts.booked_seats
