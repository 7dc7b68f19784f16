"""
Tests for the availability listing and its last-known-good cache.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from artgram_booking_platform.cache import CacheKeyBuilder
from artgram_booking_platform.models import Activity
from artgram_booking_platform.services.availability_service import AvailabilityService
from artgram_booking_platform.services.booking_service import BookingService


@pytest.fixture
def mock_cache():
    cache = AsyncMock()
    cache.get.return_value = None
    cache.set.return_value = True
    return cache


def database_down(*args, **kwargs):
    raise OperationalError("SELECT sessions", {}, ConnectionRefusedError("connection refused"))


@pytest.mark.asyncio
class TestAvailability:

    async def test_lists_from_database_and_caches(self, db, make_session, branch, mock_cache):
        later = await make_session(time="16:00")
        earlier = await make_session(time="10:00", activity=Activity.TUFTING, type="Small Tufting (8x8)")

        response = await AvailabilityService(db, cache=mock_cache).get_availability(
            branch.id, "2026-10-20", "2026-10-20"
        )

        assert response.stale is False
        assert [s.id for s in response.sessions] == [earlier.id, later.id]

        mock_cache.set.assert_awaited_once()
        key, cached = mock_cache.set.call_args.args
        assert key == CacheKeyBuilder.availability(str(branch.id), None, "2026-10-20", "2026-10-20")
        assert [item["id"] for item in cached] == [str(earlier.id), str(later.id)]
        mock_cache.get.assert_not_awaited()

    async def test_activity_filter(self, db, make_session, branch, mock_cache):
        slime = await make_session(time="16:00")
        await make_session(time="10:00", activity=Activity.TUFTING, type="Small Tufting (8x8)")

        response = await AvailabilityService(db, cache=mock_cache).get_availability(
            branch.id, "2026-10-20", "2026-10-20", Activity.SLIME
        )

        assert [s.id for s in response.sessions] == [slime.id]

    async def test_sold_out_sessions_are_listed(self, db, make_session, branch, mock_cache):
        full = await make_session(total_seats=5, booked_seats=5)

        response = await AvailabilityService(db, cache=mock_cache).get_availability(
            branch.id, "2026-10-20", "2026-10-20"
        )

        assert response.sessions[0].id == full.id
        assert response.sessions[0].available_seats == 0
        assert response.sessions[0].is_sold_out is True

    async def test_serves_stale_copy_when_database_is_down(self, db, make_session, branch, mock_cache):
        await make_session()
        service = AvailabilityService(db, cache=mock_cache)
        fresh = await service.get_availability(branch.id, "2026-10-20", "2026-10-20")
        mock_cache.get.return_value = mock_cache.set.call_args.args[1]

        with patch.object(BookingService, "list_available_sessions", side_effect=database_down):
            stale = await service.get_availability(branch.id, "2026-10-20", "2026-10-20")

        assert stale.stale is True
        assert [s.id for s in stale.sessions] == [s.id for s in fresh.sessions]
        assert stale.sessions[0].available_seats == fresh.sessions[0].available_seats

    async def test_database_down_without_cache_propagates(self, db, branch, mock_cache):
        with patch.object(BookingService, "list_available_sessions", side_effect=database_down):
            with pytest.raises(OperationalError):
                await AvailabilityService(db, cache=mock_cache).get_availability(
                    branch.id, "2026-10-20", "2026-10-20"
                )

    async def test_date_bounds_are_optional(self, db, make_session, branch, mock_cache):
        early = await make_session(date="2026-10-20")
        late = await make_session(date="2026-11-03")
        service = AvailabilityService(db, cache=mock_cache)

        everything = await service.get_availability(branch.id)
        from_november = await service.get_availability(branch.id, date_from="2026-11-01")
        until_october = await service.get_availability(branch.id, date_to="2026-10-31")

        assert [s.id for s in everything.sessions] == [early.id, late.id]
        assert [s.id for s in from_november.sessions] == [late.id]
        assert [s.id for s in until_october.sessions] == [early.id]
        assert mock_cache.set.call_args_list[0].args[0] == f"availability:{branch.id}:all:open:open"
