"""
Availability listing with a last-known-good copy in Redis.

The database is always asked first. Each fresh answer is written to the
cache, and the cached copy is served, flagged stale, only while the database
cannot be reached. Booking and check-in never read from here.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheKeyBuilder, RedisCache, get_cache
from ..config import get_settings
from ..models.session import Activity
from ..schemas.session import AvailabilityResponse, SessionResponse
from .booking_service import BookingService

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for customer-facing availability listings."""

    def __init__(self, session: AsyncSession, cache: Optional[RedisCache] = None):
        self.session = session
        self.cache = cache or get_cache()
        self.settings = get_settings()

    async def get_availability(
        self,
        branch_id: UUID,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        activity: Optional[Activity] = None
    ) -> AvailabilityResponse:
        """
        List bookable sessions, falling back to the cached copy on database failure.

        Raises:
            DBAPIError: When the database fails and nothing is cached
        """
        key = CacheKeyBuilder.availability(
            str(branch_id), activity.value if activity else None, date_from, date_to
        )

        try:
            sessions = await BookingService(self.session).list_available_sessions(
                branch_id, date_from, date_to, activity
            )
        except DBAPIError as e:
            await self.session.rollback()
            cached = await self.cache.get(key)
            if cached is None:
                logger.error(f"Availability query failed and no cached copy exists for {key}: {e}")
                raise
            logger.warning(f"Serving stale availability for {key}: {e}")
            return AvailabilityResponse(
                sessions=[SessionResponse.model_validate(item) for item in cached],
                stale=True
            )

        response = AvailabilityResponse(
            sessions=[SessionResponse.model_validate(s) for s in sessions],
            stale=False
        )
        await self.cache.set(
            key,
            [item.model_dump(mode="json") for item in response.sessions],
            ttl=self.settings.availability_cache_ttl_seconds
        )
        return response
