"""
Celery tasks for seat counter reconciliation.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .celery_app import celery_app
from ..config import get_settings
from ..database import create_database_engine, create_session_factory
from ..services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)


async def run_reconciliation(
    session_factory: async_sessionmaker[AsyncSession],
    repair: bool,
    branch_id: Optional[UUID] = None
) -> dict:
    """
    Check (and optionally repair) seat counters in one session.

    Returns:
        Summary of the run, suitable as a Celery result
    """
    async with session_factory() as session:
        service = ReconciliationService(session)
        if repair:
            report = await service.repair(branch_id=branch_id)
        else:
            report = await service.check(branch_id=branch_id)
        await session.commit()

    if report.drift:
        logger.warning(
            f"Seat drift found on {len(report.drift)} of {report.sessions_checked} sessions "
            f"({report.repaired} repaired)"
        )
    else:
        logger.info(f"No seat drift found on {report.sessions_checked} sessions")

    return {
        "sessions_checked": report.sessions_checked,
        "drifted": len(report.drift),
        "repaired": report.repaired,
        "drifted_session_ids": [str(item.session_id) for item in report.drift],
    }


@celery_app.task(name="reconcile_seats_task")
def reconcile_seats_task(branch_id: Optional[str] = None, repair: Optional[bool] = None):
    """
    Periodic task comparing each session's booked seats with its bookings.

    Repairs drift only when asked to or when reconciliation_auto_repair is
    enabled; otherwise drift is reported for an admin to act on.

    Args:
        branch_id: Optional UUID string limiting the run to one branch
        repair: Overrides the reconciliation_auto_repair setting
    """
    settings = get_settings()
    should_repair = settings.reconciliation_auto_repair if repair is None else repair

    async def _reconcile():
        # Worker processes do not run the API lifespan, so they own an engine per run
        engine = create_database_engine()
        try:
            return await run_reconciliation(
                create_session_factory(engine),
                should_repair,
                UUID(branch_id) if branch_id else None
            )
        finally:
            await engine.dispose()

    logger.info(f"Starting seat reconciliation (repair={should_repair})")

    # Run the async function
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_reconcile())
    finally:
        loop.close()
