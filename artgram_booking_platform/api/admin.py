"""
FastAPI routes for administrative maintenance.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.admin import ReconciliationReport
from ..schemas.common import Actor
from ..services.reconciliation_service import ReconciliationService
from ..utils.dependencies import get_current_admin

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/reconciliation", response_model=ReconciliationReport)
async def check_seat_counters(
    branch_id: Optional[UUID] = None,
    date_from: Optional[str] = Query(None, description="Only sessions on or after this date"),
    actor: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Report sessions whose booked seats disagree with their live bookings."""
    return await ReconciliationService(db).check(branch_id=branch_id, date_from=date_from)


@router.post("/reconciliation/repair", response_model=ReconciliationReport)
async def repair_seat_counters(
    branch_id: Optional[UUID] = None,
    date_from: Optional[str] = Query(None, description="Only sessions on or after this date"),
    actor: Actor = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Rewrite drifted seat counters from live bookings."""
    logger.warning(f"Seat reconciliation repair requested by {actor.id}")
    return await ReconciliationService(db).repair(branch_id=branch_id, date_from=date_from)
