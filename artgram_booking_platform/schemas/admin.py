"""
Pydantic schemas for administrative operations.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from ..models.session import Activity


class SeatDrift(BaseModel):
    """A session whose booked seats disagree with its live bookings."""

    session_id: UUID
    branch_id: UUID
    activity: Activity
    date: str
    time: str
    total_seats: int
    recorded_booked_seats: int
    actual_booked_seats: int
    repaired: bool = False
    error: Optional[str] = None


class ReconciliationReport(BaseModel):
    """Result of a reconciliation run."""

    checked_at: datetime
    sessions_checked: int
    drift: List[SeatDrift]
    repaired: int = 0
