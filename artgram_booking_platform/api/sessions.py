"""
FastAPI routes for session availability and session administration.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.session import Activity
from ..schemas.booking import BookingResponse, SessionRosterResponse
from ..schemas.common import Actor
from ..schemas.session import (
    AvailabilityQuery,
    AvailabilityResponse,
    BulkReplaceRequest,
    BulkReplaceResponse,
    CapacityUpdate,
    GenerateSessionsRequest,
    GenerationReport,
    SessionCreate,
    SessionResponse,
    SessionUpdate,
)
from ..services.availability_service import AvailabilityService
from ..services.session_generation_service import SessionGenerationService
from ..services.session_service import SessionService
from ..utils.dependencies import get_current_staff
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    branch_id: UUID,
    date_from: Optional[str] = Query(None, description="First date (YYYY-MM-DD), open-ended when omitted"),
    date_to: Optional[str] = Query(None, description="Last date (YYYY-MM-DD), open-ended when omitted"),
    activity: Optional[Activity] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    List active sessions of a branch, ordered by date and time.

    Public endpoint. When the database is unreachable the last cached listing
    is returned with `stale` set.
    """
    try:
        query = AvailabilityQuery(branch_id=branch_id, activity=activity, date_from=date_from, date_to=date_to)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid availability query",
            field_errors={".".join(str(p) for p in err["loc"]) or "query": [err["msg"]] for err in e.errors()}
        )

    return await AvailabilityService(db).get_availability(
        query.branch_id, query.date_from, query.date_to, query.activity
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get a single session."""
    return await SessionService(db).get_session(session_id)


@router.get("/{session_id}/roster", response_model=SessionRosterResponse)
async def get_session_roster(
    session_id: UUID,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """List the bookings holding seats on a session (staff only)."""
    activity_session, bookings = await SessionService(db).get_session_roster(session_id, actor)
    return SessionRosterResponse(
        session_id=activity_session.id,
        total_seats=activity_session.total_seats,
        booked_seats=activity_session.booked_seats,
        available_seats=activity_session.available_seats,
        verified_seats=sum(b.seats for b in bookings if b.is_verified),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreate,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Create a single session (staff only)."""
    return await SessionService(db).create_session(request, actor)


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: UUID,
    request: SessionUpdate,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Edit session metadata; total seats cannot drop below booked seats."""
    return await SessionService(db).update_session(session_id, request, actor)


@router.put("/{session_id}/capacity", response_model=SessionResponse)
async def set_session_capacity(
    session_id: UUID,
    request: CapacityUpdate,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Change a session's total seats (staff only)."""
    return await SessionService(db).set_capacity(session_id, request.total_seats, actor)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: UUID,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Delete a session without bookings (staff only)."""
    await SessionService(db).delete_session(session_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/generate", response_model=GenerationReport)
async def generate_sessions(
    request: GenerateSessionsRequest,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Create sessions from templates on every date that has none yet.

    Mondays are skipped unless the branch opens on Mondays.
    """
    return await SessionGenerationService(db).ensure_sessions_for_dates(
        request.branch_id,
        request.dates,
        request.activity,
        actor,
        templates=request.templates
    )


@router.post("/bulk-replace", response_model=BulkReplaceResponse)
async def bulk_replace_sessions(
    request: BulkReplaceRequest,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Replace every session of a branch on one date (refused while live bookings exist)."""
    deleted, created = await SessionGenerationService(db).bulk_replace(
        request.branch_id, request.date, request.sessions, actor
    )
    return BulkReplaceResponse(
        date=request.date,
        deleted=deleted,
        created=len(created),
        sessions=[SessionResponse.model_validate(s) for s in created],
    )
