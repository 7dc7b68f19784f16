"""
FastAPI routes for QR check-in.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.booking import BookingResponse
from ..schemas.common import Actor
from ..schemas.verification import VerificationResponse, VerifyRequest
from ..services.verification_service import VerificationService, summarize
from ..utils.dependencies import get_current_staff

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/verify", response_model=VerificationResponse)
async def verify_booking(
    request: VerifyRequest,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Check a customer in by QR code.

    Repeated scans of the same code succeed with outcome `already_verified`
    and the original verification time and verifier.
    """
    result = await VerificationService(db).verify(request.qr_code, actor)

    return VerificationResponse(
        outcome=result.outcome,
        message=result.message,
        booking=summarize(result.booking),
        verified_at=result.verified_at,
        verified_by=result.verified_by,
    )


@router.post("/lookup", response_model=BookingResponse)
async def lookup_booking(
    request: VerifyRequest,
    actor: Actor = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Show the booking behind a QR code without checking it in."""
    return await VerificationService(db).lookup(request.qr_code, actor)
