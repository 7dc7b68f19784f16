"""API endpoints for the Artgram Booking Platform."""

from fastapi import APIRouter
from ..schemas.common import ErrorResponse
from .sessions import router as sessions_router
from .bookings import router as bookings_router
from .verification import router as verification_router
from .admin import router as admin_router

# Error envelope rendered by the domain error handler
ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Outside the actor's role or branch"},
    404: {"model": ErrorResponse, "description": "Session, booking, branch or QR code not found"},
    409: {"model": ErrorResponse, "description": "Capacity or booking state conflict"},
    422: {"model": ErrorResponse, "description": "Invalid input or branch policy violation"},
}

# Create main API router
api_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)

# Include all routers
api_router.include_router(sessions_router)
api_router.include_router(bookings_router)
api_router.include_router(verification_router)
api_router.include_router(admin_router)

__all__ = ["api_router"]
