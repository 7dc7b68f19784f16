"""Business logic services for the Artgram Booking Platform."""

from .capacity_service import CapacityManager, SeatCounts
from .session_service import SessionService
from .booking_service import BookingService
from .verification_service import VerificationService, VerificationResult, parse_credential
from .session_generation_service import SessionGenerationService
from .availability_service import AvailabilityService
from .reconciliation_service import ReconciliationService

__all__ = [
    "CapacityManager",
    "SeatCounts",
    "SessionService",
    "BookingService",
    "VerificationService",
    "VerificationResult",
    "parse_credential",
    "SessionGenerationService",
    "AvailabilityService",
    "ReconciliationService",
]
