"""
Database models for the Artgram booking platform.
"""

from .base import Base
from .branch import Branch
from .session import ActivitySession, Activity
from .booking import Booking, BookingStatus, PaymentStatus
from .booking_history import BookingHistory, BookingAction

__all__ = [
    "Base",
    "Branch",
    "ActivitySession",
    "Activity",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "BookingHistory",
    "BookingAction",
]
