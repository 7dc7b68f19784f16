"""
Custom exceptions for the Artgram Booking Platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"

    # Capacity errors
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_INACTIVE = "SESSION_INACTIVE"
    SESSION_HAS_BOOKINGS = "SESSION_HAS_BOOKINGS"

    # Booking lifecycle errors
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    BOOKING_ALREADY_CANCELLED = "BOOKING_ALREADY_CANCELLED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    INVALID_BOOKING_STATE = "INVALID_BOOKING_STATE"

    # Check-in errors
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"

    # Branch policy errors
    BRANCH_NOT_FOUND = "BRANCH_NOT_FOUND"
    ACTIVITY_NOT_ALLOWED = "ACTIVITY_NOT_ALLOWED"
    BRANCH_CLOSED = "BRANCH_CLOSED"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


class ArtgramError(Exception):
    """Base exception class for the Artgram platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(ArtgramError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        details = kwargs.pop("details", None) or ({"field_errors": field_errors} if field_errors else None)
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(ArtgramError):
    """Base exception for resource not found errors."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        **kwargs
    ):
        super().__init__(
            message,
            error_code=error_code,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class SessionNotFoundError(NotFoundError):
    """Exception raised when a session is not found."""

    def __init__(self, session_id: str, **kwargs):
        super().__init__(
            f"Session {session_id} not found",
            resource_type="session",
            resource_id=str(session_id),
            error_code=ErrorCode.SESSION_NOT_FOUND,
            suggestions=["Check the session ID", "Refresh the session list"],
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=str(booking_id),
            error_code=ErrorCode.BOOKING_NOT_FOUND,
            suggestions=["Check the booking ID", "View your booking history"],
            **kwargs
        )


class BranchNotFoundError(NotFoundError):
    """Exception raised when a branch is not found."""

    def __init__(self, branch_id: str, **kwargs):
        super().__init__(
            f"Branch {branch_id} not found",
            resource_type="branch",
            resource_id=str(branch_id),
            error_code=ErrorCode.BRANCH_NOT_FOUND,
            **kwargs
        )


class TokenNotFoundError(NotFoundError):
    """Exception raised when a check-in code matches no booking."""

    def __init__(self, **kwargs):
        super().__init__(
            "Invalid QR code",
            error_code=ErrorCode.TOKEN_NOT_FOUND,
            suggestions=["Scan the code again", "Search the booking by customer name"],
            **kwargs
        )


class AuthorizationError(ArtgramError):
    """Exception raised for authorization failures."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            suggestions=["Contact an administrator for access"],
            **kwargs
        )


class BusinessLogicError(ArtgramError):
    """Base exception for business logic violations."""
    pass


class CapacityExceededError(BusinessLogicError):
    """Exception raised when a session has fewer free seats than requested."""

    def __init__(self, requested: int, available: int, session_id: Optional[str] = None, **kwargs):
        super().__init__(
            f"Not enough seats available: requested {requested}, available {available}",
            error_code=ErrorCode.CAPACITY_EXCEEDED,
            details={"requested": requested, "available": available, "session_id": session_id},
            suggestions=["Try booking fewer seats", "Choose another time slot"],
            **kwargs
        )


class InvalidCapacityError(BusinessLogicError):
    """Exception raised when capacity would drop below the seats already booked."""

    def __init__(self, session_id: str, requested_total: int, booked: int, **kwargs):
        super().__init__(
            f"Cannot set total seats to {requested_total}: {booked} seats are already booked",
            error_code=ErrorCode.INVALID_CAPACITY,
            details={"session_id": str(session_id), "requested_total": requested_total, "booked_seats": booked},
            suggestions=["Cancel bookings first", f"Use a total of at least {booked}"],
            **kwargs
        )


class SessionInactiveError(BusinessLogicError):
    """Exception raised when booking a disabled session."""

    def __init__(self, session_id: str, **kwargs):
        super().__init__(
            f"Session {session_id} is not active",
            error_code=ErrorCode.SESSION_INACTIVE,
            details={"session_id": str(session_id)},
            suggestions=["Choose another time slot"],
            **kwargs
        )


class SessionHasBookingsError(BusinessLogicError):
    """Exception raised when deleting sessions that still have live bookings."""

    def __init__(self, session_ids: List[str], booking_count: int, **kwargs):
        super().__init__(
            f"Cannot delete session(s) with {booking_count} existing booking(s)",
            error_code=ErrorCode.SESSION_HAS_BOOKINGS,
            details={"session_ids": [str(s) for s in session_ids], "booking_count": booking_count},
            suggestions=["Cancel the bookings first", "Deactivate the session instead"],
            **kwargs
        )


class InvalidBookingStateError(BusinessLogicError):
    """Exception raised when booking is in invalid state for operation."""

    def __init__(self, booking_id: str, current_state: str, required_state: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} is in {current_state} state, required {required_state}",
            error_code=kwargs.pop("error_code", ErrorCode.INVALID_BOOKING_STATE),
            details={"booking_id": str(booking_id), "current_state": current_state, "required_state": required_state},
            **kwargs
        )


class BookingAlreadyCancelledError(InvalidBookingStateError):
    """Exception raised when cancelling a booking twice."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            booking_id,
            current_state="cancelled",
            required_state="active",
            error_code=ErrorCode.BOOKING_ALREADY_CANCELLED,
            **kwargs
        )
        self.message = f"Booking {booking_id} is already cancelled"
        self.args = (self.message,)


class BookingCancelledError(InvalidBookingStateError):
    """Exception raised when checking in a cancelled booking."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            booking_id,
            current_state="cancelled",
            required_state="active",
            error_code=ErrorCode.BOOKING_CANCELLED,
            suggestions=["Ask the customer for a valid booking"],
            **kwargs
        )
        self.message = f"Booking {booking_id} was cancelled and cannot be checked in"
        self.args = (self.message,)


class ActivityNotAllowedError(BusinessLogicError):
    """Exception raised when a branch does not run the requested activity."""

    def __init__(self, branch_id: str, activity: str, **kwargs):
        super().__init__(
            f"This branch does not allow {activity} activities",
            error_code=ErrorCode.ACTIVITY_NOT_ALLOWED,
            details={"branch_id": str(branch_id), "activity": activity},
            **kwargs
        )


class BranchClosedError(BusinessLogicError):
    """Exception raised when scheduling on a weekday the branch is closed."""

    def __init__(self, branch_id: str, date: str, **kwargs):
        super().__init__(
            f"This branch is closed on Mondays ({date})",
            error_code=ErrorCode.BRANCH_CLOSED,
            details={"branch_id": str(branch_id), "date": date},
            suggestions=["Pick another date", "Enable Monday sessions for the branch"],
            **kwargs
        )


class ExternalServiceError(ArtgramError):
    """Exception raised for external service failures."""

    def __init__(self, service_name: str, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=kwargs.pop("error_code", ErrorCode.EXTERNAL_SERVICE_ERROR),
            details=kwargs.pop("details", None) or {"service_name": service_name, "status_code": status_code},
            suggestions=["Try again later", "Contact support if problem persists"],
            **kwargs
        )
