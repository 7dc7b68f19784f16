"""
Error handling for the Artgram Booking Platform.

Domain errors are turned into JSON responses by `artgram_error_handler`,
registered on the app. `ErrorHandlerMiddleware` catches everything else
(database failures, unexpected exceptions) so clients always get the same
error envelope.
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError, TimeoutError as SQLTimeoutError

from ..utils.exceptions import (
    ArtgramError,
    ErrorCode,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ExternalServiceError,
)

logger = logging.getLogger(__name__)


STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_CAPACITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.SESSION_INACTIVE: status.HTTP_404_NOT_FOUND,
    ErrorCode.SESSION_HAS_BOOKINGS: status.HTTP_409_CONFLICT,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.BOOKING_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_BOOKING_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.TOKEN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BRANCH_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ACTIVITY_NOT_ALLOWED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.BRANCH_CLOSED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_status_code_for_error(exc: ArtgramError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(error: ArtgramError, status_code: int, error_id: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error.to_dict(),
            "error_id": error_id,
            "timestamp": _timestamp()
        },
        headers=headers
    )


async def artgram_error_handler(request: Request, exc: ArtgramError) -> JSONResponse:
    """Render a domain error raised by a route."""
    error_id = str(uuid4())
    status_code = get_status_code_for_error(exc)

    log = logger.warning if isinstance(exc, (ValidationError, NotFoundError, AuthorizationError)) else logger.info
    if isinstance(exc, ExternalServiceError):
        log = logger.error
    log(
        f"{exc.error_code.value} [{error_id}] {request.method} {request.url.path}: {exc.message}",
        extra={"error_id": error_id, "error_code": exc.error_code.value, "details": exc.details}
    )

    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return _error_response(exc, status_code, error_id, headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body and query validation failures in the common envelope."""
    field_errors = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors.setdefault(field_path, []).append(error["msg"])

    validation_error = ValidationError("Request validation failed", field_errors=field_errors)
    return _error_response(validation_error, status.HTTP_422_UNPROCESSABLE_ENTITY, str(uuid4()))


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware turning unexpected and database errors into JSON responses."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc, str(uuid4()))

    def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        """Handle different types of exceptions and return appropriate responses."""
        logger.error(
            f"Unhandled error [{error_id}] {request.method} {request.url.path}: {exc}",
            extra={"error_id": error_id, "error_type": type(exc).__name__},
            exc_info=True
        )

        if isinstance(exc, ArtgramError):
            return _error_response(exc, get_status_code_for_error(exc), error_id)
        if isinstance(exc, IntegrityError):
            return self._handle_integrity_error(exc, error_id)
        if isinstance(exc, (OperationalError, SQLTimeoutError, DBAPIError)):
            return self._handle_database_error(exc, error_id)
        return self._handle_unexpected_error(exc, error_id)

    def _handle_integrity_error(self, exc: IntegrityError, error_id: str) -> JSONResponse:
        """Handle database integrity constraint violations."""
        error_message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()

        if "unique" in error_message:
            error = ValidationError(
                "A record with this information already exists",
                details={"constraint_type": "unique"}
            )
        elif "foreign key" in error_message:
            error = ValidationError(
                "Referenced resource does not exist",
                details={"constraint_type": "foreign_key"}
            )
        elif "check" in error_message:
            error = ValidationError(
                "Data violates a consistency rule",
                details={"constraint_type": "check"}
            )
        else:
            error = ValidationError(
                "Data integrity constraint violation",
                details={"constraint_type": "unknown"}
            )

        return _error_response(error, status.HTTP_409_CONFLICT, error_id)

    def _handle_database_error(self, exc: Exception, error_id: str) -> JSONResponse:
        """Handle database connection and operational errors."""
        error = ExternalServiceError(
            "database",
            "Database service temporarily unavailable",
            details={"error_type": type(exc).__name__}
        )
        return _error_response(error, status.HTTP_503_SERVICE_UNAVAILABLE, error_id, {"Retry-After": "30"})

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        """Handle unexpected errors."""
        error = ArtgramError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )

        response = _error_response(error, status.HTTP_500_INTERNAL_SERVER_ERROR, error_id)
        if self.debug:
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": error.to_dict(),
                    "error_id": error_id,
                    "timestamp": _timestamp(),
                    "debug": {"exception": str(exc), "traceback": traceback.format_exc()}
                }
            )
        return response
