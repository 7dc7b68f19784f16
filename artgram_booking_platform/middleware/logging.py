"""
Logging middleware for request/response tracking.
"""

import logging
import time
import contextvars
from typing import Dict, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Context variable for request ID
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar('request_id', default='no-request-id')

SLOW_REQUEST_SECONDS = 2.0


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging with a per-request ID."""

    def __init__(
        self,
        app,
        log_requests: bool = True,
        log_responses: bool = True,
        sensitive_headers: Optional[list] = None
    ):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.sensitive_headers = sensitive_headers or [
            "authorization", "cookie", "x-api-key", "x-auth-token"
        ]

    async def dispatch(self, request: Request, call_next):
        """Log request and response with a shared request ID."""
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.time()

        if self.log_requests:
            self._log_request(request, request_id)

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            if self.log_responses:
                self._log_response(request, response, request_id, process_time)

            return response

        except Exception as exc:
            process_time = time.time() - start_time
            logger.error(
                f"Request exception: {type(exc).__name__}",
                extra={
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                    "process_time": process_time,
                    "method": request.method,
                    "path": request.url.path,
                },
                exc_info=True
            )
            raise
        finally:
            request_id_var.reset(token)

    def _log_request(self, request: Request, request_id: str):
        """Log incoming request details."""
        request_info = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client_ip": self._get_client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            "headers": self._sanitize_headers(dict(request.headers)),
        }

        path = request.url.path
        if path.startswith("/api/v1/bookings") or path.startswith("/api/v1/verification"):
            logger.info(f"Booking request: {request.method} {path}", extra=request_info)
        elif path in ["/health", "/", "/docs", "/redoc"] or path.startswith("/health/"):
            logger.debug(f"Health check: {request.method} {path}", extra=request_info)
        else:
            logger.info(f"API request: {request.method} {path}", extra=request_info)

    def _log_response(self, request: Request, response: Response, request_id: str, process_time: float):
        """Log response details."""
        response_info = {
            "request_id": request_id,
            "status_code": response.status_code,
            "process_time": process_time,
            "response_size": response.headers.get("content-length"),
        }

        if 200 <= response.status_code < 300:
            logger.info(f"Response: {response.status_code} ({process_time:.4f}s)", extra=response_info)
        elif 400 <= response.status_code < 500:
            logger.warning(f"Client error: {response.status_code} ({process_time:.4f}s)", extra=response_info)
        else:
            logger.error(f"Server error: {response.status_code} ({process_time:.4f}s)", extra=response_info)

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {process_time:.4f}s",
                extra={
                    "request_id": request_id,
                    "slow_request": True,
                    "process_time": process_time,
                    "threshold": SLOW_REQUEST_SECONDS
                }
            )

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _sanitize_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Remove or mask sensitive headers."""
        sanitized = {}

        for key, value in headers.items():
            key_lower = key.lower()
            if key_lower in self.sensitive_headers:
                if key_lower == "authorization" and value.startswith("Bearer "):
                    sanitized[key] = f"Bearer ***{value[-4:]}"
                else:
                    sanitized[key] = "***MASKED***"
            else:
                sanitized[key] = value

        return sanitized
