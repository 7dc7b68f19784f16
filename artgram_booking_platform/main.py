"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from artgram_booking_platform.config import settings
from artgram_booking_platform.api import api_router
from artgram_booking_platform.database import init_database, close_database
from artgram_booking_platform.middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    artgram_error_handler,
    request_validation_error_handler,
)
from artgram_booking_platform.utils.exceptions import ArtgramError
from artgram_booking_platform.utils.health_check import (
    get_health_status,
    get_liveness_status,
    get_readiness_status,
)
from artgram_booking_platform.utils.logging_config import setup_logging

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file=settings.log_file or ("logs/artgram.log" if settings.environment == "production" else None),
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Artgram Booking Platform")
    await init_database()
    yield
    logger.info("Shutting down Artgram Booking Platform")
    await close_database()


app = FastAPI(
    title="Artgram Booking Platform API",
    description="""
    ## Artgram Booking Platform

    Seat booking and QR check-in for slime and tufting sessions at Artgram studios.

    ### Key Features

    * **Availability**: Bookable sessions per branch, activity and date range
    * **Bookings**: Atomic seat reservation that never oversells a session
    * **QR Check-in**: Each booking is checked in once; repeated scans report the first check-in
    * **Scheduling**: Template-based session generation and per-day bulk replacement
    * **Reconciliation**: Detection and repair of seat counter drift

    ### Authentication

    Tokens are issued by the identity service. Send them as
    `Authorization: Bearer <token>`.

    ### Error Handling

    ```json
    {
      "error": {
        "error_code": "CAPACITY_EXCEEDED",
        "message": "Not enough seats available: requested 3, available 2",
        "details": {"requested": 3, "available": 2},
        "suggestions": ["Try booking fewer seats"]
      },
      "error_id": "…",
      "timestamp": "…"
    }
    ```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "sessions", "description": "Session availability and scheduling"},
        {"name": "bookings", "description": "Seat booking and cancellation"},
        {"name": "verification", "description": "QR check-in for branch staff"},
        {"name": "admin", "description": "Administrative maintenance"},
        {"name": "health", "description": "System health and monitoring endpoints"},
    ],
    lifespan=lifespan,
)

# Domain errors raised inside routes
app.add_exception_handler(ArtgramError, artgram_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)

# Middleware: the last one added runs first

app.add_middleware(ErrorHandlerMiddleware, debug=settings.debug)

if settings.enable_request_logging:
    app.add_middleware(LoggingMiddleware, log_requests=True, log_responses=True)

if settings.debug:
    # Development: Allow all origins for easier development
    cors_origins = ["*"]
    cors_allow_credentials = False  # Cannot use credentials with wildcard origins
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

# Include API routes
app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Artgram Booking Platform API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Basic health check for uptime monitoring."""
    return {"status": "healthy", "service": "artgram-booking-platform"}


@app.get("/health/detailed", tags=["health"])
async def detailed_health_check():
    """Health of the database and the availability cache."""
    return await get_health_status()


@app.get("/health/ready", tags=["health"])
async def readiness_check():
    """Readiness probe: can the service handle requests?"""
    return await get_readiness_status()


@app.get("/health/live", tags=["health"])
async def liveness_check():
    """Liveness probe."""
    return await get_liveness_status()
