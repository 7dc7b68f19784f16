"""
Health check utilities for monitoring service dependencies.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..database import get_db_session
from ..cache import get_cache

logger = logging.getLogger(__name__)

STARTED_AT = time.time()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthCheckResult:
    """Result of a health check."""

    def __init__(self, service: str, healthy: bool, response_time: float, details: Optional[Dict[str, Any]] = None):
        self.service = service
        self.healthy = healthy
        self.response_time = response_time
        self.details = details or {}
        self.timestamp = _timestamp()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "healthy": self.healthy,
            "response_time": self.response_time,
            "details": self.details,
            "timestamp": self.timestamp
        }


async def check_database_health() -> HealthCheckResult:
    """Check database connectivity."""
    start_time = time.time()

    try:
        async with get_db_session() as db:
            result = await db.execute(text("SELECT 1"))
            healthy = result.scalar() == 1
    except (SQLAlchemyError, RuntimeError) as e:
        logger.error(f"Database health check failed: {e}")
        return HealthCheckResult(
            service="database",
            healthy=False,
            response_time=time.time() - start_time,
            details={"error": str(e), "error_type": type(e).__name__}
        )

    return HealthCheckResult(
        service="database",
        healthy=healthy,
        response_time=time.time() - start_time,
        details={"query": "SELECT 1", "result": "success" if healthy else "unexpected result"}
    )


async def check_redis_health() -> HealthCheckResult:
    """Check Redis connectivity."""
    start_time = time.time()
    healthy = await get_cache().ping()

    return HealthCheckResult(
        service="redis",
        healthy=healthy,
        response_time=time.time() - start_time,
        details={} if healthy else {"error": "Redis did not answer PING"}
    )


async def get_health_status() -> Dict[str, Any]:
    """Get health status of every dependency."""
    start_time = time.time()

    checks = await asyncio.gather(check_database_health(), check_redis_health())
    results = [check.to_dict() for check in checks]

    # The availability cache is optional; only the database decides overall health
    database_healthy = checks[0].healthy
    status = "healthy" if all(check.healthy for check in checks) else (
        "degraded" if database_healthy else "unhealthy"
    )

    return {
        "status": status,
        "timestamp": _timestamp(),
        "total_check_time": time.time() - start_time,
        "services": results,
        "summary": {
            "total_services": len(results),
            "healthy_services": sum(1 for r in results if r["healthy"]),
            "unhealthy_services": sum(1 for r in results if not r["healthy"])
        }
    }


async def get_readiness_status() -> Dict[str, Any]:
    """Get readiness status (can the service handle requests?)."""
    database = await check_database_health()
    return {
        "ready": database.healthy,
        "timestamp": _timestamp()
    }


async def get_liveness_status() -> Dict[str, Any]:
    """Get liveness status (is the service running?)."""
    return {
        "alive": True,
        "timestamp": _timestamp(),
        "uptime": time.time() - STARTED_AT
    }
