"""
Logging configuration for the Artgram Booking Platform.

Console output is plain text during development and JSON in production.
Every handler carries the current request id and masks QR tokens and
customer contact details before a record is written.
"""

import json
import logging
import logging.config
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

from ..config import get_settings

# Third-party loggers and the level they are kept at
LIBRARY_LEVELS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "celery": "INFO",
    "sqlalchemy.engine": "WARNING",
    "redis": "WARNING",
}

MASK = "***MASKED***"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = False
) -> None:
    """
    Set up application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional rotating log file path
        enable_json_logging: Enable JSON formatted logs
    """
    settings = get_settings()
    formatter = "json" if enable_json_logging else "text"
    filters = ["request_id", "sensitive_data"]

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": filters
        }
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": formatter,
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "filters": filters
        }

        # Errors get their own file in production
        if settings.environment == "production":
            handlers["error_file"] = dict(
                handlers["file"],
                level="ERROR",
                filename=log_file.replace(".log", "_errors.log"),
                backupCount=10
            )

    names = list(handlers)
    loggers = {
        name: {"level": level, "handlers": names, "propagate": False}
        for name, level in LIBRARY_LEVELS.items()
    }
    loggers["artgram_booking_platform"] = {"level": log_level, "handlers": names, "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d [%(request_id)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "json": {
                "()": "artgram_booking_platform.utils.logging_config.JSONFormatter"
            }
        },
        "filters": {
            "request_id": {
                "()": "artgram_booking_platform.utils.logging_config.RequestIDFilter"
            },
            "sensitive_data": {
                "()": "artgram_booking_platform.utils.logging_config.SensitiveDataFilter"
            }
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": names}
    })


class RequestIDFilter(logging.Filter):
    """Filter to add request ID to log records."""

    def filter(self, record):
        if not getattr(record, "request_id", None):
            from ..middleware.logging import request_id_var
            record.request_id = request_id_var.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask QR tokens, bearer credentials and customer contact details."""

    SENSITIVE_KEYS = ("token", "secret", "authorization", "email", "phone")

    QR_TOKEN = re.compile(r"\bQR-\d+-[0-9a-f]+\b")
    EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self._sanitize_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if value is None:
                continue
            if self._is_sensitive(key):
                setattr(record, key, MASK)
            elif isinstance(value, dict):
                setattr(record, key, self._sanitize_data(value))

        return True

    def _is_sensitive(self, key) -> bool:
        key = str(key).lower()
        return any(sensitive in key for sensitive in self.SENSITIVE_KEYS)

    def _sanitize_string(self, text: str) -> str:
        text = self.QR_TOKEN.sub("QR-***", text)
        return self.EMAIL.sub("***EMAIL***", text)

    def _sanitize_data(self, data):
        if isinstance(data, dict):
            return {
                key: MASK if self._is_sensitive(key) else self._sanitize_data(value)
                for key, value in data.items()
            }
        if isinstance(data, str):
            return self._sanitize_string(data)
        if isinstance(data, (list, tuple)):
            return type(data)(self._sanitize_data(item) for item in data)
        return data


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    # Attributes every LogRecord carries; anything else came in through `extra`
    STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
        "message", "asctime", "request_id"
    }

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in self.STANDARD_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def log_business_event(event_type: str, details: Dict[str, Any], user_id: Optional[str] = None):
    """Log a booking, check-in or scheduling event."""
    logging.getLogger("artgram_booking_platform.business").info(
        f"Business event: {event_type}",
        extra={"event_type": event_type, "business_event": True, "user_id": user_id, **details}
    )


def log_security_event(event_type: str, details: Dict[str, Any], severity: str = "WARNING"):
    """Log a security-related event such as a rejected token or cross-branch scan."""
    logger = logging.getLogger("artgram_booking_platform.security")
    log_method = getattr(logger, severity.lower(), logger.warning)
    log_method(
        f"Security event: {event_type}",
        extra={"event_type": event_type, "security_event": True, "severity": severity, **details}
    )
