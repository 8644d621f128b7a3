"""
Structured Logging with Correlation IDs

Context-aware structured logging for request handling and the background
ConfigMap watcher. Every log line carries the request id of the request that
produced it (or "-" outside a request).

Usage:
    from multiswagger.core.structured_logging import configure_logging, set_correlation_id

    configure_logging(settings)

    token = set_correlation_id(request_id)
    logger.info("Fetching spec")
    reset_correlation_id(token)
"""
from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from datetime import datetime
from typing import Optional

from multiswagger.core.config import Settings

# Context variable for correlation ID (task-local under asyncio)
correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


# =============================================================================
# Correlation ID Management
# =============================================================================

def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set correlation ID in context; returns the token for ``reset``."""
    return correlation_id_var.set(correlation_id)


def reset_correlation_id(token: contextvars.Token):
    correlation_id_var.reset(token)



# =============================================================================
# Structured Logging Formatter
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """Log formatter that adds the correlation ID and an ISO timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or "-"
        record.timestamp = datetime.utcnow().isoformat() + "Z"
        return super().format(record)


# Format: [timestamp] [level] [correlation_id] [logger] message
STRUCTURED_FORMAT = (
    "[%(timestamp)s] [%(levelname)s] [req:%(correlation_id)s] "
    "[%(name)s] %(message)s"
)


def parse_level(name: Optional[str]) -> int:
    """Map a LOG_LEVEL value to a logging level; unknown or empty means INFO."""
    if not name:
        return logging.INFO
    return _LEVELS.get(name.strip().lower(), logging.INFO)


def configure_logging(settings: Settings) -> int:
    """
    Install the structured stdout handler on the root logger.

    DEV_MODE forces DEBUG regardless of LOG_LEVEL. Returns the level applied.
    """
    level = logging.DEBUG if settings.dev_mode else parse_level(settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(STRUCTURED_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # httpx logs every request at INFO; keep it for debugging only
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    if settings.dev_mode:
        logging.getLogger("multiswagger").debug("DEV_MODE enabled, setting log level to DEBUG")
    return level
