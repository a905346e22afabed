"""Logging and health checks shared by every router."""

from .health import HealthStatus, ServiceHealth
from .logging_config import (
    LoggerAdapter,
    RequestContext,
    RequestLoggingMiddleware,
    current_context,
    generate_request_id,
    get_logger,
    reset_request_context,
    set_request_context,
    setup_logging,
)

__all__ = [
    "HealthStatus",
    "ServiceHealth",
    "LoggerAdapter",
    "RequestContext",
    "RequestLoggingMiddleware",
    "current_context",
    "generate_request_id",
    "get_logger",
    "reset_request_context",
    "set_request_context",
    "setup_logging",
]
