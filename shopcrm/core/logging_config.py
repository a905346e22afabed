"""
Structured JSON logging for shopcrm.

One JSON object per record: service and release identifiers, the request the
record belongs to (request id, correlation id, acting user) and the source
location. Business events attach their payload with
``logger.info(msg, extra={'extra_fields': {...}})``; it is emitted under
``custom`` after credentials have been redacted.
"""

import logging
import logging.handlers
import os
import sys
import json
import time
import traceback
import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

REDACTED = "***REDACTED***"

# Health endpoints are polled constantly; they log at DEBUG only
QUIET_PATHS = ("/health", "/metrics")


@dataclass(frozen=True)
class RequestContext:
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None
    # "<user_type>:<id>" once the bearer token has been verified
    user: Optional[str] = None

    def as_trace(self) -> Optional[Dict[str, str]]:
        trace = {key: value for key, value in asdict(self).items() if value}
        return trace or None


_request_context: ContextVar[RequestContext] = ContextVar("shopcrm_request_context", default=RequestContext())


def current_context() -> RequestContext:
    return _request_context.get()


def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    """Merge the given values into the context of the running request."""
    changes = {
        key: value
        for key, value in (("request_id", request_id), ("correlation_id", correlation_id), ("user", user_id))
        if value
    }
    if changes:
        _request_context.set(replace(_request_context.get(), **changes))


def reset_request_context() -> None:
    _request_context.set(RequestContext())


def generate_request_id() -> str:
    return uuid.uuid4().hex


class StructuredFormatter(logging.Formatter):
    """Render records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": os.getenv("SERVICE_NAME", "shopcrm"),
            "environment": os.getenv("ENVIRONMENT", "development"),
            "version": os.getenv("SERVICE_VERSION", "1.0.0"),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        trace = current_context().as_trace()
        if trace:
            payload["trace"] = trace

        custom = getattr(record, "extra_fields", None)
        if custom:
            payload["custom"] = custom

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            payload["duration_ms"] = round(duration_ms, 2)

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["error"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "stacktrace": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
            }

        return json.dumps(payload, default=str)


class SecurityFilter(logging.Filter):
    """Redact credentials from ``extra_fields``, including nested dicts and lists."""

    SENSITIVE_KEYS = frozenset({
        "password", "password_hash", "token", "access_token", "authorization",
        "cookie", "secret", "api_key", "smtp_pass", "stripe_secret_key",
        "stripe_webhook_secret",
    })

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: REDACTED if str(key).lower() in self.SENSITIVE_KEYS else self._scrub(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self._scrub(item) for item in value]
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            record.extra_fields = self._scrub(extra_fields)
        return True


def _handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(SecurityFilter())
    return handler


def setup_logging(
    service_name: str,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = False,
    log_file: Optional[str] = None
) -> None:
    """
    Route every logger through JSON handlers on the root logger.

    Args:
        service_name: Reported as ``service`` on every record
        level: Root log level name
        enable_console: Write to stdout
        enable_file: Also write to ``log_file`` (rotated at 10MB, 5 backups)
        log_file: Path used when ``enable_file`` is set
    """
    os.environ["SERVICE_NAME"] = service_name

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    if enable_console:
        root.addHandler(_handler(logging.StreamHandler(sys.stdout)))
    if enable_file and log_file:
        root.addHandler(_handler(logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)))

    for noisy, noisy_level in (("uvicorn.access", logging.WARNING), ("sqlalchemy.engine", logging.WARNING), ("alembic", logging.INFO)):
        logging.getLogger(noisy).setLevel(noisy_level)

    root.info(
        "Logging initialized",
        extra={'extra_fields': {'service': service_name, 'level': level, 'file': log_file if enable_file else None}}
    )


class LoggerAdapter(logging.LoggerAdapter):
    """Keeps caller-supplied ``extra`` intact; trace data comes from the context var."""

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {})
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), {})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns each request an id (or adopts the caller's ``X-Request-ID``),
    logs start and completion with the duration and echoes the id back.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        reset_request_context()
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_context(request_id=request_id, correlation_id=request.headers.get("X-Correlation-ID"))

        logger = get_logger("shopcrm.http")
        level = logging.DEBUG if request.url.path.startswith(QUIET_PATHS) else logging.INFO
        fields = {"method": request.method, "path": request.url.path}

        logger.log(level, f"{request.method} {request.url.path} started",
                   extra={'extra_fields': {**fields, 'client_ip': request.client.host if request.client else None}})

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"{request.method} {request.url.path} failed",
                exc_info=True,
                extra={'extra_fields': fields, 'duration_ms': (time.perf_counter() - started) * 1000},
            )
            raise

        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={'extra_fields': {**fields, 'status_code': response.status_code},
                   'duration_ms': (time.perf_counter() - started) * 1000},
        )
        response.headers["X-Request-ID"] = request_id
        return response
