"""
shopcrm API

Customer accounts, catalog, carts and the order workflow behind one FastAPI
application. Run with ``uvicorn shopcrm.main:app``.
"""

from contextlib import asynccontextmanager
import os
import subprocess

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shopcrm import __version__
from shopcrm.api import (
    admins, audit_logs, auth, cart, catalog, courses, customers, emails, orders, reports, settings as settings_api, tags,
)
from shopcrm.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging
from shopcrm.core_settings import get_settings
from shopcrm.domain.errors import ShopError
from shopcrm.infrastructure.db import engine, init_models

SERVICE_NAME = "shopcrm"
SERVICE_VERSION = os.getenv("SERVICE_VERSION", __version__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

settings = get_settings()
setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)
logger = get_logger(__name__)


def run_migrations() -> None:
    """``alembic upgrade head`` from the project root; failures are logged, not fatal."""
    logger.info("Running database migrations")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.error(f"Could not start alembic: {exc}")
        return
    if result.returncode:
        logger.warning("Migrations did not complete", extra={'extra_fields': {'stderr': result.stderr[-2000:]}})
    else:
        logger.info("Database migrations completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {SERVICE_NAME} {SERVICE_VERSION}")
    if settings.RUN_MIGRATIONS:
        run_migrations()
    init_models()
    yield
    logger.info(f"Stopping {SERVICE_NAME}")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        return response


app = FastAPI(
    title=SERVICE_NAME,
    description="Customer management and order fulfilment API",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    fields = {'code': exc.code, 'path': request.url.path}
    if exc.status_code >= 500:
        logger.error(exc.message, exc_info=exc, extra={'extra_fields': fields})
    else:
        logger.info(f"Request rejected: {exc.message}", extra={'extra_fields': fields})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=exc,
        extra={'extra_fields': {'method': request.method, 'path': request.url.path}},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(ServiceHealth(SERVICE_NAME, engine, SERVICE_VERSION).create_health_router())
for router in (
    auth.router,
    customers.router,
    tags.router,
    courses.router,
    catalog.categories,
    catalog.products,
    catalog.shipping_rates,
    catalog.shipping,
    cart.router,
    orders.router,
    emails.templates,
    emails.emails,
    admins.router,
    audit_logs.router,
    settings_api.router,
    reports.router,
):
    app.include_router(router)


@app.get("/")
async def root():
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "status": "running", "docs": "/api/docs"}


@app.get("/info")
async def info():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "startup": "/health/startup",
            "metrics": "/metrics",
            "docs": "/api/docs",
        },
    }
