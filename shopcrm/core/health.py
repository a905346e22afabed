"""
Health endpoints for the shop API.

``/health`` and ``/health/live`` never touch a dependency. ``/health/ready``
runs every component check and answers 503 when one of them fails; redis is
only pinged when ``REDIS_URL`` is configured and can at worst warn, since the
API keeps working without it.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from typing import Any, Callable, Dict, Optional
import os
import time
import redis
from datetime import datetime, timezone
from enum import Enum
import psutil
import logging

logger = logging.getLogger(__name__)

Check = Dict[str, Any]

# (fail below, warn below)
DISK_FREE_GB = (1, 5)
MEMORY_AVAILABLE_MB = (100, 500)


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _component(state: HealthStatus, kind: str, value: Optional[float] = None,
               unit: Optional[str] = None, output: Optional[str] = None) -> Check:
    result: Check = {"status": state.value, "componentType": kind, "time": _timestamp()}
    if value is not None:
        result["observedValue"] = f"{value:.2f}"
        result["observedUnit"] = unit
    if output:
        result["output"] = output
    return result


def _graded(value: float, limits: tuple) -> HealthStatus:
    fail_below, warn_below = limits
    if value < fail_below:
        return HealthStatus.FAIL
    if value < warn_below:
        return HealthStatus.WARN
    return HealthStatus.PASS


def overall(checks: Dict[str, Check]) -> HealthStatus:
    seen = {check["status"] for check in checks.values()}
    for state in (HealthStatus.FAIL, HealthStatus.WARN):
        if state.value in seen:
            return state
    return HealthStatus.PASS


class ServiceHealth:
    """Owns the health router and the component checks behind it."""

    def __init__(self, service_name: str, engine: Engine, version: str = "1.0.0"):
        self.service_name = service_name
        self.engine = engine
        self.version = version
        self.started = time.time()
        self.readiness_runs = 0

    # component checks

    def _timed(self, kind: str, call: Callable[[], None], failure: HealthStatus) -> Check:
        began = time.perf_counter()
        try:
            call()
        except Exception as exc:
            logger.warning(f"{kind} health check failed: {exc}")
            return _component(failure, kind, output=str(exc))
        return _component(HealthStatus.PASS, kind, (time.perf_counter() - began) * 1000, "ms")

    def check_database(self) -> Check:
        def ping():
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()

        return self._timed("datastore", ping, HealthStatus.FAIL)

    def check_redis(self, url: str) -> Check:
        return self._timed(
            "cache",
            lambda: redis.from_url(url, socket_connect_timeout=1).ping(),
            HealthStatus.WARN,
        )

    def check_disk(self) -> Check:
        free_gb = psutil.disk_usage("/").free / (1024 ** 3)
        return _component(_graded(free_gb, DISK_FREE_GB), "system", free_gb, "GB")

    def check_memory(self) -> Check:
        available_mb = psutil.virtual_memory().available / (1024 ** 2)
        return _component(_graded(available_mb, MEMORY_AVAILABLE_MB), "system", available_mb, "MB")

    def check_migrations(self) -> Check:
        try:
            applied = inspect(self.engine).has_table("alembic_version")
        except Exception as exc:
            return _component(HealthStatus.FAIL, "datastore", output=str(exc))
        if applied:
            return _component(HealthStatus.PASS, "datastore")
        # create_all without alembic still serves requests
        return _component(HealthStatus.WARN, "datastore", output="alembic_version table not found")

    def readiness_checks(self) -> Dict[str, Check]:
        self.readiness_runs += 1
        checks = {"database:connectivity": self.check_database()}
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            checks["cache:connectivity"] = self.check_redis(redis_url)
        checks["storage:disk_space"] = self.check_disk()
        checks["system:memory"] = self.check_memory()
        return checks

    # router

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])
        release = os.getenv("RELEASE_ID", "unknown")

        @router.get("/health")
        async def health() -> Dict[str, Any]:
            return {
                "status": HealthStatus.PASS.value,
                "service": self.service_name,
                "version": self.version,
                "releaseId": release,
                "timestamp": _timestamp(),
            }

        @router.get("/health/live")
        async def live() -> Dict[str, str]:
            return {"status": "alive"}

        @router.get("/health/ready")
        async def ready() -> JSONResponse:
            checks = self.readiness_checks()
            state = overall(checks)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE if state is HealthStatus.FAIL else status.HTTP_200_OK,
                content={
                    "status": state.value,
                    "serviceId": self.service_name,
                    "version": self.version,
                    "releaseId": release,
                    "checks": checks,
                    "timestamp": _timestamp(),
                },
            )

        @router.get("/health/startup")
        async def startup() -> JSONResponse:
            checks = {"database:migrations": self.check_migrations()}
            if overall(checks) is HealthStatus.FAIL:
                return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                                    content={"status": "starting", "checks": checks})
            return JSONResponse(content={"status": "started", "checks": checks})

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            with process.oneshot():
                memory = process.memory_info()
                system = {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads(),
                }
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": round(time.time() - self.started, 3),
                "readiness_checks": self.readiness_runs,
                "system": system,
                "timestamp": _timestamp(),
            }

        return router
