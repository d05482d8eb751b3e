"""
Health endpoints.

Provides health check and metrics endpoints for monitoring.

Key behaviors:
- /health: Basic health status
- /health/ready: Readiness probe (dependency checks)
- /health/live: Liveness probe (process alive)
- /metrics: Signup flow counters plus directory gauges
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

# --- Types ---


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


# --- Health Check Protocol ---


class HealthCheck(Protocol):
    """Protocol for health checks."""

    name: str

    def check(self) -> CheckResult:
        """Run the health check and return result."""
        ...


# --- Startup Tracker ---


class StartupTracker:
    """Tracks application startup time for uptime calculation."""

    _start_time: float | None = None

    @classmethod
    def mark_started(cls) -> None:
        """Mark the application as started."""
        cls._start_time = time.time()

    @classmethod
    def get_uptime_seconds(cls) -> float:
        """Get uptime in seconds since start."""
        if cls._start_time is None:
            return 0.0
        return time.time() - cls._start_time

    @classmethod
    def is_started(cls) -> bool:
        """Check if application has been marked as started."""
        return cls._start_time is not None

    @classmethod
    def reset(cls) -> None:
        cls._start_time = None


# --- Metrics Collector ---


class MetricsCollector:
    """
    Thread-safe named counters.

    Implements MetricsPort. Counters listed at construction always appear
    in snapshots, starting at zero.
    """

    def __init__(self, counters: Iterable[str] = ()) -> None:
        self._lock = Lock()
        self._counts: dict[str, int] = dict.fromkeys(counters, 0)

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] = self._counts.get(name, 0) + amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts.get(name, 0)

    def get_snapshot(self) -> dict[str, int]:
        """Copy of all counters."""
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            for name in self._counts:
                self._counts[name] = 0


# --- Health Check Registry ---


class HealthCheckRegistry:
    """Registry of health checks to run."""

    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def run_all(self) -> list[CheckResult]:
        return [check.check() for check in self._checks]

    def clear(self) -> None:
        self._checks = []


# --- Built-in Checks ---


class ProcessCheck:
    """Basic process liveness check."""

    name = "process"

    def check(self) -> CheckResult:
        """Check if process is alive (always true if we get here)."""
        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="Process is running",
        )


class StartupCheck:
    """Check if application has completed startup."""

    name = "startup"

    def check(self) -> CheckResult:
        if StartupTracker.is_started():
            return CheckResult(
                name=self.name,
                status=HealthStatus.HEALTHY,
                message="Startup complete",
                details={"uptime_seconds": StartupTracker.get_uptime_seconds()},
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.UNHEALTHY,
            message="Startup not complete",
        )


class ListFileCheck:
    """The list file's directory exists and is writable."""

    name = "list_file"

    def __init__(self, path: Path) -> None:
        self._path = path

    def check(self) -> CheckResult:
        start = time.time()
        directory = self._path.parent
        writable = directory.is_dir() and os.access(directory, os.W_OK)
        latency = (time.time() - start) * 1000

        if not writable:
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Cannot write to {directory}",
                latency_ms=latency,
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="List file writable",
            latency_ms=latency,
            details={"exists": self._path.is_file()},
        )


# --- FastAPI Router ---


def create_health_router(
    version: str,
    registry: HealthCheckRegistry,
    metrics: MetricsCollector,
    gauges: Callable[[], dict[str, int]] | None = None,
) -> APIRouter:
    """
    Create FastAPI router for health endpoints.

    Args:
        version: Application version string
        registry: Health checks to run
        metrics: Counter source for /metrics
        gauges: Extra point-in-time values for /metrics

    Returns:
        FastAPI router with health endpoints
    """
    router = APIRouter(tags=["health"])

    @router.get(
        "/health",
        response_model=None,
        responses={
            200: {"description": "Service is healthy"},
            503: {"description": "Service is unhealthy"},
        },
    )
    def health_check() -> JSONResponse:
        """Overall health status based on all registered checks."""
        results = registry.run_all()

        if all(r.status == HealthStatus.HEALTHY for r in results):
            overall = HealthStatus.HEALTHY
        elif any(r.status == HealthStatus.UNHEALTHY for r in results):
            overall = HealthStatus.UNHEALTHY
        else:
            overall = HealthStatus.DEGRADED

        response = {
            "status": overall.value,
            "version": version,
            "uptime_seconds": StartupTracker.get_uptime_seconds(),
            "checks": [
                {
                    "name": r.name,
                    "status": r.status.value,
                    "message": r.message,
                    "latency_ms": r.latency_ms,
                }
                for r in results
            ],
        }

        status_code = (
            status.HTTP_200_OK
            if overall == HealthStatus.HEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(content=response, status_code=status_code)

    @router.get(
        "/health/ready",
        response_model=None,
        responses={
            200: {"description": "Service is ready to accept traffic"},
            503: {"description": "Service is not ready"},
        },
    )
    def readiness_check() -> JSONResponse:
        """Readiness probe: every check must pass."""
        results = registry.run_all()
        is_ready = all(r.status == HealthStatus.HEALTHY for r in results)

        response = {
            "ready": is_ready,
            "checks": [
                {"name": r.name, "status": r.status.value, "message": r.message} for r in results
            ],
        }

        status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

        return JSONResponse(content=response, status_code=status_code)

    @router.get(
        "/health/live",
        response_model=None,
        responses={
            200: {"description": "Service process is alive"},
        },
    )
    def liveness_check() -> JSONResponse:
        """Liveness probe. Always 200 while the process answers."""
        return JSONResponse(
            content={"alive": True, "uptime_seconds": StartupTracker.get_uptime_seconds()},
            status_code=status.HTTP_200_OK,
        )

    @router.get("/metrics", response_model=None)
    def metrics_endpoint() -> JSONResponse:
        """Counters, gauges and uptime as JSON."""
        content: dict[str, Any] = dict(metrics.get_snapshot())
        if gauges is not None:
            content.update(gauges())
        content["uptime_seconds"] = StartupTracker.get_uptime_seconds()

        return JSONResponse(content=content, status_code=status.HTTP_200_OK)

    return router


# --- Factory Functions ---


def setup_default_health_checks(
    registry: HealthCheckRegistry, list_file: Path | None = None
) -> None:
    """Register the process, startup and (optionally) list file checks."""
    registry.register(ProcessCheck())
    registry.register(StartupCheck())
    if list_file is not None:
        registry.register(ListFileCheck(list_file))


def mark_startup_complete() -> None:
    """Mark application startup as complete."""
    StartupTracker.mark_started()
