"""
Tests for Health Endpoints.

Tests cover:
- Health, readiness and liveness probes
- Metrics counters and gauges
- Built-in checks
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.shell.http.health import (
    CheckResult,
    HealthCheckRegistry,
    HealthStatus,
    ListFileCheck,
    MetricsCollector,
    ProcessCheck,
    StartupCheck,
    StartupTracker,
    create_health_router,
    mark_startup_complete,
    setup_default_health_checks,
)

# --- Test Fixtures ---


@pytest.fixture
def registry() -> HealthCheckRegistry:
    return HealthCheckRegistry()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector(["add_requests", "add_success"])


@pytest.fixture
def client(registry: HealthCheckRegistry, metrics: MetricsCollector) -> TestClient:
    app = FastAPI()
    app.include_router(
        create_health_router(
            version="1.0.0-test",
            registry=registry,
            metrics=metrics,
            gauges=lambda: {"subscribers": 3, "known_tags": 2},
        )
    )
    return TestClient(app)


class FixedCheck:
    def __init__(self, name: str, status: HealthStatus) -> None:
        self.name = name
        self._status = status

    def check(self) -> CheckResult:
        return CheckResult(name=self.name, status=self._status, message="fixed")


# --- MetricsCollector Tests ---


class TestMetricsCollector:
    """Tests for named counters."""

    def test_declared_counters_start_at_zero(self, metrics: MetricsCollector) -> None:
        assert metrics.get_snapshot() == {"add_requests": 0, "add_success": 0}

    def test_increment(self, metrics: MetricsCollector) -> None:
        metrics.increment("add_requests")
        metrics.increment("add_requests", 2)

        assert metrics.get("add_requests") == 3

    def test_undeclared_counter(self, metrics: MetricsCollector) -> None:
        metrics.increment("other")

        assert metrics.get_snapshot()["other"] == 1

    def test_reset(self, metrics: MetricsCollector) -> None:
        metrics.increment("add_success")

        metrics.reset()

        assert metrics.get("add_success") == 0

    def test_concurrent_increments(self, metrics: MetricsCollector) -> None:
        def worker() -> None:
            for _ in range(500):
                metrics.increment("add_requests")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert metrics.get("add_requests") == 2000


# --- Check Tests ---


class TestChecks:
    def test_process_check(self) -> None:
        assert ProcessCheck().check().status == HealthStatus.HEALTHY

    def test_startup_check_before_and_after(self) -> None:
        assert StartupCheck().check().status == HealthStatus.UNHEALTHY

        mark_startup_complete()

        assert StartupCheck().check().status == HealthStatus.HEALTHY

    def test_list_file_check_writable(self, tmp_path: Path) -> None:
        result = ListFileCheck(tmp_path / "list.csv").check()

        assert result.status == HealthStatus.HEALTHY
        assert result.details == {"exists": False}

    def test_list_file_check_missing_directory(self, tmp_path: Path) -> None:
        result = ListFileCheck(tmp_path / "missing" / "list.csv").check()

        assert result.status == HealthStatus.UNHEALTHY

    def test_default_checks(self, registry: HealthCheckRegistry, tmp_path: Path) -> None:
        setup_default_health_checks(registry, list_file=tmp_path / "list.csv")

        names = [r.name for r in registry.run_all()]

        assert names == ["process", "startup", "list_file"]

    def test_uptime_zero_before_start(self) -> None:
        assert StartupTracker.get_uptime_seconds() == 0.0


# --- Endpoint Tests ---


class TestHealthEndpoint:
    def test_healthy(self, client: TestClient, registry: HealthCheckRegistry) -> None:
        registry.register(ProcessCheck())

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0-test"
        assert data["checks"][0]["name"] == "process"

    def test_unhealthy_is_503(self, client: TestClient, registry: HealthCheckRegistry) -> None:
        registry.register(StartupCheck())

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_degraded(self, client: TestClient, registry: HealthCheckRegistry) -> None:
        registry.register(FixedCheck("cache", HealthStatus.DEGRADED))

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"


class TestProbes:
    def test_ready_after_startup(self, client: TestClient, registry: HealthCheckRegistry) -> None:
        setup_default_health_checks(registry)
        assert client.get("/health/ready").status_code == 503

        mark_startup_complete()

        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_live(self, client: TestClient) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestMetricsEndpoint:
    def test_counters_and_gauges(self, client: TestClient, metrics: MetricsCollector) -> None:
        metrics.increment("add_requests", 5)

        data = client.get("/metrics").json()

        assert data["add_requests"] == 5
        assert data["add_success"] == 0
        assert data["subscribers"] == 3
        assert data["known_tags"] == 2
        assert "uptime_seconds" in data
