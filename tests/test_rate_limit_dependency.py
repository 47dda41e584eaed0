"""Tests for the HTTP rate limit dependency wired into /v1 routes."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from school_payments.adapters.rate_limit import InMemoryWindowRateLimiter
from school_payments.core import rate_limit as rate_limit_module
from school_payments.core.app_factory import create_app
from school_payments.core.config import AppSettings
from school_payments.core.rate_limit import (
    build_rate_limiter,
    build_sweeper,
    get_rate_limiter,
    resolve_client_identifier,
)


class FakeClock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def _request(client: tuple[str, int] | None = ("10.0.0.1", 1234), headers: dict[str, str] | None = None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {"type": "http", "method": "GET", "path": "/", "headers": raw_headers, "client": client}
    return Request(scope)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limited_app(clock: FakeClock, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_include_headers", True)
    limiter = InMemoryWindowRateLimiter(max_requests=3, window_size_ms=60_000, clock=clock)
    return create_app(rate_limiter=limiter)


class TestResolveClientIdentifier:
    def test_uses_client_host(self) -> None:
        assert resolve_client_identifier(_request()) == "ip:10.0.0.1"

    def test_falls_back_to_unknown(self) -> None:
        assert resolve_client_identifier(_request(client=None)) == "ip:unknown"

    def test_ignores_forwarded_for_by_default(self) -> None:
        request = _request(headers={"X-Forwarded-For": "203.0.113.9"})
        assert resolve_client_identifier(request) == "ip:10.0.0.1"

    def test_uses_first_forwarded_hop_when_trusted(self) -> None:
        request = _request(headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
        assert resolve_client_identifier(request, trust_forwarded_for=True) == "ip:203.0.113.9"

    def test_blank_forwarded_header_falls_back_to_host(self) -> None:
        request = _request(headers={"X-Forwarded-For": " "})
        assert resolve_client_identifier(request, trust_forwarded_for=True) == "ip:10.0.0.1"


class TestEnforceRateLimit:
    def test_blocks_after_limit_with_headers(self, limited_app: FastAPI, clock: FakeClock) -> None:
        client = TestClient(limited_app)

        for _ in range(3):
            assert client.get("/v1/students").status_code == 200

        clock.now += 30_000
        blocked = client.get("/v1/students")

        assert blocked.status_code == 429
        assert blocked.json()["detail"] == "Too many requests"
        assert blocked.headers["Retry-After"] == "30"
        assert blocked.headers["X-RateLimit-Limit"] == "3"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert blocked.headers["X-RateLimit-Reset"] == str((1_000_000 + 60_000) // 1000)

    def test_admits_again_after_window(self, limited_app: FastAPI, clock: FakeClock) -> None:
        client = TestClient(limited_app)
        for _ in range(3):
            client.get("/v1/students")
        assert client.get("/v1/students").status_code == 429

        clock.now += 60_000

        assert client.get("/v1/students").status_code == 200

    def test_budget_is_shared_across_routes(self, limited_app: FastAPI) -> None:
        client = TestClient(limited_app)

        assert client.get("/v1/students").status_code == 200
        assert client.post("/v1/fees/bulk-create", json={
            "fee_type": "tuition", "amount": 100, "due_date": "2026-12-01",
        }).status_code == 200
        assert client.get("/v1/students/missing").status_code == 404
        assert client.get("/v1/students").status_code == 429

    def test_health_is_not_limited(self, limited_app: FastAPI) -> None:
        client = TestClient(limited_app)
        for _ in range(10):
            assert client.get("/health").status_code == 200

    def test_headers_omitted_when_disabled(
        self, limited_app: FastAPI, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_include_headers", False)
        client = TestClient(limited_app)
        for _ in range(3):
            client.get("/v1/students")

        blocked = client.get("/v1/students")

        assert blocked.status_code == 429
        assert "Retry-After" not in blocked.headers
        assert "X-RateLimit-Limit" not in blocked.headers

    def test_disabled_limit_admits_everything(
        self, limited_app: FastAPI, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", False)
        client = TestClient(limited_app)

        for _ in range(10):
            assert client.get("/v1/students").status_code == 200

    def test_forwarded_clients_are_isolated_when_trusted(
        self, limited_app: FastAPI, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_trust_forwarded_for", True)
        client = TestClient(limited_app)
        first = {"X-Forwarded-For": "198.51.100.1"}
        second = {"X-Forwarded-For": "198.51.100.2"}

        for _ in range(3):
            client.get("/v1/students", headers=first)

        assert client.get("/v1/students", headers=first).status_code == 429
        assert client.get("/v1/students", headers=second).status_code == 200

    def test_limiter_can_be_overridden(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", True)
        app = create_app()
        strict = InMemoryWindowRateLimiter(max_requests=1, window_size_ms=60_000)
        app.dependency_overrides[get_rate_limiter] = lambda: strict
        client = TestClient(app)

        assert client.get("/v1/students").status_code == 200
        assert client.get("/v1/students").status_code == 429


class TestBuilders:
    def test_build_rate_limiter_from_settings(self) -> None:
        cfg = AppSettings(
            rate_limit_max_requests=7,
            rate_limit_window_ms=1_500,
            rate_limit_max_clients=3,
        )

        limiter = build_rate_limiter(cfg)

        assert limiter.max_requests == 7
        assert limiter.window_size_ms == 1_500

    def test_build_sweeper_disabled_with_zero_interval(self) -> None:
        cfg = AppSettings(rate_limit_sweep_interval_seconds=0)
        assert build_sweeper(build_rate_limiter(cfg), cfg) is None

    def test_build_sweeper_enabled(self) -> None:
        cfg = AppSettings(rate_limit_sweep_interval_seconds=5)
        assert build_sweeper(build_rate_limiter(cfg), cfg) is not None

    def test_empty_max_clients_env_means_unbounded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_RATE_LIMIT_MAX_CLIENTS", "")

        cfg = AppSettings()

        assert cfg.rate_limit_max_clients is None
        limiter = build_rate_limiter(cfg)
        for i in range(20):
            limiter.check_and_admit(f"ip:10.0.0.{i}", 0)
        assert len(limiter) == 20

    def test_max_clients_env_sets_cap(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_RATE_LIMIT_MAX_CLIENTS", "2")

        limiter = build_rate_limiter(AppSettings())
        for i in range(5):
            limiter.check_and_admit(f"ip:10.0.0.{i}", 0)

        assert len(limiter) == 2
