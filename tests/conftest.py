"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import that loads settings.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_MAX_REQUESTS", "100")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("APP_RATE_LIMIT_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from school_payments.core.app_factory import create_app
from school_payments.services.ledger_service import LedgerService


@pytest.fixture
def ledger() -> LedgerService:
    return LedgerService()


@pytest.fixture
def app(ledger: LedgerService) -> FastAPI:
    return create_app(ledger=ledger)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
