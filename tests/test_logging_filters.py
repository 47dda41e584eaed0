"""Tests for log redaction, JSON formatting and request correlation."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from school_payments.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture() -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_redacts_personal_and_secret_fields(capture):
    logger, stream = capture

    logger.info(
        "student_event",
        extra={
            "email": "ana@student.com",
            "password": "hunter2",
            "client_ip": "10.1.2.3",
            "students_affected": 4,
        },
    )

    output = stream.getvalue()
    assert "ana@student.com" not in output
    assert "hunter2" not in output
    assert "10.1.2.3" not in output
    assert "[REDACTED]" in output
    assert json.loads(output)["students_affected"] == 4


def test_redacts_nested_fields(capture):
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={
            "headers": {"authorization": "Bearer abc", "user-agent": "pytest"},
            "hops": [{"x-forwarded-for": "198.51.100.7"}],
        },
    )

    output = stream.getvalue()
    assert "Bearer abc" not in output
    assert "198.51.100.7" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info("rate_limit.exceeded", extra={"key_hash": "abcd", "limit": 100, "path": "/v1/students"})

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.exceeded"
    assert record["level"] == "info"
    assert record["key_hash"] == "abcd"
    assert record["path"] == "/v1/students"
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context(capture):
    logger, stream = capture

    set_request_id("req-123")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_hash_identifier_is_stable_and_short():
    assert hash_identifier("ip:10.0.0.1") == hash_identifier("ip:10.0.0.1")
    assert hash_identifier("ip:10.0.0.1") != hash_identifier("ip:10.0.0.2")
    assert len(hash_identifier("ip:10.0.0.1")) == 16
