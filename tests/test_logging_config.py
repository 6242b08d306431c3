"""Tests for the service logging context."""

from __future__ import annotations

import structlog

from homeledger.logging_config import SERVICE_NAME, bind_request_context, service_context


class TestServiceContext:
    def test_stamps_service_and_env(self) -> None:
        stamp = service_context("staging")
        event = stamp(None, "info", {"event": "work_record.verified"})
        assert event["service"] == SERVICE_NAME
        assert event["env"] == "staging"

    def test_does_not_override_explicit_fields(self) -> None:
        event = service_context("production")(None, "info", {"event": "x", "env": "test"})
        assert event["env"] == "test"


class TestRequestContext:
    def test_binds_request_and_user(self) -> None:
        bind_request_context("req-1", user_id="user-1")
        assert structlog.contextvars.get_contextvars() == {
            "request_id": "req-1",
            "user_id": "user-1",
        }
        structlog.contextvars.clear_contextvars()

    def test_each_request_starts_clean(self) -> None:
        bind_request_context("req-1", user_id="user-1")
        bind_request_context("req-2")
        assert structlog.contextvars.get_contextvars() == {"request_id": "req-2"}
        structlog.contextvars.clear_contextvars()
