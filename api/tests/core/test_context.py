"""Tests for request context, log filtering and the request middleware."""

from fastapi.testclient import TestClient

from src.core.context import (
    clear_context,
    get_context,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from src.core.logging import filter_sensitive_data


class TestContext:
    """Tests for context variables."""

    def test_set_and_clear(self) -> None:
        try:
            request_id = set_request_id()
            set_user_id("u-1")
            set_trace_id("t-1")

            assert get_context() == {
                "request_id": request_id,
                "user_id": "u-1",
                "trace_id": "t-1",
            }
        finally:
            clear_context()

        assert get_context() == {}

    def test_explicit_request_id_is_kept(self) -> None:
        try:
            assert set_request_id("abc") == "abc"
        finally:
            clear_context()


class TestFilterSensitiveData:
    """Tests for the masking processor."""

    def test_masks_credentials(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"event": "x", "auth_token": "abcdefgh", "course_id": "c"}
        )
        assert event["auth_token"] == "ab****gh"
        assert event["course_id"] == "c"

    def test_short_values_fully_masked(self) -> None:
        event = filter_sensitive_data(None, "info", {"password": "abc"})
        assert event["password"] == "***"

    def test_nested_dicts(self) -> None:
        event = filter_sensitive_data(None, "info", {"payload": {"secret": "s3cr3tvalue"}})
        assert event["payload"]["secret"].startswith("s3")
        assert "*" in event["payload"]["secret"]


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    def test_echoes_request_id(self, client: TestClient) -> None:
        response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_generates_request_id(self, client: TestClient) -> None:
        response = client.get("/health/live")
        assert response.headers["X-Request-ID"]
