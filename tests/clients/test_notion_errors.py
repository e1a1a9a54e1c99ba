"""Tests for the Notion error taxonomy."""

from src.clients.notion_errors import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    NotionApiError,
    NotionTransportError,
    RateLimitError,
    format_error_for_logging,
)


def test_only_rate_limit_is_retryable():
    errors = [
        NotionApiError("generic", status_code=500),
        AuthenticationError("bad token"),
        ForbiddenError("not shared"),
        NotFoundError("Page", "p1", "/pages/p1"),
        NotionTransportError("connection reset"),
    ]
    assert [error.retryable for error in errors] == [False] * len(errors)
    assert RateLimitError("slow down", 30).retryable is True


def test_codes_and_statuses():
    assert (AuthenticationError("x").code, AuthenticationError("x").status_code) == (
        "UNAUTHORIZED",
        401,
    )
    assert AuthenticationError("x", status_code=None).status_code is None
    assert (ForbiddenError("x").code, ForbiddenError("x").status_code) == ("FORBIDDEN", 403)
    assert RateLimitError("x", 5).status_code == 429
    assert NotionTransportError("x").status_code is None


def test_format_rate_limit_for_logging():
    assert format_error_for_logging(RateLimitError("Rate limit exceeded", 30)) == {
        "name": "RateLimitError",
        "message": "Rate limit exceeded",
        "status_code": 429,
        "code": "RATE_LIMITED",
        "retryable": True,
        "retry_after_seconds": 30,
    }


def test_format_not_found_for_logging():
    info = format_error_for_logging(NotFoundError("Block", "b1", "/blocks/b1"))
    assert info["resource"] == "Block"
    assert info["identifier"] == "b1"
    assert info["endpoint"] == "/blocks/b1"
    assert "retry_after_seconds" not in info


def test_format_plain_exception_for_logging():
    assert format_error_for_logging(ValueError("page_size too big")) == {
        "name": "ValueError",
        "message": "page_size too big",
    }


def test_format_non_exception_for_logging():
    assert format_error_for_logging("something odd") == {"message": "something odd"}
