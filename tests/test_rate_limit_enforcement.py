"""Tests for the named limiters and the enforcement helper."""

from unittest.mock import Mock, patch

import pytest

from app.adapters.rate_limit import RateLimitDecision, RateLimiterConfig, create_rate_limiter
from app.core import rate_limit
from app.core.config import settings
from app.core.errors import RateLimitedAppError
from app.core.rate_limit import (
    enforce_rate_limit,
    get_login_rate_limiter,
    get_password_reset_rate_limiter,
    hash_token,
    rate_limit_headers,
    retry_after_seconds,
)


class TestNamedLimiters:
    def test_login_limiter_uses_login_window(self) -> None:
        limiter = get_login_rate_limiter()

        assert limiter.config == RateLimiterConfig(
            window_duration_ms=60_000, max_tracked_tokens=500
        )

    def test_password_reset_limiter_uses_hour_window(self) -> None:
        limiter = get_password_reset_rate_limiter()

        assert limiter.config == RateLimiterConfig(
            window_duration_ms=3_600_000, max_tracked_tokens=500
        )

    def test_instances_are_cached_and_distinct(self) -> None:
        assert get_login_rate_limiter() is get_login_rate_limiter()
        assert get_login_rate_limiter() is not get_password_reset_rate_limiter()

    def test_limiter_rebuilt_when_config_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_login_rate_limiter()
        first.check("a@example.com")

        monkeypatch.setattr(settings.rate_limit, "login_window_ms", 1_000)
        rebuilt = get_login_rate_limiter()

        assert rebuilt is not first
        assert rebuilt.config.window_duration_ms == 1_000
        assert rebuilt.peek("a@example.com") is None

    def test_unknown_scope_rejected(self) -> None:
        with pytest.raises(ValueError):
            rate_limit._get_rate_limiter("signup")


class TestEnforceRateLimit:
    def test_returns_decision_when_allowed(self, clock) -> None:
        limiter = create_rate_limiter(clock=clock)

        decision = enforce_rate_limit(limiter, "a@example.com", limit=3, scope="login")

        assert decision.allowed is True
        assert decision.remaining == 2

    def test_raises_429_error_when_denied(self, clock) -> None:
        limiter = create_rate_limiter(clock=clock)
        for _ in range(3):
            enforce_rate_limit(limiter, "a@example.com", limit=3, scope="login")

        with pytest.raises(RateLimitedAppError) as exc_info:
            enforce_rate_limit(limiter, "a@example.com", limit=3, scope="login")

        error = exc_info.value
        assert error.status_code == 429
        assert error.code == "too_many_requests"
        assert error.details["scope"] == "login"
        assert error.details["remaining"] == 0
        assert error.headers["X-RateLimit-Limit"] == "3"
        assert error.headers["X-RateLimit-Remaining"] == "0"
        assert "Retry-After" in error.headers
        assert "Please try again in" in error.message

    def test_headers_omitted_when_disabled(self, clock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "include_headers", False)
        limiter = create_rate_limiter(clock=clock)

        with pytest.raises(RateLimitedAppError) as exc_info:
            enforce_rate_limit(limiter, "a@example.com", limit=0, scope="login")

        assert exc_info.value.headers == {}

    def test_disabled_rate_limiting_skips_table(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "enabled", False)
        limiter = Mock(window_duration_ms=60_000)

        decision = enforce_rate_limit(limiter, "a@example.com", limit=5, scope="login")

        assert decision.allowed is True
        assert decision.remaining == 5
        limiter.check.assert_not_called()

    def test_disabled_decision_reports_window_reset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "enabled", False)
        limiter = create_rate_limiter(RateLimiterConfig(window_duration_ms=3_600_000))

        with patch("app.core.rate_limit.time.time", return_value=1_000.0):
            decision = enforce_rate_limit(limiter, "a@example.com", limit=3, scope="password_reset")

        assert decision.reset_at_epoch_ms == 1_000_000 + 3_600_000
        assert limiter.peek("a@example.com") is None

    def test_logs_hash_not_token(self, clock, caplog: pytest.LogCaptureFixture) -> None:
        limiter = create_rate_limiter(clock=clock)

        with caplog.at_level("INFO", logger="app.core.rate_limit"):
            enforce_rate_limit(limiter, "secret@example.com", limit=5, scope="login")

        record = next(r for r in caplog.records if r.getMessage() == "rate_limit.allowed")
        assert record.token_hash == hash_token("secret@example.com")
        assert "secret@example.com" not in caplog.text


def test_retry_after_rounds_up() -> None:
    decision = RateLimitDecision(allowed=False, limit=5, remaining=0, reset_at_epoch_ms=101_500)

    with patch("app.core.rate_limit.time.time", return_value=100.0):
        assert retry_after_seconds(decision) == 2


def test_retry_after_never_negative() -> None:
    decision = RateLimitDecision(allowed=False, limit=5, remaining=0, reset_at_epoch_ms=1_000)

    with patch("app.core.rate_limit.time.time", return_value=100.0):
        assert retry_after_seconds(decision) == 0


def test_rate_limit_headers() -> None:
    decision = RateLimitDecision(allowed=False, limit=5, remaining=0, reset_at_epoch_ms=123)

    assert rate_limit_headers(decision, 60) == {
        "Retry-After": "60",
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": "123",
    }
