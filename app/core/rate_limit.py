"""Named rate limiters for the authentication flows.

This module wires the rate limiting adapter into the HTTP layer.

Two process-wide limiters exist:
- login: 5 attempts per minute per email (credential stuffing, brute force)
- password_reset: 3 requests per hour per email (reset flow abuse)

Tokens are logged as truncated SHA-256 hashes only.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    RateLimiterConfig,
)
from app.adapters.rate_limit.in_memory import create_rate_limiter
from app.core.config import settings
from app.core.errors import RateLimitedAppError

logger = logging.getLogger(__name__)

LOGIN_SCOPE = "login"
PASSWORD_RESET_SCOPE = "password_reset"

_limiters: dict[str, AbstractRateLimiter] = {}
_limiter_configs: dict[str, RateLimiterConfig] = {}


def _config_for(scope: str) -> RateLimiterConfig:
    cfg = settings.rate_limit
    if scope == LOGIN_SCOPE:
        return RateLimiterConfig(
            window_duration_ms=cfg.login_window_ms,
            max_tracked_tokens=cfg.login_max_tracked_tokens,
        )
    if scope == PASSWORD_RESET_SCOPE:
        return RateLimiterConfig(
            window_duration_ms=cfg.password_reset_window_ms,
            max_tracked_tokens=cfg.password_reset_max_tracked_tokens,
        )
    raise ValueError(f"unknown rate limit scope: {scope}")


def _get_rate_limiter(scope: str) -> AbstractRateLimiter:
    """Return the process-wide limiter for ``scope``.

    The instance is cached in-module to preserve counters across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    config = _config_for(scope)
    if scope not in _limiters or _limiter_configs.get(scope) != config:
        _limiters[scope] = create_rate_limiter(config)
        _limiter_configs[scope] = config
    return _limiters[scope]


def get_login_rate_limiter() -> AbstractRateLimiter:
    return _get_rate_limiter(LOGIN_SCOPE)


def get_password_reset_rate_limiter() -> AbstractRateLimiter:
    return _get_rate_limiter(PASSWORD_RESET_SCOPE)


def reset_rate_limiters() -> None:
    """Drop all cached limiters so the next lookup starts empty."""
    _limiters.clear()
    _limiter_configs.clear()


def hash_token(token: str) -> str:
    """Hash a token for logging without exposing it."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def retry_after_seconds(decision: RateLimitDecision) -> int:
    """Seconds until ``decision.reset_at_epoch_ms``, rounded up."""
    now_ms = time.time() * 1000
    return max(0, int(math.ceil((decision.reset_at_epoch_ms - now_ms) / 1000)))


def rate_limit_headers(decision: RateLimitDecision, retry_after: int) -> dict[str, str]:
    return {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at_epoch_ms),
    }


def enforce_rate_limit(
    limiter: AbstractRateLimiter,
    token: str,
    *,
    limit: int,
    scope: str,
) -> RateLimitDecision:
    """Count one attempt for ``token`` and raise when it is over the limit.

    When rate limiting is disabled the table is left untouched and an allowed
    decision with the full quota is returned.

    Args:
        limiter: Limiter for this flow.
        token: Normalized token (e.g., lower-cased email).
        limit: Attempts allowed per window.
        scope: Flow name used in logs and error details.

    Returns:
        RateLimitDecision when the attempt is allowed.

    Raises:
        RateLimitedAppError: 429 when the attempt exceeds the limit.
    """

    if not settings.rate_limit.enabled:
        return RateLimitDecision(
            allowed=True,
            limit=limit,
            remaining=max(0, limit),
            reset_at_epoch_ms=int(time.time() * 1000) + limiter.window_duration_ms,
        )

    decision = limiter.check(token, limit)
    log_extra = {
        "scope": scope,
        "token_hash": hash_token(token),
        "limit": decision.limit,
        "remaining": decision.remaining,
    }

    if decision.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
        return decision

    retry_after = retry_after_seconds(decision)
    logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})

    headers: dict[str, str] = {}
    if settings.rate_limit.include_headers:
        headers = rate_limit_headers(decision, retry_after)

    raise RateLimitedAppError(
        code="too_many_requests",
        message=f"Too many attempts. Please try again in {retry_after} seconds.",
        details={
            "scope": scope,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_at_epoch_ms": decision.reset_at_epoch_ms,
            "retry_after": retry_after,
        },
        headers=headers,
    )
