"""In-memory fixed-window rate limiter keyed by token.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and counters are lost on restart.
- Thread-safe: the read-increment-write on the token table happens under the
  table's lock, so concurrent checks never lose updates.
"""

from __future__ import annotations

import time
from typing import Callable

from app.adapters.rate_limit.base import (
    DEFAULT_LIMIT,
    AbstractRateLimiter,
    RateLimitDecision,
    RateLimiterConfig,
)
from app.utils.token_usage_cache import TokenUsageCache, TokenUsageRecord


class InMemoryTokenRateLimiter(AbstractRateLimiter):
    """Counts operations per token in a window that opens on first sight.

    A token's window starts with its first ``check`` and lasts
    ``window_duration_ms``; the next check after that starts a new window.
    At most ``max_tracked_tokens`` tokens are tracked, the least recently
    checked one being forgotten first.
    """

    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Window and capacity; defaults to 60s and 500 tokens.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If the window or capacity is not positive.
        """
        self._config = config or RateLimiterConfig()
        if self._config.window_duration_ms < 1:
            raise ValueError("window_duration_ms must be >= 1")
        if self._config.max_tracked_tokens < 1:
            raise ValueError("max_tracked_tokens must be >= 1")

        self._usage = TokenUsageCache(
            ttl_ms=self._config.window_duration_ms,
            max_entries=self._config.max_tracked_tokens,
            clock=clock,
        )

    @property
    def config(self) -> RateLimiterConfig:
        return self._config

    @property
    def window_duration_ms(self) -> int:
        return self._config.window_duration_ms

    def check(self, token: str, limit: int = DEFAULT_LIMIT) -> RateLimitDecision:
        record = self._usage.increment(token)

        return RateLimitDecision(
            allowed=record.count <= limit,
            limit=limit,
            remaining=max(0, limit - record.count),
            reset_at_epoch_ms=self._usage.now_ms() + self._config.window_duration_ms,
        )

    def peek(self, token: str) -> TokenUsageRecord | None:
        return self._usage.peek(token)

    def reset(self, token: str) -> bool:
        return self._usage.discard(token)

    def clear(self) -> None:
        self._usage.clear()

    def stats(self) -> dict[str, int]:
        usage = self._usage.stats()
        return {
            "window_duration_ms": self._config.window_duration_ms,
            "max_tracked_tokens": self._config.max_tracked_tokens,
            "tracked_tokens": usage["entries"],
            "evictions": usage["evictions"],
        }


def create_rate_limiter(
    config: RateLimiterConfig | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> InMemoryTokenRateLimiter:
    """Build an independent limiter with its own token table."""
    return InMemoryTokenRateLimiter(config, clock=clock)
