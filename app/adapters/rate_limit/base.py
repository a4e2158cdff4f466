"""Rate limiter interfaces.

Routes and dependencies depend on this abstraction so the in-memory table can
later be swapped for a shared store (e.g., Redis) without touching callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

from app.utils.token_usage_cache import TokenUsageRecord

DEFAULT_LIMIT = 5


@dataclass(frozen=True)
class RateLimiterConfig:
    """Limiter construction parameters.

    Attributes:
        window_duration_ms: Length of the counting window in milliseconds.
        max_tracked_tokens: Distinct tokens retained before LRU eviction.
    """

    window_duration_ms: int = 60_000
    max_tracked_tokens: int = 500


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single ``check`` call.

    Attributes:
        allowed: Whether the operation may proceed.
        limit: The limit the call was evaluated against (echoed).
        remaining: Operations left in the window, never negative.
        reset_at_epoch_ms: ``now + window`` at the time of the call. This is a
            hint only: it is not anchored to the start of the token's window.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_epoch_ms: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AbstractRateLimiter(ABC):
    """Interface for token rate limiters."""

    @property
    @abstractmethod
    def window_duration_ms(self) -> int:
        """Length of the counting window in milliseconds."""
        raise NotImplementedError

    @abstractmethod
    def check(self, token: str, limit: int = DEFAULT_LIMIT) -> RateLimitDecision:
        """Count one operation for ``token`` and decide whether it is allowed.

        Implementations must never raise: denial is reported through
        ``RateLimitDecision.allowed``.

        Args:
            token: Opaque, already-normalized identifier (e.g., email).
            limit: Operations allowed per window.

        Returns:
            RateLimitDecision for this call.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, token: str) -> TokenUsageRecord | None:
        """Return the live usage record for ``token`` without counting."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, token: str) -> bool:
        """Forget ``token``; return whether it had a live record."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Forget every token."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int]:
        """Return limiter metrics without exposing tokens."""
        raise NotImplementedError
