"""Rate limiting adapters.

This package provides a small abstraction layer so PayLog can start with an
in-memory limiter and later migrate to Redis or another shared store without
changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    RateLimiterConfig,
)
from app.adapters.rate_limit.in_memory import InMemoryTokenRateLimiter, create_rate_limiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryTokenRateLimiter",
    "RateLimitDecision",
    "RateLimiterConfig",
    "create_rate_limiter",
]
