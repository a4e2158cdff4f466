"""Bounded in-memory token usage table with TTL and LRU eviction.

Backs the in-memory rate limiter. Entries expire a fixed time after they are
created (touching an entry never extends its TTL) and the least recently
touched entry is dropped once the table is over capacity.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class TokenUsageRecord:
    """Operations observed for one token in its current window.

    Attributes:
        token: Opaque identifier, compared by exact equality.
        count: Operations observed in the current window (>= 1).
        window_started_at_ms: Epoch milliseconds when the window opened.
    """

    token: str
    count: int
    window_started_at_ms: int


class TokenUsageCache:
    """Thread-safe counter table with per-entry TTL and LRU capacity bound.

    Attributes:
        ttl_ms: Lifetime of an entry, measured from its creation.
        max_entries: Maximum number of live entries.
    """

    def __init__(
        self,
        *,
        ttl_ms: int,
        max_entries: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_ms < 1:
            raise ValueError("ttl_ms must be >= 1")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._ttl_ms = ttl_ms
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, TokenUsageRecord] = OrderedDict()
        self._lock = threading.RLock()
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TokenUsageCache(ttl_ms={self._ttl_ms}, max_entries={self._max_entries}, "
            f"size={len(self._store)}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired_locked(self.now_ms())
            return len(self._store)

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def now_ms(self) -> int:
        """Current clock reading in epoch milliseconds."""
        return int(self._clock() * 1000)

    def increment(self, token: str) -> TokenUsageRecord:
        """Atomically get-or-create the record for ``token`` and count one use.

        A missing or expired record is replaced by a fresh one with
        ``count == 1``. A live record is incremented and moved to the
        most-recently-used position without touching its window start.

        Args:
            token: Token to count.

        Returns:
            A snapshot of the record after the increment.
        """

        with self._lock:
            now_ms = self.now_ms()
            record = self._store.get(token)

            if record is None or self._is_expired(record, now_ms):
                if record is not None:
                    self._evict_single(token)
                self._evict_expired_locked(now_ms)
                record = TokenUsageRecord(token=token, count=1, window_started_at_ms=now_ms)
                self._store[token] = record
                self._evict_if_over_capacity_locked()
                logger.debug(
                    "token_usage.created",
                    extra={"size": len(self._store), "ttl_ms": self._ttl_ms},
                )
            else:
                record.count += 1
                self._store.move_to_end(token)

            return replace(record)

    def peek(self, token: str) -> TokenUsageRecord | None:
        """Return a snapshot of the live record without touching recency."""

        with self._lock:
            record = self._store.get(token)
            if record is None or self._is_expired(record, self.now_ms()):
                return None
            return replace(record)

    def discard(self, token: str) -> bool:
        """Remove ``token``; return whether a live record was present."""

        with self._lock:
            record = self._store.pop(token, None)
            return record is not None and not self._is_expired(record, self.now_ms())

    def clear(self) -> None:
        """Remove all records and reset counters."""

        with self._lock:
            self._store.clear()
            self._evictions = 0

    def stats(self) -> dict[str, int]:
        """Return table metrics without exposing token values."""

        with self._lock:
            self._evict_expired_locked(self.now_ms())
            return {
                "ttl_ms": self._ttl_ms,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "evictions": self._evictions,
            }

    def _evict_single(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_expired_locked(self, now_ms: int) -> None:
        expired = [k for k, record in self._store.items() if self._is_expired(record, now_ms)]
        for key in expired:
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        while len(self._store) > self._max_entries:
            # Front of the OrderedDict is the least recently touched token
            self._store.popitem(last=False)
            self._evictions += 1

    def _is_expired(self, record: TokenUsageRecord, now_ms: int) -> bool:
        return now_ms - record.window_started_at_ms >= self._ttl_ms
