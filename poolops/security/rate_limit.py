"""
Rate limiting as an injected capability.

Handlers never touch limiter state directly; they depend on whatever
``RateLimiter`` the app was built with (``app.state.rate_limiter``). The
default implementation uses the ``limits`` library with in-memory storage;
pointing ``POOLOPS_RATE_LIMIT_STORAGE_URI`` at e.g. ``redis://...`` shares the
budget across processes without any change to the authorization code.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import time
from typing import Protocol

from limits import parse, storage, strategies

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int | None = None


class RateLimiter(Protocol):
    def hit(self, key: str) -> RateLimitResult:
        """Consume one unit for ``key`` and report whether it was within budget."""
        ...


class LimitsRateLimiter:
    """Fixed-window limiter backed by a ``limits`` storage."""

    def __init__(self, limit: str, storage_uri: str = "memory://", namespace: str = "poolops") -> None:
        self._item = parse(limit)
        self._storage = storage.storage_from_string(storage_uri)
        self._strategy = strategies.FixedWindowRateLimiter(self._storage)
        self._namespace = namespace

    def hit(self, key: str) -> RateLimitResult:
        if self._strategy.hit(self._item, self._namespace, key):
            return RateLimitResult(allowed=True)

        stats = self._strategy.get_window_stats(self._item, self._namespace, key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        logger.warning("Rate limit exceeded key=%s limit=%s", key, self._item)
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

    def reset(self) -> None:
        self._storage.reset()
