"""Fixed-window rate limiting keyed by an identifier (e.g. an email address)."""

import math
import time

import structlog

from skillsync.core.cache import Clock, TTLCache
from skillsync.exceptions import RateLimitError

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Allows ``limit`` hits per key inside a window of ``window`` seconds.

    The window starts at the first hit for a key and is stored in a TTLCache,
    so keys that stop being used are forgotten once their window closes.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        *,
        max_keys: int = 10_000,
        clock: Clock = time.monotonic,
    ) -> None:
        if limit <= 0:
            msg = "limit must be positive"
            raise ValueError(msg)
        self._limit = limit
        self._window = window
        self._clock = clock
        self._windows: TTLCache[str, tuple[float, int]] = TTLCache(
            window, max_keys, clock=clock
        )

    def _normalize(self, key: str) -> str:
        return key.strip().lower()

    def remaining(self, key: str) -> int:
        entry = self._windows.get(self._normalize(key))
        return self._limit if entry is None else max(self._limit - entry[1], 0)

    def retry_after(self, key: str) -> float | None:
        """Seconds until the window for ``key`` closes, or None if it is not limited."""
        entry = self._windows.get(self._normalize(key))
        if entry is None or entry[1] < self._limit:
            return None
        started_at, _ = entry
        return max(started_at + self._window - self._clock(), 0.0)

    def hit(self, key: str) -> None:
        """
        Record one hit for ``key``.

        Raises:
            RateLimitError: If the key already used up its window.
        """
        normalized = self._normalize(key)
        entry = self._windows.get(normalized)
        if entry is None:
            self._windows.put(normalized, (self._clock(), 1))
            return

        started_at, count = entry
        if count >= self._limit:
            retry_after = self.retry_after(normalized)
            logger.debug("Rate limit reached", retry_after=retry_after)
            raise RateLimitError(
                f"Too many requests, retry in {math.ceil(retry_after or 0)}s",
                retry_after=retry_after,
            )

        self._windows.put(
            normalized,
            (started_at, count + 1),
            ttl=started_at + self._window - self._clock(),
        )

    def reset(self, key: str) -> None:
        self._windows.remove(self._normalize(key))
