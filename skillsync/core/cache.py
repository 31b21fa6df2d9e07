"""LRU and TTL cache utilities."""

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

Clock = Callable[[], float]


class LRUCache(Generic[K, T]):
    """
    Bounded least-recently-used cache.

    Safe within a single event loop; not thread-safe.
    """

    def __init__(self, max_size: int = 1000) -> None:
        """
        Args:
            max_size: Maximum number of items to cache.
        """
        if max_size <= 0:
            msg = "max_size must be positive"
            raise ValueError(msg)
        self._max_size = max_size
        self._cache: OrderedDict[K, T] = OrderedDict()

    def get(self, key: K) -> T | None:
        """Get an item, marking it most recently used."""
        if key not in self._cache:
            return None
        self._cache.move_to_end(key)
        return self._cache[key]

    def put(self, key: K, value: T) -> None:
        """Insert or replace an item, evicting the oldest one when full."""
        if key in self._cache:
            self._cache.move_to_end(key)
        elif len(self._cache) >= self._max_size:
            self._cache.popitem(last=False)
        self._cache[key] = value

    def remove(self, key: K) -> T | None:
        return self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def keys(self) -> list[K]:
        return list(self._cache.keys())


class TTLCache(Generic[K, T]):
    """
    Bounded cache whose entries expire ``ttl`` seconds after being written.

    Expired entries are dropped lazily on access. When full, the entry written
    longest ago is evicted first.
    """

    def __init__(self, ttl: float, max_size: int = 1000, *, clock: Clock = time.monotonic) -> None:
        """
        Args:
            ttl: Lifetime of an entry in seconds.
            max_size: Maximum number of live entries.
            clock: Monotonic time source, injectable for tests.
        """
        if ttl <= 0:
            msg = "ttl must be positive"
            raise ValueError(msg)
        if max_size <= 0:
            msg = "max_size must be positive"
            raise ValueError(msg)
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._cache: OrderedDict[K, tuple[float, T]] = OrderedDict()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> T | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    def put(self, key: K, value: T, *, ttl: float | None = None) -> None:
        """Store a value. ``ttl`` overrides the cache-wide lifetime for this entry."""
        self._cache.pop(key, None)
        self.expire()
        if len(self._cache) >= self._max_size:
            self._cache.popitem(last=False)
        self._cache[key] = (self._clock() + (self._ttl if ttl is None else ttl), value)

    def remove(self, key: K) -> T | None:
        entry = self._cache.pop(key, None)
        return entry[1] if entry else None

    def expire(self) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._cache.items() if now >= expires_at]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        self.expire()
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]
