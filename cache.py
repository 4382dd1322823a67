"""
In-memory response cache with TTL management.
"""

import time
import logging
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class ResponseCache:
    """
    Time-to-live memoization for upstream responses.

    One instance is constructed per process and handed to the clients that need
    it. The lock only protects the mapping itself: two concurrent misses on the
    same key can both run their producer, and the last one to finish wins. That
    duplicate upstream call is accepted because cached producers are idempotent
    reads. Callers that need single-flight semantics must add it themselves.
    """

    def __init__(
        self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initializes the ResponseCache.

        Args:
            ttl_seconds (float): Default time-to-live for entries, in seconds.
            clock (Callable[[], float]): Time source, in seconds.
        """
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds cannot be negative, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = Lock()
        logger.debug(f"Response cache initialized (TTL: {ttl_seconds}s)")

    def get_or_compute(
        self, key: str, producer: Callable[[], Any], ttl: Optional[float] = None
    ) -> Any:
        """
        Returns the cached value for key, or runs producer and caches its result.

        An entry is fresh while ``now - fetched_at < ttl``. Exceptions raised by
        producer propagate and nothing is stored.

        Args:
            key (str): Cache key.
            producer (Callable[[], Any]): Computes the value on a miss.
            ttl (Optional[float]): Overrides the default TTL for this lookup.

        Returns:
            Any: The cached or freshly produced value.
        """
        ttl = self.ttl_seconds if ttl is None else ttl

        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            value, fetched_at = entry
            age = self._clock() - fetched_at
            if age < ttl:
                logger.debug(f"Cache hit: {key} (age: {age:.1f}s)")
                return value
            logger.debug(f"Cache expired: {key}")

        value = producer()
        with self._lock:
            self._entries[key] = (value, self._clock())
        logger.debug(f"Cached {key}")
        return value

    def invalidate(self, key: str) -> bool:
        """Removes one entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Removes every entry."""
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """
        Clears all entries older than the default TTL.

        Returns:
            int: The number of cleared entries.
        """
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, (_, fetched_at) in self._entries.items()
                if now - fetched_at >= self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
