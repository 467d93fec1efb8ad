"""
=============================================================================
KEY/VALUE STORAGE FOR MIDDLEWARE
=============================================================================

The rate limit and cache middleware don't know where their data lives.
They are handed a callable with this contract:

    storage("get", key)                  → value, or None if missing/expired
    storage("set", key, value, ttl)      → store value for ttl seconds
    storage("delete", key)               → remove key
    storage("clear", None)               → remove everything

``MemoryStorage`` is the in-process implementation. Anything else (a
Redis client behind a small adapter function, say) can be dropped in as
long as it follows the contract above.

=============================================================================
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)


StorageHandler = Callable[..., Any]


class MemoryStorage:
    """
    Thread-safe in-memory storage with per-key expiry.

    Expired entries are dropped lazily when read. A full sweep also runs
    from ``set()`` once every ``cleanup_interval`` seconds, so keys that are
    written once and never read again (one per client IP, say) don't pile
    up. ``purge_expired()`` runs the same sweep on demand.

        storage = MemoryStorage()
        storage("set", "k", {"requests": 1}, 60)
        storage("get", "k")      # {"requests": 1}
    """

    def __init__(self, clock: Callable[[], float] = time.time, cleanup_interval: float = 60.0):
        self._data: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.cleanup_interval = cleanup_interval
        self._last_cleanup = clock()

    def __call__(
        self,
        operation: str,
        key: Optional[str],
        value: Any = None,
        ttl: Optional[float] = None,
    ) -> Any:
        if operation == "get":
            return self.get(key)
        if operation == "set":
            self.set(key, value, ttl)
            return None
        if operation == "delete":
            self.delete(key)
            return None
        if operation == "clear":
            self.clear()
            return None
        raise ValueError(f"Unknown storage operation: {operation!r}")

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value``; ``ttl`` of None or <= 0 means no expiry."""
        now = self._clock()
        expires_at = now + ttl if ttl and ttl > 0 else None
        with self._lock:
            if now - self._last_cleanup >= self.cleanup_interval:
                self._purge(now)
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            return self._purge(self._clock())

    def _purge(self, now: float) -> int:
        # Caller holds the lock
        expired = [
            key for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]

        self._last_cleanup = now
        if expired:
            logger.debug(f"Purged {len(expired)} expired storage entries")
        return len(expired)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
