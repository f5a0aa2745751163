"""
Small in-process TTL cache with an injectable clock.

Used for hot, per-request lookups (system settings, admin flag, throttled
subscription refreshes) where a round trip to Redis or the database on every
request is not wanted and a few seconds of staleness is acceptable.
"""
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


_MISSING = object()

# Entry count that triggers the first sweep of expired entries
MIN_SWEEP_THRESHOLD = 64


class TTLCache:
    """
    Key/value cache whose entries expire ``ttl_seconds`` after being set.

    ``clock`` returns the current time in seconds and defaults to
    ``time.monotonic``. Tests pass a fake clock to move time forward.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._sweep_threshold = MIN_SWEEP_THRESHOLD

    def _is_fresh(self, stored_at: float) -> bool:
        return self.clock() - stored_at < self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if not self._is_fresh(stored_at):
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self.clock(), value)
            if len(self._entries) >= self._sweep_threshold:
                self._sweep_locked()

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed"""
        with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        stale = [key for key, (stored_at, _) in self._entries.items() if not self._is_fresh(stored_at)]
        for key in stale:
            del self._entries[key]
        # Next sweep once the live set has doubled
        self._sweep_threshold = max(MIN_SWEEP_THRESHOLD, 2 * len(self._entries))
        return len(stale)

    def get_or_set(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value, calling ``loader`` and caching its result on a miss"""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._sweep_threshold = MIN_SWEEP_THRESHOLD

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for stored_at, _ in self._entries.values() if self._is_fresh(stored_at))


def build_cache(setting_name: str, clock: Optional[Callable[[], float]] = None) -> TTLCache:
    """Create a TTLCache whose TTL comes from a Django setting"""
    from django.conf import settings

    return TTLCache(getattr(settings, setting_name), clock or time.monotonic)
