import threading
import time

from flask import current_app


class SlotListingCache:
    """Read-through cache for slot listings.

    Entries live for ``ttl_seconds`` and are also dropped explicitly whenever
    a slot or booking for the same date is written.
    """

    def __init__(self, ttl_seconds: float = 30, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key, value):
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def get_or_populate(self, key, loader):
        value = self.get(key)
        if value is not None:
            return value
        # Loader runs outside the lock; a concurrent miss may load twice.
        value = loader()
        if self.ttl_seconds > 0:
            self.set(key, value)
        return value

    def invalidate(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)


def init_slot_cache(app):
    app.extensions["slot_cache"] = SlotListingCache(app.config.get("SLOT_CACHE_TTL_SECONDS", 30))


def get_slot_cache() -> SlotListingCache:
    return current_app.extensions["slot_cache"]


def invalidate_dates(*dates):
    cache = get_slot_cache()
    for d in dates:
        if d:
            cache.invalidate(d)
