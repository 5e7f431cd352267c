"""In-process TTL cache of optimization results."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Callable, Optional

from ...schemas.optimization import OptimizationPreferences
from .models import OptimizationResult

CacheKey = tuple[str, str]


def preferences_digest(preferences: OptimizationPreferences) -> str:
    encoded = json.dumps(preferences.model_dump(mode="json"), sort_keys=True)
    return hashlib.md5(encoded.encode("utf-8")).hexdigest()


class OptimizationCache:
    """Results keyed by tour and preferences, expiring after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, OptimizationResult]] = {}
        self._lock = threading.Lock()

    def _key(self, tour_id: str, preferences: OptimizationPreferences) -> CacheKey:
        return (tour_id, preferences_digest(preferences))

    def get(self, tour_id: str, preferences: OptimizationPreferences) -> Optional[OptimizationResult]:
        if self.ttl_seconds <= 0:
            return None
        key = self._key(tour_id, preferences)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, result = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return result

    def set(self, tour_id: str, preferences: OptimizationPreferences, result: OptimizationResult) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[self._key(tour_id, preferences)] = (self._clock(), result)

    def invalidate(self, tour_id: str) -> None:
        with self._lock:
            for key in [key for key in self._entries if key[0] == tour_id]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
