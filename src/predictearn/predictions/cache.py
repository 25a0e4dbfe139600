"""In-process read-through cache for the public prediction listing.

One snapshot, one timestamp. Readers may see a stale snapshot for at most
``ttl_seconds`` unless ``invalidate`` is called; assignment of the snapshot is
atomic so no lock is needed.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from predictearn.config import get_settings


class PredictionListCache:
    """Single-entry TTL cache with explicit invalidation."""

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entry: tuple[Any, float] | None = None
        self._generation = 0
        self._hits = 0
        self._misses = 0

    def get(self) -> tuple[Any, bool]:
        """Return ``(data, hit)``. On a miss ``data`` is None."""
        entry = self._entry
        if entry is not None:
            data, stored_at = entry
            if self._clock() - stored_at < self._ttl:
                self._hits += 1
                return data, True
        self._misses += 1
        return None, False

    def set(self, data: Any) -> None:  # noqa: ANN401
        self._entry = (data, self._clock())

    def invalidate(self) -> None:
        self._entry = None
        self._generation += 1

    @property
    def generation(self) -> int:
        """Bumped on every invalidation; lets callers detect a flush between read and write."""
        return self._generation

    def set_if_generation(self, data: Any, generation: int) -> bool:  # noqa: ANN401
        """Store ``data`` only if no invalidation happened since ``generation`` was read."""
        if generation != self._generation:
            return False
        self.set(data)
        return True

    @property
    def stats(self) -> dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "generation": self._generation}


_cache: PredictionListCache | None = None


def get_prediction_cache() -> PredictionListCache:
    """Process-wide cache instance (FastAPI dependency)."""
    global _cache  # noqa: PLW0603
    if _cache is None:
        _cache = PredictionListCache(ttl_seconds=get_settings().prediction_cache_ttl_seconds)
    return _cache


def reset_prediction_cache() -> None:
    """Drop the process-wide instance (useful for testing)."""
    global _cache  # noqa: PLW0603
    _cache = None
