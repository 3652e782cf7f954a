"""Read-through/write-through repository over the durable and volatile stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from swgoh_sync.profile_data.durable_store import PlayerDataStore
from swgoh_sync.profile_data.models import PlayerData
from swgoh_sync.profile_data.volatile_cache import VolatileStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheWarmResult:
    """Outcome of a best-effort volatile cache write; callers log and discard it."""

    ok: bool
    error: str = ""


class PlayerDataRepository:
    """Durable store is authoritative; the volatile cache is optional and lossy."""

    def __init__(self, *, store: PlayerDataStore, cache: VolatileStore | None = None) -> None:
        self.store = store
        self.cache = cache

    def _cached(self, key: str) -> PlayerData | None:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as exc:
            logger.debug("Volatile cache read failed for %s: %s", key, exc)
            return None

    def warm(self, key: str, record: PlayerData) -> CacheWarmResult:
        if self.cache is None:
            return CacheWarmResult(ok=False, error="no volatile cache configured")
        try:
            self.cache.set(key, record)
        except Exception as exc:
            return CacheWarmResult(ok=False, error=str(exc))
        return CacheWarmResult(ok=True)

    def _warm_logged(self, key: str, record: PlayerData) -> None:
        result = self.warm(key, record)
        if not result.ok and self.cache is not None:
            logger.warning("Unable to save %s to volatile cache: %s", key, result.error)

    def get(self, key: str) -> PlayerData | None:
        """Return the record for ``key`` or None when it was never stored."""
        cached = self._cached(key)
        if cached is not None:
            logger.debug("Volatile cache hit for %s", key)
            return cached
        logger.debug("Volatile cache miss for %s, reading durable store", key)
        record = self.store.get(key)
        if record is not None:
            self._warm_logged(key, record)
        return record

    def put(self, key: str, record: PlayerData) -> None:
        self.store.put(key, record)
        self._warm_logged(key, record)
