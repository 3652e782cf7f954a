"""In-process TTL cache in front of the durable player-data store.

Each process has its own instance; entries are best-effort copies of durable
records and may be dropped at any time.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol

from swgoh_sync.profile_data.models import PlayerData


class VolatileStore(Protocol):
    def get(self, key: str) -> PlayerData | None:
        raise NotImplementedError

    def set(self, key: str, record: PlayerData) -> None:
        raise NotImplementedError


class VolatileCache:
    def __init__(self, *, ttl_seconds: int = 3600, max_entries: int = 4096) -> None:
        self.ttl_seconds = max(1, int(ttl_seconds))
        self.max_entries = max(1, int(max_entries))
        self._store: dict[str, tuple[float, PlayerData]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> PlayerData | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, record = entry
            if time.monotonic() < expires_at:
                return record
            del self._store[key]
        return None

    def set(self, key: str, record: PlayerData) -> None:
        with self._lock:
            if key not in self._store and len(self._store) >= self.max_entries:
                oldest = min(self._store, key=lambda item: self._store[item][0])
                del self._store[oldest]
            self._store[key] = (time.monotonic() + self.ttl_seconds, record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
