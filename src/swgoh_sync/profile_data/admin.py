"""System-wide player profile statistics for the admin view."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from swgoh_sync.profile_data.durable_store import PlayerDataStore
from swgoh_sync.profile_data.freshness import DEFAULT_STALE_AFTER, stale_cutoff
from swgoh_sync.profile_data.models import PlayerData
from swgoh_sync.time_utils import as_utc


@dataclass(frozen=True)
class PlayerStats:
    player_count: int
    stale_player_count: int
    oldest_player_sync: datetime | None


def get_player_stats(
    store: PlayerDataStore,
    *,
    now: datetime,
    threshold: timedelta = DEFAULT_STALE_AFTER,
) -> PlayerStats:
    """Count all profiles, count stale ones and find the oldest sync."""
    return PlayerStats(
        player_count=store.count(),
        stale_player_count=store.count_stale(stale_cutoff(now, threshold=threshold)),
        oldest_player_sync=store.oldest_last_update(),
    )


def list_stale_players(
    store: PlayerDataStore,
    *,
    now: datetime,
    threshold: timedelta = DEFAULT_STALE_AFTER,
    limit: int = 100,
) -> list[PlayerData]:
    """Return the ``limit`` oldest stale profiles, oldest first."""
    return store.list_stale(stale_cutoff(now, threshold=threshold), limit=limit)


def since_oldest_update(stats: PlayerStats, now: datetime) -> timedelta | None:
    if stats.oldest_player_sync is None:
        return None
    return as_utc(now) - stats.oldest_player_sync
