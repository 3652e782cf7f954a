"""Freshness policy shared by the read path and admin statistics."""

from __future__ import annotations

from datetime import datetime, timedelta

from swgoh_sync.time_utils import as_utc

DEFAULT_STALE_AFTER = timedelta(hours=24)


def is_stale(
    last_update: datetime | None,
    now: datetime,
    *,
    threshold: timedelta = DEFAULT_STALE_AFTER,
) -> bool:
    """Return True when data last updated at ``last_update`` needs a refresh.

    Unset timestamps are always stale; an age of exactly ``threshold`` is stale.
    """
    if last_update is None:
        return True
    return as_utc(now) - as_utc(last_update) >= threshold


def stale_cutoff(now: datetime, *, threshold: timedelta = DEFAULT_STALE_AFTER) -> datetime:
    """Return the newest ``last_update`` that still counts as stale at ``now``."""
    return as_utc(now) - threshold


def refresh_dedup_key(player: str, now: datetime) -> str:
    """Dedup key collapsing full-refresh jobs for one player to one per UTC day."""
    return f"full-update:{player}:{as_utc(now).date().isoformat()}"
