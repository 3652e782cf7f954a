"""Staleness-aware profile lookup and refresh orchestration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from swgoh_sync.keys import normalize_player_key
from swgoh_sync.profile_data.admin import PlayerStats, get_player_stats, list_stale_players
from swgoh_sync.profile_data.aggregator import StatsAggregator
from swgoh_sync.profile_data.config import RefreshConfig
from swgoh_sync.profile_data.deadline import Deadline
from swgoh_sync.profile_data.errors import (
    AggregateFetchError,
    EncodeError,
    PersistError,
    ProfileDataError,
    ProfileFetchError,
    ProfileUnavailableError,
    SchedulerError,
    StoreError,
)
from swgoh_sync.profile_data.fetcher import ProfileFetcher
from swgoh_sync.profile_data.freshness import is_stale, refresh_dedup_key, stale_cutoff
from swgoh_sync.profile_data.models import PlayerData, Profile
from swgoh_sync.profile_data.repo import PlayerDataRepository
from swgoh_sync.profile_data.scheduler import RefreshJob, TaskQueue
from swgoh_sync.time_utils import utc_now

if TYPE_CHECKING:
    from swgoh_sync.source_client import ProfileSource

logger = logging.getLogger(__name__)

RefreshState = Literal["fresh", "source_stale", "stale_scheduled", "stale_full_update"]


@dataclass(frozen=True)
class ProfileResult:
    """Profile to serve plus anything that went wrong producing it.

    A result carrying ``error`` still holds a usable, possibly partial or
    stale, profile.
    """

    player: str
    profile: Profile
    state: RefreshState
    error: ProfileDataError | None = None
    persist_error: PersistError | None = None
    scheduled: bool = False

    @property
    def errors(self) -> list[ProfileDataError]:
        return [error for error in (self.error, self.persist_error) if error is not None]


class ProfileService:
    def __init__(
        self,
        *,
        repo: PlayerDataRepository,
        source: ProfileSource,
        queue: TaskQueue,
        config: RefreshConfig | None = None,
        aggregator: StatsAggregator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repo = repo
        self.source = source
        self.queue = queue
        self.config = config or RefreshConfig()
        self.clock = clock
        self.fetcher = ProfileFetcher(source, stale_after=self.config.stale_after, clock=clock)
        self.aggregator = aggregator or StatsAggregator(
            workers=self.config.stats_workers,
            max_attempts=self.config.stats_max_attempts,
            retry_backoff_s=self.config.stats_retry_backoff_s,
        )

    def get_profile(self, player: str, *, full_update: bool = False) -> ProfileResult:
        """Serve the cached profile when fresh, otherwise refresh it.

        Raises ``ProfileUnavailableError`` when nothing is cached and the fetch
        failed before any data arrived. Store read and decode failures propagate.
        """
        key = normalize_player_key(player)
        now = self.clock()

        record = self.repo.get(key) or PlayerData.empty(key)
        cached = record.decode()
        logger.debug("Cached profile for %s updated at %s", key, record.last_update)

        threshold = self.config.stale_after
        stale = is_stale(record.last_update, now, threshold=threshold)
        if not record.is_virgin and not full_update and not stale:
            logger.debug("Profile for %s is fresh, serving from cache", key)
            return ProfileResult(player=key, profile=cached, state="fresh")

        deadline = Deadline(
            self.config.fetch_deadline_s if full_update else self.config.request_deadline_s
        )
        state: RefreshState = "stale_full_update" if full_update else "stale_scheduled"
        try:
            base = self.fetcher.fetch(key, cached, deadline=deadline)
        except ProfileFetchError as exc:
            logger.warning("Profile fetch failed for %s: %s", key, exc)
            if exc.partial.is_empty():
                raise ProfileUnavailableError(f"profile for {key} is unavailable: {exc}") from exc
            # An incomplete profile keeps the previous timestamp so it stays stale.
            partial = exc.partial.model_copy(update={"last_update": record.last_update})
            persist_error = self._persist(key, partial)
            scheduled = self.schedule_refresh(key, full_update=True, now=now)
            return ProfileResult(
                player=key,
                profile=partial,
                state=state,
                error=exc,
                persist_error=persist_error,
                scheduled=scheduled,
            )

        if base.source_stale:
            return ProfileResult(player=key, profile=cached, state="source_stale")

        profile = base.profile
        error: ProfileDataError | None = None
        scheduled = False
        if full_update:
            logger.debug("Loading character stats for %s ...", key)
            outcome = self.aggregator.fetch_all(self.source, key, profile, deadline=deadline)
            try:
                outcome.raise_for_errors()
            except AggregateFetchError as exc:
                logger.warning("Stats fetch incomplete for %s: %s", key, exc)
                error = exc
        else:
            scheduled = self.schedule_refresh(key, full_update=True, now=now)

        persist_error = self._persist(key, profile)
        return ProfileResult(
            player=key,
            profile=profile,
            state=state,
            error=error,
            persist_error=persist_error,
            scheduled=scheduled,
        )

    def _persist(self, key: str, profile: Profile) -> PersistError | None:
        try:
            self.repo.put(key, PlayerData.encode(key, profile))
        except (EncodeError, StoreError) as exc:
            logger.error("Unable to cache profile for %s: %s", key, exc)
            return PersistError(f"unable to cache profile for {key}: {exc}")
        return None

    def schedule_refresh(
        self, player: str, *, full_update: bool = True, now: datetime | None = None
    ) -> bool:
        """Enqueue a deferred refresh; failures are logged and reported as False.

        Full-update jobs are deduplicated to one per player per UTC day.
        """
        job = RefreshJob(player=player, full_update=full_update)
        dedup_key = refresh_dedup_key(player, now or self.clock()) if full_update else None
        try:
            return self.queue.enqueue(job, dedup_key=dedup_key)
        except SchedulerError as exc:
            logger.warning("Error scheduling refresh for %s: %s", player, exc)
            return False

    def reload_all(self) -> int:
        """Schedule a full refresh for every stale profile; returns jobs accepted.

        Dedup markers from earlier days are pruned first.
        """
        now = self.clock()
        try:
            pruned = self.queue.prune_dedup(now=now)
        except SchedulerError as exc:
            logger.warning("Unable to prune refresh dedup markers: %s", exc)
        else:
            logger.info("Pruned %d expired refresh dedup markers", pruned)
        cutoff = stale_cutoff(now, threshold=self.config.stale_after)
        expired = self.repo.store.list_stale(cutoff)
        logger.info("Found %d expired profiles", len(expired))
        batch_size = self.config.reload_batch_size
        accepted = 0
        for offset in range(0, len(expired), batch_size):
            batch = expired[offset : offset + batch_size]
            logger.info("Scheduling profiles %s", [record.key for record in batch])
            for record in batch:
                if self.schedule_refresh(record.key, full_update=True, now=now):
                    accepted += 1
        logger.info("Done, %d refresh jobs scheduled", accepted)
        return accepted

    def run_pending_jobs(self) -> int:
        """Run every queued refresh once; failing jobs are logged and dropped."""

        def _handle(job: RefreshJob) -> None:
            try:
                result = self.get_profile(job.player, full_update=job.full_update)
            except (ProfileDataError, ValueError) as exc:
                logger.error("Refresh job for %s failed: %s", job.player, exc)
                return
            for error in result.errors:
                logger.warning("Refresh job for %s finished with error: %s", job.player, error)

        return self.queue.drain(_handle)

    def player_stats(self) -> PlayerStats:
        return get_player_stats(
            self.repo.store, now=self.clock(), threshold=self.config.stale_after
        )

    def stale_players(self, *, limit: int | None = None) -> list[PlayerData]:
        return list_stale_players(
            self.repo.store,
            now=self.clock(),
            threshold=self.config.stale_after,
            limit=limit or self.config.stale_list_limit,
        )
