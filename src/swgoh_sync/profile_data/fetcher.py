"""Sequential base-profile fetch: arena lineup, then roster, then ships."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from swgoh_sync.profile_data.deadline import Deadline
from swgoh_sync.profile_data.errors import FetchDeadlineExceeded, ProfileFetchError, SourceError
from swgoh_sync.profile_data.freshness import DEFAULT_STALE_AFTER, is_stale
from swgoh_sync.profile_data.models import Profile
from swgoh_sync.time_utils import as_utc, utc_now

if TYPE_CHECKING:
    from swgoh_sync.source_client import ProfileSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaseFetch:
    """Result of a base fetch.

    ``source_stale`` means the source is no fresher than the cache and
    ``profile`` is the cached profile, untouched.
    """

    profile: Profile
    source_stale: bool = False


def _carry_over_stats(cached: Profile, profile: Profile) -> None:
    owned = {char.name for char in profile.active_characters()}
    profile.stats = [stat.model_copy() for stat in cached.stats if stat.name in owned]


class ProfileFetcher:
    def __init__(
        self,
        source: ProfileSource,
        *,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.source = source
        self.stale_after = stale_after
        self.clock = clock

    def _budget(self, deadline: Deadline, step: str, partial: Profile) -> float:
        remaining = deadline.remaining()
        if remaining <= 0.0:
            raise FetchDeadlineExceeded(f"deadline exceeded before {step}", partial=partial)
        return remaining

    def fetch(self, player: str, cached: Profile, *, deadline: Deadline) -> BaseFetch:
        """Fetch the base profile for ``player``.

        Raises ``ProfileFetchError`` with the partial profile on the first failing call.
        """
        partial = cached.model_copy(deep=True)

        logger.debug("Loading arena team for %s ...", player)
        try:
            arena, source_update = self.source.fetch_arena(
                player, timeout_s=self._budget(deadline, "arena", partial)
            )
        except SourceError as exc:
            raise ProfileFetchError(
                f"arena fetch failed for {player}: {exc}", partial=partial
            ) from exc

        now = self.clock()
        logger.debug("Source last update for %s was %s ago", player, now - as_utc(source_update))
        if cached.last_update is not None and is_stale(
            source_update, now, threshold=self.stale_after
        ):
            logger.debug("Source for %s is as old as the cache, keeping cached profile", player)
            return BaseFetch(profile=cached, source_stale=True)

        partial.arena = arena
        partial.last_update = source_update

        logger.debug("Loading collection for %s ...", player)
        try:
            partial.collection = self.source.fetch_collection(
                player, timeout_s=self._budget(deadline, "collection", partial)
            )
        except SourceError as exc:
            raise ProfileFetchError(
                f"collection fetch failed for {player}: {exc}", partial=partial
            ) from exc
        _carry_over_stats(cached, partial)

        logger.debug("Loading ships for %s ...", player)
        try:
            partial.ships = self.source.fetch_ships(
                player, timeout_s=self._budget(deadline, "ships", partial)
            )
        except SourceError as exc:
            raise ProfileFetchError(
                f"ships fetch failed for {player}: {exc}", partial=partial
            ) from exc

        logger.debug("Fetched %s for %s", partial, player)
        return BaseFetch(profile=partial)
