"""Player profile cache, fetch and refresh orchestration."""

from swgoh_sync.profile_data.admin import (
    PlayerStats,
    get_player_stats,
    list_stale_players,
    since_oldest_update,
)
from swgoh_sync.profile_data.aggregator import StatsAggregator, StatsOutcome, partition_blocks
from swgoh_sync.profile_data.config import RefreshConfig
from swgoh_sync.profile_data.deadline import Deadline
from swgoh_sync.profile_data.durable_store import PlayerDataStore
from swgoh_sync.profile_data.errors import (
    AggregateFetchError,
    BlockFetchError,
    DecodeError,
    EncodeError,
    FetchDeadlineExceeded,
    PersistError,
    ProfileDataError,
    ProfileFetchError,
    ProfileUnavailableError,
    SchedulerError,
    SourceError,
    StatsDeadlineExceeded,
    StoreError,
)
from swgoh_sync.profile_data.fetcher import BaseFetch, ProfileFetcher
from swgoh_sync.profile_data.freshness import (
    DEFAULT_STALE_AFTER,
    is_stale,
    refresh_dedup_key,
    stale_cutoff,
)
from swgoh_sync.profile_data.models import (
    CharacterStats,
    CharacterSummary,
    PlayerData,
    Profile,
    ShipSummary,
)
from swgoh_sync.profile_data.repo import CacheWarmResult, PlayerDataRepository
from swgoh_sync.profile_data.scheduler import FileTaskQueue, RefreshJob, TaskQueue
from swgoh_sync.profile_data.service import ProfileResult, ProfileService
from swgoh_sync.profile_data.volatile_cache import VolatileCache, VolatileStore

__all__ = [
    "DEFAULT_STALE_AFTER",
    "AggregateFetchError",
    "BaseFetch",
    "BlockFetchError",
    "CacheWarmResult",
    "CharacterStats",
    "CharacterSummary",
    "Deadline",
    "DecodeError",
    "EncodeError",
    "FetchDeadlineExceeded",
    "FileTaskQueue",
    "PersistError",
    "PlayerData",
    "PlayerDataRepository",
    "PlayerDataStore",
    "PlayerStats",
    "Profile",
    "ProfileDataError",
    "ProfileFetchError",
    "ProfileFetcher",
    "ProfileResult",
    "ProfileService",
    "ProfileUnavailableError",
    "RefreshConfig",
    "RefreshJob",
    "SchedulerError",
    "ShipSummary",
    "SourceError",
    "StatsAggregator",
    "StatsDeadlineExceeded",
    "StatsOutcome",
    "StoreError",
    "TaskQueue",
    "VolatileCache",
    "VolatileStore",
    "get_player_stats",
    "is_stale",
    "list_stale_players",
    "partition_blocks",
    "refresh_dedup_key",
    "since_oldest_update",
    "stale_cutoff",
]
