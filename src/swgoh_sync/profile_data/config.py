"""Refresh tuning passed explicitly into the orchestrator and its workers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from swgoh_sync.settings import Settings


@dataclass(frozen=True)
class RefreshConfig:
    stale_after: timedelta = timedelta(hours=24)
    fetch_deadline_s: float = 120.0
    request_deadline_s: float = 60.0
    stats_workers: int = 10
    stats_max_attempts: int = 3
    stats_retry_backoff_s: float = 1.0
    reload_batch_size: int = 10
    stale_list_limit: int = 100

    def __post_init__(self) -> None:
        if self.stats_workers < 1:
            raise ValueError("stats_workers must be >= 1")
        if self.stats_max_attempts < 1:
            raise ValueError("stats_max_attempts must be >= 1")
        if self.stale_after <= timedelta(0):
            raise ValueError("stale_after must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> RefreshConfig:
        return cls(
            stale_after=timedelta(hours=float(settings.stale_after_hours)),
            fetch_deadline_s=float(settings.fetch_deadline_s),
            request_deadline_s=float(settings.request_deadline_s),
            stats_workers=int(settings.stats_workers),
            stats_max_attempts=int(settings.stats_max_attempts),
            stats_retry_backoff_s=max(0.0, float(settings.stats_retry_backoff_s)),
            reload_batch_size=max(1, int(settings.reload_batch_size)),
            stale_list_limit=max(1, int(settings.stale_list_limit)),
        )
