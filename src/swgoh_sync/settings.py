"""Application settings for swgoh-sync."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for storage, source and refresh tuning."""

    model_config = SettingsConfigDict(
        env_prefix="SWGOH_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = "local"
    log_level: str = "INFO"
    data_dir: str = "data/swgoh_sync"

    source_base_url: str = "http://localhost:8081/v1"
    source_timeout_s: float = 30.0
    source_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("SWGOH_API_KEY", "SWGOH_SYNC_SOURCE_API_KEY"),
    )

    stale_after_hours: float = 24.0
    fetch_deadline_s: float = 120.0
    request_deadline_s: float = 60.0
    stats_workers: int = 10
    stats_max_attempts: int = 3
    stats_retry_backoff_s: float = 1.0
    volatile_ttl_s: int = 3600
    reload_batch_size: int = 10
    stale_list_limit: int = 100

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
