"""Configuration settings for git-activity-mirror."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from git_activity_mirror.schemas.platform_config import DEFAULT_COMMIT_MESSAGE, PlatformConfig


class ConcurrencyConfig(BaseModel):
    """Configuration for concurrent API work.

    Bounds how many repository fetches and target runs are in flight at once.
    """

    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum concurrent repository fetches / target runs",
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size requested from platform APIs",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )


class SyncConfig(BaseModel):
    """Configuration for import/sync behavior.

    Defaults applied by the orchestrator when a run does not override them.
    """

    batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Synthetic commits per batch (checkpoint boundary)",
    )
    import_since: str = Field(
        default="1y",
        description="Default window for a historical import",
    )
    sync_since: str = Field(
        default="24h",
        description="Default window for an incremental sync",
    )
    skip_existing: bool = Field(
        default=True,
        description="Skip commits already mirrored to the target",
    )
    commit_message: str = Field(
        default=DEFAULT_COMMIT_MESSAGE,
        description="Fallback synthetic commit message template ({date} placeholder)",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings.

    Values come from keyword arguments, ``GAM_*`` environment variables, or a
    ``.env`` file. Nested fields use ``__`` as delimiter
    (e.g. ``GAM_SYNC__BATCH_SIZE=50``).
    """

    model_config = SettingsConfigDict(
        env_prefix="GAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Platforms
    # --------------------------------------------------------------------------
    sources: list[PlatformConfig] = Field(
        default_factory=list,
        description="Platforms read for real commit activity",
    )
    targets: list[PlatformConfig] = Field(
        default_factory=list,
        description="Platforms written with synthetic commits",
    )

    # --------------------------------------------------------------------------
    # Behavior
    # --------------------------------------------------------------------------
    concurrency: ConcurrencyConfig = Field(
        default_factory=ConcurrencyConfig,
        description="Concurrency limits",
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Import/sync defaults",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
