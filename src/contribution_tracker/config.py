"""Configuration settings for Contribution Tracker."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitHubConfig(BaseModel):
    """Configuration for the upstream GitHub API client.

    Controls request timeouts and how transient failures
    (rate limits, 5xx, network errors) are retried.
    """

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout applied to every GitHub API request",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for rate-limited or transient failures before giving up",
    )
    max_backoff_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Upper bound for a single retry wait (including rate limit resets)",
    )


class SyncConfig(BaseModel):
    """Configuration for contribution sync behavior.

    Controls pagination, the PR search cap, PR detail batching
    and commit boundaries.
    """

    page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page from listing endpoints (GitHub max is 100)",
    )
    search_max_pages: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Pages read from the search API (search caps results at 1000)",
    )
    detail_batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Concurrent PR detail fetches per batch",
    )
    detail_batch_pause_ms: int = Field(
        default=100,
        ge=0,
        description="Pause between PR detail batches",
    )
    commit_batch_size: int = Field(
        default=25,
        ge=1,
        le=500,
        description="Contributions to commit per batch (limits data loss on failure)",
    )
    phase_timeout_seconds: float | None = Field(
        default=600.0,
        gt=0.0,
        description="Upper bound for one sync phase (None disables)",
    )

    @property
    def detail_batch_pause(self) -> timedelta:
        """Get the inter-batch pause as a timedelta."""
        return timedelta(milliseconds=self.detail_batch_pause_ms)

    @property
    def search_result_cap(self) -> int:
        """Maximum number of results the search path can return."""
        return self.page_size * self.search_max_pages


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
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./contributions.db",
        description="Async SQLAlchemy database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token (empty = anonymous, 60 requests/hour)",
    )
    github: GitHubConfig = Field(
        default_factory=GitHubConfig,
        description="GitHub client timeouts and retry behavior",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Sync Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Contribution sync behavior configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
