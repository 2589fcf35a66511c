"""Deployment settings loaded from ``UC_*`` environment variables.

Nested TTL-bump knobs use a double underscore, e.g.
``UC_TTL_BUMP__THRESHOLD=3``. Durations kept in milliseconds in the
environment are converted to seconds by ``to_config``.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from upstreamcache.core.entities.cache_config import CacheConfig, TtlBumpConfig


class TtlBumpSettings(BaseModel):
    """Environment form of ``TtlBumpConfig``."""

    enabled: bool = True
    window_s: int = Field(default=60, ge=1)
    threshold: int = Field(default=10, ge=1)
    delta_s: int = Field(default=300, ge=0)
    max_ttl_s: int = Field(default=86400, ge=1)
    cooldown_s: int = Field(default=60, ge=0)

    def to_config(self) -> TtlBumpConfig:
        return TtlBumpConfig(**self.model_dump())


class CacheSettings(BaseSettings):
    """Environment form of ``CacheConfig``."""

    model_config = SettingsConfigDict(
        env_prefix="UC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    key_prefix: str = "uc"

    # Refresh queue
    dedupe_ttl_s: int = 60
    idempotency_ttl_s: int = 900

    # Cache store
    backfill_ttl_s: int = 60
    ttl_bump: TtlBumpSettings = Field(default_factory=TtlBumpSettings)

    # Pool store
    pool_item_ttl_s: int = 86400

    # Runner and origin fetches
    max_job_attempts: int = Field(default=3, ge=1)
    fetch_attempts: int = Field(default=2, ge=1)
    fetch_timeout_ms: int = Field(default=2500, gt=0)
    fetch_backoff_ms: int = Field(default=250, ge=0)
    runner_max_per_source: int = Field(default=10, ge=1)
    runner_time_budget_ms: int = Field(default=8000, ge=0)

    def to_config(self) -> CacheConfig:
        """Build the ``CacheConfig`` the components are constructed with."""
        return CacheConfig(
            key_prefix=self.key_prefix,
            dedupe_ttl_s=self.dedupe_ttl_s,
            idempotency_ttl_s=self.idempotency_ttl_s,
            backfill_ttl_s=self.backfill_ttl_s,
            ttl_bump=self.ttl_bump.to_config(),
            pool_item_ttl_s=self.pool_item_ttl_s,
            max_job_attempts=self.max_job_attempts,
            fetch_attempts=self.fetch_attempts,
            fetch_timeout_s=self.fetch_timeout_ms / 1000,
            fetch_backoff_s=self.fetch_backoff_ms / 1000,
            runner_max_per_source=self.runner_max_per_source,
            runner_time_budget_ms=self.runner_time_budget_ms,
        )
