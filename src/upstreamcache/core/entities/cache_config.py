"""Cache configuration entity."""

from dataclasses import dataclass, field


@dataclass
class TtlBumpConfig:
    """Adaptive hot-tier retention for frequently read keys.

    Each non-stale hot hit increments a per-key counter that lives for
    ``window_s``. When it reaches ``threshold`` the hot copy's TTL is
    extended by ``delta_s`` (capped at ``max_ttl_s``), after which the key
    cannot be bumped again for ``cooldown_s``.
    """

    enabled: bool = True
    window_s: int = 60
    threshold: int = 10
    delta_s: int = 300
    max_ttl_s: int = 86400
    cooldown_s: int = 60


@dataclass
class CacheConfig:
    """Tuning knobs of the refresh pipeline.

    Passed explicitly to each component; nothing reads the environment
    except ``from_env``.
    """

    key_prefix: str = "uc"

    # Refresh queue
    dedupe_ttl_s: int = 60
    idempotency_ttl_s: int = 900

    # Cache store
    backfill_ttl_s: int = 60
    ttl_bump: TtlBumpConfig = field(default_factory=TtlBumpConfig)

    # Pool store
    pool_item_ttl_s: int = 86400  # <= 0 keeps pool items in the hot tier forever

    # Runner and origin fetches
    max_job_attempts: int = 3
    fetch_attempts: int = 2
    fetch_timeout_s: float = 2.5
    fetch_backoff_s: float = 0.25
    runner_max_per_source: int = 10
    runner_time_budget_ms: int = 8000

    def __post_init__(self) -> None:
        """Validate values that would break the runner."""
        if self.max_job_attempts < 1:
            raise ValueError("max_job_attempts must be at least 1")
        if self.fetch_attempts < 1:
            raise ValueError("fetch_attempts must be at least 1")
        if self.fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be positive")

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Build a configuration from ``UC_*`` environment variables.

        Unset and empty variables keep their defaults. See
        ``upstreamcache.settings.CacheSettings``.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        from upstreamcache.settings import CacheSettings

        return CacheSettings().to_config()
