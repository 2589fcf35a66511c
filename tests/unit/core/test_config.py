"""Tests for CacheConfig and CacheSettings."""

import os

import pytest
from pydantic import ValidationError

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.settings import CacheSettings


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment without any UC_* variables or .env file."""
    monkeypatch.chdir("/")
    for name in list(os.environ):
        if name.startswith("UC_"):
            monkeypatch.delenv(name)
    return monkeypatch


class TestCacheConfig:
    """Tests for defaults and validation."""

    def test_defaults(self) -> None:
        """Test the documented defaults."""
        config = CacheConfig()

        assert config.dedupe_ttl_s == 60
        assert config.idempotency_ttl_s == 900
        assert config.pool_item_ttl_s == 86400
        assert config.max_job_attempts == 3
        assert config.fetch_attempts == 2
        assert config.fetch_timeout_s == 2.5
        assert config.runner_max_per_source == 10
        assert config.runner_time_budget_ms == 8000

    def test_validation(self) -> None:
        """Test values that would break the runner are rejected."""
        with pytest.raises(ValueError):
            CacheConfig(max_job_attempts=0)
        with pytest.raises(ValueError):
            CacheConfig(fetch_timeout_s=0)


class TestCacheSettings:
    """Tests for loading UC_* environment variables."""

    def test_defaults_match_config(self, env: pytest.MonkeyPatch) -> None:
        """Test an empty environment yields the default configuration."""
        assert CacheConfig.from_env() == CacheConfig()

    def test_overrides(self, env: pytest.MonkeyPatch) -> None:
        """Test UC_* variables override defaults."""
        env.setenv("UC_POOL_ITEM_TTL_S", "3600")
        env.setenv("UC_FETCH_TIMEOUT_MS", "1500")
        env.setenv("UC_FETCH_BACKOFF_MS", "100")
        env.setenv("UC_KEY_PREFIX", "edge")
        env.setenv("UC_TTL_BUMP__ENABLED", "false")
        env.setenv("UC_TTL_BUMP__THRESHOLD", "3")

        config = CacheConfig.from_env()

        assert config.pool_item_ttl_s == 3600
        assert config.fetch_timeout_s == 1.5
        assert config.fetch_backoff_s == 0.1
        assert config.key_prefix == "edge"
        assert config.ttl_bump.enabled is False
        assert config.ttl_bump.threshold == 3
        assert config.ttl_bump.delta_s == 300

    def test_empty_keeps_defaults(self, env: pytest.MonkeyPatch) -> None:
        """Test empty variables keep defaults."""
        env.setenv("UC_DEDUPE_TTL_S", "")

        assert CacheSettings().dedupe_ttl_s == 60

    def test_invalid_number(self, env: pytest.MonkeyPatch) -> None:
        """Test invalid numbers name the field."""
        env.setenv("UC_MAX_JOB_ATTEMPTS", "three")

        with pytest.raises(ValidationError, match="max_job_attempts"):
            CacheConfig.from_env()

    def test_out_of_range(self, env: pytest.MonkeyPatch) -> None:
        """Test values the runner cannot work with are rejected at load time."""
        env.setenv("UC_FETCH_ATTEMPTS", "0")

        with pytest.raises(ValidationError, match="fetch_attempts"):
            CacheSettings()
