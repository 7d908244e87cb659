# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from subkit.core.config import Settings, get_settings
from subkit.core.constants import DEFAULT_CACHE_TTLS, CacheType


class TestDefaults:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.api_base_url == "http://localhost:5001"
        assert settings.api_token == ""
        assert settings.retry_max_attempts == 3
        assert settings.retry_base_delay == 1.0
        assert settings.retry_max_delay == 30.0
        assert settings.retry_jitter_ratio == 0.1
        assert settings.cache_default_ttl == 300.0
        assert settings.cache_sweep_interval == 300.0
        assert settings.bulk_max_concurrency is None
        assert settings.log_format == "json"

    def test_ttl_table(self) -> None:
        ttls = Settings().cache_ttls
        assert ttls == DEFAULT_CACHE_TTLS
        assert ttls[CacheType.USER_PLAN] == 300
        assert ttls[CacheType.USAGE_STATS] == 60
        assert ttls[CacheType.SUBSCRIPTION_HISTORY] == 600
        assert ttls[CacheType.PLAN_COMPARISON] == 1800
        assert ttls[CacheType.QUOTA_INFO] == 30

    def test_get_settings_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SUBKIT_API_TOKEN", "abc")
        assert get_settings().api_token == "abc"


class TestEnvironment:
    def test_scalar_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("SUBKIT_API_BASE_URL", "https://billing.example.com")
        monkeypatch.setenv("SUBKIT_RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("SUBKIT_BULK_MAX_CONCURRENCY", "8")

        settings = Settings()

        assert settings.api_base_url == "https://billing.example.com"
        assert settings.retry_max_attempts == 5
        assert settings.bulk_max_concurrency == 8

    def test_cache_ttls_merge_over_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("SUBKIT_CACHE_TTLS", '{"quotaInfo": 5, "reports": 900}')

        ttls = Settings().cache_ttls

        assert ttls["quotaInfo"] == 5
        assert ttls["reports"] == 900
        assert ttls["userPlan"] == 300

    def test_empty_values_ignored(self, monkeypatch) -> None:
        monkeypatch.setenv("SUBKIT_RETRY_MAX_ATTEMPTS", "")
        assert Settings().retry_max_attempts == 3

    def test_dotenv_file(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("SUBKIT_LOG_LEVEL=DEBUG\n")
        assert Settings().log_level == "DEBUG"


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"retry_max_attempts": 0},
            {"retry_base_delay": -1},
            {"retry_max_delay": -0.5},
            {"retry_jitter_ratio": 1.5},
            {"cache_sweep_interval": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            Settings(**kwargs)
