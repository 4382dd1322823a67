"""
Unit tests for config.py module.

Tests configuration loading, environment variable handling,
credential masking, and validation.
"""

import pytest
import os
from unittest.mock import patch

from config import Config


class TestConfigInitialization:
    """Test Config initialization and environment variable loading."""

    @patch.dict(
        os.environ,
        {
            "COINGECKO_API_KEY": "cg-test-api-key-12345",
            "COINGECKO_BASE_URL": "https://api.coingecko.com/api/v3",
            "GITHUB_TOKEN": "ghp_test_token_abcdef",
            "RISK_FREE_RATE": "0.03",
            "CACHE_TTL_SECONDS": "120",
            "BATCH_SIZE": "5",
            "BATCH_DELAY_SECONDS": "0.5",
            "REQUEST_TIMEOUT": "60",
            "MAX_RETRIES": "4",
            "REBALANCE_THRESHOLD_PCT": "2.5",
        },
        clear=True,
    )
    def test_config_loads_from_environment(self):
        """Test that configuration loads from environment variables."""
        config = Config()

        assert config.coingecko_api_key == "cg-test-api-key-12345"
        assert config.coingecko_base_url == "https://api.coingecko.com/api/v3"
        assert config.github_token == "ghp_test_token_abcdef"
        assert config.risk_free_rate == 0.03
        assert config.cache_ttl_seconds == 120
        assert config.batch_size == 5
        assert config.batch_delay_seconds == 0.5
        assert config.request_timeout == 60
        assert config.max_retries == 4
        assert config.rebalance_threshold_pct == 2.5

    @patch.dict(os.environ, {}, clear=True)
    def test_config_uses_defaults_when_no_env_vars(self):
        """Test that configuration uses default values when env vars missing."""
        config = Config()

        assert config.coingecko_base_url == "https://pro-api.coingecko.com/api/v3"
        assert config.github_base_url == "https://api.github.com"
        assert config.risk_free_rate == 0.02
        assert config.cache_ttl_seconds == 60
        assert config.batch_size == 3
        assert config.batch_delay_seconds == 1.0
        assert config.request_timeout == 30
        assert config.max_retries == 3
        assert config.rebalance_threshold_pct == 5.0

    @patch.dict(os.environ, {"BATCH_SIZE": "7"}, clear=True)
    def test_constructor_overrides_environment(self):
        config = Config(batch_size=2)

        assert config.batch_size == 2

    @patch.dict(os.environ, {}, clear=True)
    def test_config_api_key_defaults_to_none(self):
        """Test that missing API key defaults to None."""
        config = Config()

        assert config.coingecko_api_key is None
        assert config.github_token is None


class TestFromEnv:
    """Test the required-credential entry point."""

    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_requires_api_key(self):
        with pytest.raises(ValueError, match="COINGECKO_API_KEY"):
            Config.from_env()

    @patch.dict(os.environ, {"COINGECKO_API_KEY": "cg-test-key-123"}, clear=True)
    def test_from_env(self):
        assert Config.from_env().coingecko_api_key == "cg-test-key-123"


class TestTypeConversion:
    """Test environment variable type conversion."""

    @patch.dict(os.environ, {"RISK_FREE_RATE": "not-a-number"}, clear=True)
    def test_invalid_float_uses_default(self):
        config = Config()

        assert config.risk_free_rate == 0.02

    @patch.dict(os.environ, {"BATCH_SIZE": "three"}, clear=True)
    def test_invalid_int_uses_default(self):
        config = Config()

        assert config.batch_size == 3


class TestValidation:
    """Test configuration validation."""

    @patch.dict(os.environ, {}, clear=True)
    def test_empty_string_api_key(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            Config(coingecko_api_key="")

    @patch.dict(os.environ, {}, clear=True)
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"batch_size": 0},
            {"batch_delay_seconds": -1.0},
            {"max_retries": 0},
            {"coingecko_base_url": "not-a-url"},
            {"github_base_url": "ftp://example.com"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            Config(**kwargs)

    @patch.dict(os.environ, {}, clear=True)
    def test_negative_cache_ttl_rejected(self):
        with pytest.raises(ValueError, match="cache_ttl_seconds cannot be negative"):
            Config(cache_ttl_seconds=-5)

    @patch.dict(os.environ, {"CACHE_TTL_SECONDS": "-1"}, clear=True)
    def test_negative_cache_ttl_from_environment_rejected(self):
        with pytest.raises(ValueError, match="cache_ttl_seconds"):
            Config()

    @patch.dict(os.environ, {}, clear=True)
    def test_soft_ranges_only_warn(self, caplog):
        config = Config(batch_size=50, risk_free_rate=0.5)

        assert config.batch_size == 50
        assert "outside recommended range" in caplog.text


class TestCredentialMasking:
    """Test that credentials never appear in repr."""

    @patch.dict(os.environ, {}, clear=True)
    def test_repr_masks_keys(self):
        config = Config(coingecko_api_key="cg-secret-key-123456", github_token="ghp_secret_987654")

        text = repr(config)

        assert "cg-secret-key-123456" not in text
        assert "ghp_secret_987654" not in text
        assert "cg-s...3456" in text
        assert str(config) == text

    def test_mask_short_and_missing(self):
        assert Config._mask_api_key("short") == "***"
        assert Config._mask_api_key(None) == "NOT_SET"
