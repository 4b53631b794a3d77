"""
Unit tests for config/loader.py and config/validate.py.

Tests cover:
- JSON config file loading
- Environment variable overrides with type coercion
- Singleton pattern for ConfigLoader
- Subgraph source and API key helpers
- Config validation (per file, environment, validate_all_configs)
- Cache management
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock, patch

import pytest

from config.loader import ConfigLoader, _load_json, get_config, get_env_var
from config.validate import (
    ConfigValidationError,
    validate_all_configs,
    validate_app_config,
    validate_cache_config,
    validate_environment,
    validate_positions_config,
    validate_subgraph_config,
)

VALID_ENV = {
    "GRAPH_API_KEY": "test-key",
    "UNISWAP_V3_BASE_SUBGRAPH_URL": "https://example.test/v3",
    "UNISWAP_V4_BASE_SUBGRAPH_URL": "https://example.test/v4",
}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_singleton():
    """Reset the ConfigLoader singleton between tests."""
    ConfigLoader._instance = None
    yield
    ConfigLoader._instance = None


# ===========================================================================
# ConfigLoader tests
# ===========================================================================


class TestConfigLoaderSingleton:
    def test_get_instance_returns_same_object(self):
        """Singleton pattern should return the same instance."""
        a = ConfigLoader.get_instance()
        b = ConfigLoader.get_instance()
        assert a is b

    def test_get_config_returns_singleton(self):
        """Module-level get_config() should return singleton."""
        cfg = get_config()
        assert cfg is ConfigLoader.get_instance()

    def test_fresh_instance_after_reset(self):
        """After resetting _instance, a new one is created."""
        first = ConfigLoader.get_instance()
        ConfigLoader._instance = None
        second = ConfigLoader.get_instance()
        assert first is not second


class TestConfigLoading:
    def test_get_app_config(self):
        """App config should load the served network."""
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("POOL_NETWORK", None)
            os.environ.pop("DEMO_MODE", None)
            app = get_config().get_app_config()
        assert app["network"] == "base"
        assert app["demo_mode"] is False

    def test_get_subgraph_config(self):
        """Subgraph config should define v3 and v4 sources for base."""
        sub = get_config().get_subgraph_config()
        versions = [s["version"] for s in sub["networks"]["base"]["sources"]]
        assert versions == [3, 4]

    def test_get_cache_config(self):
        cache = get_config().get_cache_config()
        assert cache["freshness_hours"] == 6
        assert cache["refresh_top_n"] == 50

    def test_get_positions_config(self):
        pos = get_config().get_positions_config()
        assert set(pos["sizing"]["tiers"]) == {"low", "medium", "high"}
        assert "rebalance" in pos

    def test_missing_config_returns_empty_dict(self, tmp_path):
        """Loading a nonexistent config file should return {}."""
        assert _load_json(tmp_path / "nonexistent_config_xyz.json") == {}

    def test_invalid_json_returns_empty_dict(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        assert _load_json(path) == {}


class TestEnvOverrides:
    def test_demo_mode_override(self):
        with patch.dict(os.environ, {"DEMO_MODE": "true"}):
            assert get_config().get_app_config()["demo_mode"] is True

    def test_network_override(self):
        with patch.dict(os.environ, {"POOL_NETWORK": "arbitrum"}):
            assert get_config().get_app_config()["network"] == "arbitrum"


class TestSubgraphHelpers:
    def test_network_sources(self):
        sources = get_config().get_network_sources("base")
        assert [s["name"] for s in sources] == ["uniswap_v3", "uniswap_v4"]

    def test_unknown_network_has_no_sources(self):
        assert get_config().get_network_sources("solana") == []

    def test_disabled_sources_skipped(self):
        cfg = get_config()
        config = {
            "networks": {
                "base": {
                    "sources": [
                        {"name": "uniswap_v3", "version": 3, "url_env": "A", "enabled": False},
                        {"name": "uniswap_v4", "version": 4, "url_env": "B"},
                    ]
                }
            }
        }
        with patch.object(ConfigLoader, "get_subgraph_config", return_value=config):
            assert [s["name"] for s in cfg.get_network_sources("base")] == ["uniswap_v4"]

    def test_graph_api_key(self):
        with patch.dict(os.environ, {"GRAPH_API_KEY": "secret"}):
            assert get_config().get_graph_api_key() == "secret"


class TestCacheManagement:
    def test_cache_produces_same_result(self):
        """Cached calls should return the same object."""
        cfg = get_config()
        a = cfg.get_positions_config()
        b = cfg.get_positions_config()
        assert a is b

    def test_clear_cache(self):
        """clear_cache should not raise and should allow fresh loads."""
        cfg = get_config()
        _ = cfg.get_positions_config()
        cfg.clear_cache()
        result = cfg.get_positions_config()
        assert isinstance(result, dict)


# ===========================================================================
# get_env_var tests
# ===========================================================================


class TestGetEnvVar:
    def test_bool_true_values(self):
        """Boolean 'true', '1', 'yes' should parse as True."""
        for val in ("true", "True", "TRUE", "1", "yes"):
            with patch.dict(os.environ, {"TEST_BOOL": val}):
                assert get_env_var("TEST_BOOL", False, bool) is True

    def test_bool_false_values(self):
        """Boolean 'false', '0', 'no' should parse as False."""
        for val in ("false", "False", "0", "no"):
            with patch.dict(os.environ, {"TEST_BOOL": val}):
                assert get_env_var("TEST_BOOL", True, bool) is False

    def test_int_conversion(self):
        with patch.dict(os.environ, {"TEST_INT": "42"}):
            assert get_env_var("TEST_INT", 0, int) == 42

    def test_float_conversion(self):
        with patch.dict(os.environ, {"TEST_FLOAT": "3.14"}):
            assert get_env_var("TEST_FLOAT", 0.0, float) == pytest.approx(3.14)

    def test_missing_var_returns_default(self):
        os.environ.pop("DEFINITELY_NOT_SET_XYZ", None)
        assert get_env_var("DEFINITELY_NOT_SET_XYZ", "fallback", str) == "fallback"

    def test_invalid_int_returns_default(self):
        with patch.dict(os.environ, {"TEST_BAD_INT": "abc"}):
            assert get_env_var("TEST_BAD_INT", 99, int) == 99


# ===========================================================================
# Config validation tests
# ===========================================================================


class TestValidateAppConfig:
    def test_valid(self):
        assert validate_app_config({"network": "base", "demo_mode": False, "logging": {"log_dir": "logs"}}) == []

    def test_missing_nested_key(self):
        errors = validate_app_config({"network": "base", "demo_mode": False, "logging": {}})
        assert errors == ["logging.log_dir"]


class TestValidateSubgraphConfig:
    def test_valid(self):
        assert validate_subgraph_config(get_config().get_subgraph_config()) == []

    def test_missing_top_level(self):
        errors = validate_subgraph_config({})
        assert "networks" in errors

    def test_empty_sources(self):
        config = {"api_key_env": "K", "default_version": 4, "networks": {"base": {"sources": []}}}
        assert validate_subgraph_config(config) == ["networks.base.sources: must be a non-empty list"]

    def test_source_missing_url_env(self):
        config = {
            "api_key_env": "K",
            "default_version": 4,
            "networks": {"base": {"sources": [{"name": "uniswap_v3", "version": 3}]}},
        }
        assert validate_subgraph_config(config) == ["networks.base.sources[0].url_env"]


class TestValidateCacheConfig:
    def test_valid(self):
        assert validate_cache_config(get_config().get_cache_config()) == []

    def test_missing(self):
        assert "source_timeout_seconds" in validate_cache_config({"freshness_hours": 6})


class TestValidatePositionsConfig:
    def test_valid(self):
        assert validate_positions_config(get_config().get_positions_config()) == []

    def test_missing_tier(self):
        errors = validate_positions_config({"sizing": {"tiers": {"low": {}, "medium": {}}}})
        assert "sizing.tiers.high" in errors


class TestValidateEnvironment:
    def test_all_present(self):
        with patch.dict(os.environ, VALID_ENV):
            assert validate_environment("base") == []

    def test_missing_key_and_endpoint(self):
        env = {k: v for k, v in os.environ.items() if k not in VALID_ENV}
        env["UNISWAP_V3_BASE_SUBGRAPH_URL"] = "https://example.test/v3"
        with patch.dict(os.environ, env, clear=True):
            errors = validate_environment("base")
        assert errors == ["GRAPH_API_KEY", "UNISWAP_V4_BASE_SUBGRAPH_URL"]

    def test_unknown_network(self):
        with patch.dict(os.environ, VALID_ENV):
            assert validate_environment("solana") == ["subgraph sources for network 'solana'"]


class TestValidateAllConfigs:
    def test_all_configs_valid(self):
        """validate_all_configs should pass with real config files and endpoints set."""
        with patch.dict(os.environ, VALID_ENV):
            os.environ.pop("POOL_NETWORK", None)
            validate_all_configs()  # Should not raise

    def test_raises_on_invalid(self):
        """validate_all_configs should raise ConfigValidationError on bad configs."""
        mock_loader = MagicMock()
        mock_loader.get_app_config.return_value = {}
        mock_loader.get_subgraph_config.return_value = {}
        mock_loader.get_cache_config.return_value = {}
        mock_loader.get_positions_config.return_value = {}

        with (
            patch("config.validate.get_config", return_value=mock_loader),
            pytest.raises(ConfigValidationError, match="validation failed"),
        ):
            validate_all_configs()

    def test_missing_environment_reported(self):
        env = {k: v for k, v in os.environ.items() if k not in VALID_ENV}
        env.pop("POOL_NETWORK", None)
        with (
            patch.dict(os.environ, env, clear=True),
            pytest.raises(ConfigValidationError, match="GRAPH_API_KEY"),
        ):
            validate_all_configs()

    def test_error_message_includes_details(self, mock_config_loader):
        """Error message should list which configs and keys failed."""
        mock_config_loader.get_cache_config.return_value = {"freshness_hours": 6}

        with (
            patch("config.validate.get_config", return_value=mock_config_loader),
            patch.dict(os.environ, VALID_ENV),
            pytest.raises(ConfigValidationError, match="refresh_interval_hours"),
        ):
            validate_all_configs()
