"""
Shared pytest configuration and fixtures for pool analytics tests.

Provides standard mock configs and a patched ConfigLoader used across the
unit test suite. Pool builders live in tests/factories.py.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

# ---------------------------------------------------------------------------
# Decimal helper
# ---------------------------------------------------------------------------


def _d(v) -> Decimal:
    """Shorthand Decimal factory."""
    return Decimal(str(v))


# ---------------------------------------------------------------------------
# Standard mock configs (can be overridden per test via fixture params)
# ---------------------------------------------------------------------------

STANDARD_APP_CONFIG = {
    "service_name": "uniswap-pool-analytics",
    "network": "base",
    "supported_networks": ["base"],
    "demo_mode": False,
    "logging": {"log_dir": "logs"},
}

STANDARD_SUBGRAPH_CONFIG = {
    "api_key_env": "GRAPH_API_KEY",
    "default_version": 4,
    "top_pools_first": 50,
    "client_cache_ttl_seconds": 60,
    "networks": {
        "base": {
            "sources": [
                {"name": "uniswap_v3", "version": 3, "url_env": "UNISWAP_V3_BASE_SUBGRAPH_URL", "enabled": True},
                {"name": "uniswap_v4", "version": 4, "url_env": "UNISWAP_V4_BASE_SUBGRAPH_URL", "enabled": True},
            ]
        }
    },
}

STANDARD_CACHE_CONFIG = {
    "freshness_hours": 6,
    "refresh_interval_hours": 6,
    "source_timeout_seconds": 15,
    "refresh_top_n": 50,
    "summary_top_n": 5,
}

STANDARD_POSITIONS_CONFIG = {
    "sizing": {
        "default_min_position_usd": "100",
        "tiers": {
            "low": {"max_position_percentage": 30, "min_position_usd": "500", "target_positions": 4, "concentration_factor": 0.7},
            "medium": {"max_position_percentage": 40, "min_position_usd": "250", "target_positions": 3, "concentration_factor": 0.8},
            "high": {"max_position_percentage": 60, "min_position_usd": "100", "target_positions": 2, "concentration_factor": 0.9},
        },
    },
    "rebalance": {
        "min_action_threshold_pct": 10,
        "max_positions": 10,
        "min_viable_apr": 5,
        "new_capital_fraction": "0.8",
        "boundary_proximity": 0.2,
        "default_volatility": 0.05,
        "range_width_multipliers": {"low": 4.0, "medium": 2.5, "high": 1.5},
        "correlation_thresholds": {"low": 0.7, "medium": 0.4, "high": 0.0},
    },
}


# ---------------------------------------------------------------------------
# Config loader fixture (patched singleton)
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config_loader():
    """
    Provide a mock ConfigLoader that returns standard configs.

    Usage in tests:
        def test_something(mock_config_loader):
            mock_config_loader.get_app_config.return_value = {...}
    """
    loader = MagicMock()
    loader.get_app_config.return_value = dict(STANDARD_APP_CONFIG)
    loader.get_subgraph_config.return_value = dict(STANDARD_SUBGRAPH_CONFIG)
    loader.get_cache_config.return_value = dict(STANDARD_CACHE_CONFIG)
    loader.get_positions_config.return_value = dict(STANDARD_POSITIONS_CONFIG)
    loader.get_network_sources.return_value = STANDARD_SUBGRAPH_CONFIG["networks"]["base"]["sources"]
    loader.get_graph_api_key.return_value = "test-api-key"
    return loader
