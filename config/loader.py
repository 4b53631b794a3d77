"""
Configuration loader for the Uniswap pool analytics service.

Provides centralized configuration management with .env overrides.

Usage:
    from config.loader import get_config

    config = get_config()
    sources = config.get_subgraph_config()["networks"]["base"]["sources"]
    freshness_hours = config.get_cache_config()["freshness_hours"]
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

# Resolve config directory relative to this file
_CONFIG_DIR = Path(__file__).parent
_PROJECT_ROOT = _CONFIG_DIR.parent


def _load_json(filepath: Path) -> Dict[str, Any]:
    """Load a JSON config file. Returns empty dict if file doesn't exist."""
    try:
        with open(filepath, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"[CONFIG_WARN] Config file not found: {filepath}")
        return {}
    except json.JSONDecodeError as e:
        print(f"[CONFIG_ERROR] Invalid JSON in {filepath}: {e}")
        return {}


def get_env_var(var_name: str, default_value: Any, var_type: type) -> Any:
    """Get environment variable with type conversion and fallback."""
    value = os.getenv(var_name, None)
    if value is None:
        return default_value
    try:
        if var_type == bool:
            return value.lower() in ("true", "1", "yes")
        return var_type(value)
    except (ValueError, TypeError):
        return default_value


class ConfigLoader:
    """
    Central configuration manager for the pool analytics service.

    Loads configuration from JSON files in the config/ directory with .env overrides.
    All accessor methods are cached via @lru_cache for performance.
    """

    _instance: Optional["ConfigLoader"] = None

    def __init__(self):
        self._config_dir = _CONFIG_DIR
        self._project_root = _PROJECT_ROOT

    @classmethod
    def get_instance(cls) -> "ConfigLoader":
        """Singleton accessor."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------
    # Core config file loaders (cached)
    # ------------------------------------------------------------------

    @lru_cache(maxsize=1)
    def get_app_config(self) -> Dict[str, Any]:
        """Load general application settings (network, demo mode, logging)."""
        config = _load_json(self._config_dir / "app.json")
        if config:
            config["demo_mode"] = get_env_var("DEMO_MODE", config.get("demo_mode", False), bool)
            config["network"] = get_env_var("POOL_NETWORK", config.get("network", "base"), str)
        return config

    @lru_cache(maxsize=1)
    def get_subgraph_config(self) -> Dict[str, Any]:
        """Load subgraph source definitions per network."""
        return _load_json(self._config_dir / "subgraphs.json")

    @lru_cache(maxsize=1)
    def get_cache_config(self) -> Dict[str, Any]:
        """Load pool cache freshness, refresh interval and per-source timeout."""
        return _load_json(self._config_dir / "cache.json")

    @lru_cache(maxsize=1)
    def get_positions_config(self) -> Dict[str, Any]:
        """Load position sizing tier defaults and rebalancing thresholds."""
        return _load_json(self._config_dir / "positions.json")

    # ------------------------------------------------------------------
    # Subgraph helpers
    # ------------------------------------------------------------------

    def get_network_sources(self, network: str) -> list[Dict[str, Any]]:
        """Return the enabled subgraph sources for a network."""
        networks = self.get_subgraph_config().get("networks", {})
        sources = networks.get(network, {}).get("sources", [])
        return [s for s in sources if s.get("enabled", True)]

    def get_graph_api_key(self) -> str:
        """Return the Graph gateway API key from the environment."""
        env_name = self.get_subgraph_config().get("api_key_env", "GRAPH_API_KEY")
        return os.getenv(env_name, "")

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Clear all cached configurations (useful for testing)."""
        for method_name in dir(self):
            method = getattr(self, method_name)
            if hasattr(method, "cache_clear"):
                method.cache_clear()


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------


def get_config() -> ConfigLoader:
    """Get the singleton ConfigLoader instance."""
    return ConfigLoader.get_instance()
