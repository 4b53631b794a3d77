"""
Configuration schema validation for the Uniswap pool analytics service.

Validates that all required config files exist and contain required keys,
and that every enabled subgraph source has its endpoint and the Graph API
key set in the environment. Run at startup to fail fast on misconfiguration.
"""

import os
from typing import Any

from config.loader import get_config


class ConfigValidationError(ValueError):
    """Raised when a required config key, endpoint or credential is missing."""

    pass


def _check_keys(config: dict[str, Any], required_keys: list[str], config_name: str) -> list[str]:
    """Check that all required keys exist in a config dict. Returns list of missing keys."""
    missing = []
    for key in required_keys:
        parts = key.split(".")
        current = config
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                missing.append(key)
                break
            current = current[part]
    return missing


def validate_app_config(config: dict[str, Any]) -> list[str]:
    """Validate app.json has required fields."""
    return _check_keys(
        config,
        [
            "network",
            "demo_mode",
            "logging.log_dir",
        ],
        "app.json",
    )


def validate_subgraph_config(config: dict[str, Any]) -> list[str]:
    """Validate subgraphs.json has required fields and at least one source per network."""
    errors = _check_keys(config, ["api_key_env", "default_version", "networks"], "subgraphs.json")
    if not errors:
        networks = config.get("networks", {})
        if not isinstance(networks, dict) or len(networks) == 0:
            errors.append("networks: must be a non-empty mapping")
        else:
            for name, network in networks.items():
                sources = network.get("sources", []) if isinstance(network, dict) else []
                if not isinstance(sources, list) or len(sources) == 0:
                    errors.append(f"networks.{name}.sources: must be a non-empty list")
                    continue
                for i, source in enumerate(sources):
                    for missing in _check_keys(source, ["name", "version", "url_env"], ""):
                        errors.append(f"networks.{name}.sources[{i}].{missing}")
    return errors


def validate_cache_config(config: dict[str, Any]) -> list[str]:
    """Validate cache.json has required fields."""
    return _check_keys(
        config,
        [
            "freshness_hours",
            "refresh_interval_hours",
            "source_timeout_seconds",
            "refresh_top_n",
        ],
        "cache.json",
    )


def validate_positions_config(config: dict[str, Any]) -> list[str]:
    """Validate positions.json has required fields."""
    return _check_keys(
        config,
        [
            "sizing.tiers.low",
            "sizing.tiers.medium",
            "sizing.tiers.high",
            "rebalance.min_action_threshold_pct",
            "rebalance.min_viable_apr",
            "rebalance.correlation_thresholds",
        ],
        "positions.json",
    )


def validate_environment(network: str) -> list[str]:
    """Check the Graph API key and the endpoint of every enabled source for a network."""
    loader = get_config()
    errors = []
    api_key_env = loader.get_subgraph_config().get("api_key_env", "GRAPH_API_KEY")
    if not os.getenv(api_key_env):
        errors.append(api_key_env)
    sources = loader.get_network_sources(network)
    if not sources:
        errors.append(f"subgraph sources for network '{network}'")
    for source in sources:
        url_env = source.get("url_env", "")
        if not url_env or not os.getenv(url_env):
            errors.append(url_env or f"url_env for source {source.get('name')}")
    return errors


def validate_all_configs() -> None:
    """
    Validate all config files and required environment variables.

    Raises ConfigValidationError with details if anything is missing.
    """
    loader = get_config()
    all_errors: dict[str, list[str]] = {}

    validators = {
        "app.json": (loader.get_app_config, validate_app_config),
        "subgraphs.json": (loader.get_subgraph_config, validate_subgraph_config),
        "cache.json": (loader.get_cache_config, validate_cache_config),
        "positions.json": (loader.get_positions_config, validate_positions_config),
    }

    for config_name, (loader_fn, validator_fn) in validators.items():
        config = loader_fn()
        if not config:
            all_errors[config_name] = ["Config file is empty or not found"]
            continue
        errors = validator_fn(config)
        if errors:
            all_errors[config_name] = errors

    if "app.json" not in all_errors and "subgraphs.json" not in all_errors:
        env_errors = validate_environment(loader.get_app_config().get("network", "base"))
        if env_errors:
            all_errors["environment"] = env_errors

    if all_errors:
        lines = ["Configuration validation failed:"]
        for config_name, errors in all_errors.items():
            lines.append(f"\n  {config_name}:")
            for error in errors:
                lines.append(f"    - missing: {error}")
        raise ConfigValidationError("\n".join(lines))
