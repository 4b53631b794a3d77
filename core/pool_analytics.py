"""
Pool analytics service: fetch, score, size and rebalance.

Facade over the subgraph client and the pure analytics modules. Every call
fetches from the subgraph (the client keeps a short TTL cache); the long-lived
per-strategy cache lives in core/pool_cache.py on top of this service.

Validation of caller input happens here and raises InputError with the
violated constraint in the message. Upstream failures propagate as
DataSourceError.

Usage:
    analytics = PoolAnalyticsService(client, PositionSizer(), RebalanceEngine())
    pools = await analytics.get_pools_by_strategy("base", "low")
    sizing = await analytics.get_position_sizing("base", "medium", "10000")
"""

from __future__ import annotations

import math
import time
import uuid
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from app_logging.logger_manager import log_data_output, setup_module_logger
from config.loader import get_config
from core.metrics import compute_all
from core.position_sizing import PositionSizer
from core.presets import get_preset
from core.rebalance import RebalanceEngine
from core.scoring import score_pools
from execution.subgraph_client import SubgraphClient
from shared.constants import (
    CACHE_REFRESH_TOP_N,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_MAX_POSITIONS,
    DEFAULT_MIN_ACTION_THRESHOLD,
)
from shared.types import CurrentPosition, PriceRange, ScoredPool, ScoringOptions, StrategyTier


class InputError(ValueError):
    """Malformed caller input (tier, amount, positions)."""


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------


def parse_tier(value: StrategyTier | str) -> StrategyTier:
    try:
        return StrategyTier.parse(value)
    except ValueError as e:
        raise InputError(str(e)) from None


def parse_amount(value: Any, name: str, allow_zero: bool = False) -> Decimal:
    """Parse a USD amount as Decimal. Rejects bools, non-numeric, non-finite and non-positive values."""
    if isinstance(value, bool):
        raise InputError(f"{name} must be a number, got {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InputError(f"{name} must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise InputError(f"{name} must be finite, got {value!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        constraint = "non-negative" if allow_zero else "positive"
        raise InputError(f"{name} must be a {constraint} number, got {value!r}")
    return amount


def _field(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def parse_price_range(raw: Any, index: int) -> PriceRange | None:
    if raw is None or isinstance(raw, PriceRange):
        return raw
    if not isinstance(raw, Mapping):
        raise InputError(f"positions[{index}].price_range must be an object")
    try:
        lower = float(_field(raw, "lower_price", "lowerPrice"))
        upper = float(_field(raw, "upper_price", "upperPrice"))
    except (TypeError, ValueError):
        raise InputError(f"positions[{index}].price_range needs numeric lower_price and upper_price") from None
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise InputError(f"positions[{index}].price_range bounds must be finite")
    return PriceRange(lower, upper)


def parse_current_positions(raw_positions: Any) -> list[CurrentPosition]:
    """
    Accept CurrentPosition instances or mappings with pool_id/poolId, size,
    optional price_range/priceRange and entry_date/entryDate.
    """
    if not isinstance(raw_positions, (list, tuple)):
        raise InputError("current_positions must be provided as a list")

    positions = []
    for i, raw in enumerate(raw_positions):
        if isinstance(raw, CurrentPosition):
            positions.append(raw)
            continue
        if not isinstance(raw, Mapping):
            raise InputError(f"positions[{i}] must be an object")

        pool_id = _field(raw, "pool_id", "poolId")
        if not isinstance(pool_id, str) or not pool_id:
            raise InputError(f"positions[{i}].pool_id must be a non-empty string")
        size = parse_amount(_field(raw, "size"), f"positions[{i}].size", allow_zero=True)

        entry_date = _field(raw, "entry_date", "entryDate")
        if entry_date is not None:
            try:
                entry_date = int(entry_date)
            except (TypeError, ValueError):
                raise InputError(f"positions[{i}].entry_date must be a unix timestamp") from None

        positions.append(
            CurrentPosition(
                pool_id=pool_id,
                size=size,
                price_range=parse_price_range(_field(raw, "price_range", "priceRange"), i),
                entry_date=entry_date,
            )
        )
    return positions


_FLOAT_OPTIONS = frozenset(
    {
        "min_tvl",
        "min_apr",
        "min_token_correlation",
        "max_token_correlation",
        "correlation_weight",
        "apr_weight",
        "tvl_weight",
        "volatility_weight",
        "tvl_trend_weight",
        "volume_trend_weight",
    }
)
_COUNT_OPTIONS = frozenset({"top_n", "history_days", "max_pool_age_days"})
_FLAG_OPTIONS = frozenset({"prefer_stable_correlation", "prefer_stable_base", "avoid_exotic_pairs"})


def parse_scoring_overrides(overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Validate caller scoring overrides and coerce them to ScoringOptions types.

    None values are dropped so preset or default values apply.
    """
    if overrides is None:
        return {}
    if not isinstance(overrides, Mapping):
        raise InputError("scoring options must be provided as an object")

    unknown = set(overrides) - set(ScoringOptions.__dataclass_fields__)
    if unknown:
        raise InputError(f"unknown scoring option(s): {', '.join(sorted(unknown))}")

    parsed: dict[str, Any] = {}
    for name, value in overrides.items():
        if value is None:
            continue
        if name in _FLOAT_OPTIONS:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InputError(f"{name} must be a finite number, got {value!r}")
            parsed[name] = float(value)
        elif name in _COUNT_OPTIONS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InputError(f"{name} must be an integer of at least 1, got {value!r}")
            parsed[name] = value
        elif name in _FLAG_OPTIONS:
            if not isinstance(value, bool):
                raise InputError(f"{name} must be true or false, got {value!r}")
            parsed[name] = value
        elif name == "preferred_fee_tiers":
            if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
                raise InputError(f"preferred_fee_tiers must be a list of integers, got {value!r}")
            if any(isinstance(t, bool) or not isinstance(t, int) for t in value):
                raise InputError(f"preferred_fee_tiers must be a list of integers, got {value!r}")
            parsed[name] = tuple(value)
        elif name == "tier":
            parsed[name] = parse_tier(value)
    return parsed


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class PoolAnalyticsService:
    """Fetches pools and runs metrics, scoring, sizing and rebalancing on them."""

    def __init__(
        self,
        subgraph_client: SubgraphClient,
        position_sizer: PositionSizer,
        rebalance_engine: RebalanceEngine,
    ) -> None:
        self._client = subgraph_client
        self._sizer = position_sizer
        self._rebalancer = rebalance_engine

        cfg = get_config()
        self._refresh_top_n = int(cfg.get_cache_config().get("refresh_top_n", CACHE_REFRESH_TOP_N))
        rebalance_config = cfg.get_positions_config().get("rebalance", {})
        self._min_action_threshold = float(
            rebalance_config.get("min_action_threshold_pct", DEFAULT_MIN_ACTION_THRESHOLD)
        )
        self._max_positions = int(rebalance_config.get("max_positions", DEFAULT_MAX_POSITIONS))

        self._logger = setup_module_logger(
            "pool_analytics", "pool_analytics.log", module_folder="Pool_Analytics_Logs"
        )

    @property
    def network(self) -> str:
        return self._client.network

    @property
    def versions(self) -> list[int]:
        return self._client.versions

    def resolve_network(self, network: str | None) -> str:
        """Only the client's network is served; anything else falls back to it with a warning."""
        served = self._client.network
        if network and network != served:
            self._logger.warning("Network %r not supported, using %r", network, served)
        return served

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    async def get_pools_with_apr(
        self,
        network: str | None = None,
        history_days: int = DEFAULT_HISTORY_DAYS,
        version: int | None = None,
    ) -> list[ScoredPool]:
        """Top pools by TVL with per-pool metrics; unsorted and unfiltered."""
        self.resolve_network(network)
        if isinstance(history_days, bool) or not isinstance(history_days, int) or history_days < 1:
            raise InputError(f"history_days must be an integer of at least 1, got {history_days!r}")
        pools = await self._client.fetch_top_pools(version=version, history_days=history_days)
        return compute_all(pools)

    async def get_best_pools_with_score(
        self,
        network: str | None,
        options: ScoringOptions,
        version: int | None = None,
    ) -> list[ScoredPool]:
        """Scored, filtered and sorted pools for the given options."""
        trace_id = uuid.uuid4().hex
        pools = await self.get_pools_with_apr(network, options.history_days, version)
        ranked = score_pools(pools, options, trace_id=trace_id)
        log_data_output(
            trace_id=trace_id,
            source_module="pool_analytics",
            what="Best pools with score",
            why="Ranked pools for callers and the strategy cache",
            data_type="ScoredPool[]",
            data={"version": version, "tier": options.tier.value if options.tier else None, "count": len(ranked)},
            next_stage="caller",
        )
        return ranked

    async def get_best_pools(
        self,
        network: str | None = None,
        overrides: Mapping[str, Any] | None = None,
        strategy: StrategyTier | str | None = None,
        version: int | None = None,
    ) -> list[ScoredPool]:
        """
        Scored pools from explicit options.

        With a strategy the preset is applied first and `overrides` win over it;
        without one the pipeline defaults are used.
        """
        overrides = parse_scoring_overrides(overrides)

        if strategy is not None:
            options = ScoringOptions.from_preset(get_preset(parse_tier(strategy)), **overrides)
        else:
            options = ScoringOptions(**overrides)
        return await self.get_best_pools_with_score(network, options, version)

    async def get_pools_by_strategy(
        self,
        network: str | None,
        tier: StrategyTier | str,
        top_n: int | None = None,
        history_days: int | None = None,
        version: int | None = None,
    ) -> list[ScoredPool]:
        """Scored pools using a tier's preset; top_n/history_days default to the preset's."""
        preset = get_preset(parse_tier(tier))
        overrides = parse_scoring_overrides({"top_n": top_n, "history_days": history_days})
        options = ScoringOptions.from_preset(preset, **overrides)
        return await self.get_best_pools_with_score(network, options, version)

    # ------------------------------------------------------------------
    # Sizing and rebalancing
    # ------------------------------------------------------------------

    async def get_position_sizing(
        self,
        network: str | None,
        tier: StrategyTier | str,
        total_investment_usd: Any,
        max_positions: int | None = None,
        equal_weight: bool = False,
    ) -> dict[str, Any]:
        """
        Position size recommendations for a tier.

        Returns:
            {"strategy", "total_investment_usd", "positions"} where each
            position carries pool_id, percentage, target_value_usd and the
            pool's token symbols, fee tier, APR and correlation.
        """
        tier = parse_tier(tier)
        amount = parse_amount(total_investment_usd, "total_investment_usd")
        if max_positions is not None and max_positions < 1:
            raise InputError(f"max_positions must be at least 1, got {max_positions}")

        pools = await self.get_pools_by_strategy(network, tier, top_n=max_positions or self._max_positions)
        sizes = self._sizer.calculate_position_sizes(pools, amount, tier, equal_weight=equal_weight)

        pools_by_id = {p.id: p for p in pools}
        positions = []
        for size in sizes:
            pool = pools_by_id.get(size.pool_id)
            positions.append(
                {
                    "pool_id": size.pool_id,
                    "percentage": size.percentage,
                    "target_value_usd": size.target_value_usd,
                    "token0": pool.token0.symbol if pool else None,
                    "token1": pool.token1.symbol if pool else None,
                    "fee_tier": pool.fee_tier if pool else None,
                    "apr": pool.apr if pool else None,
                    "correlation": pool.correlation if pool else None,
                }
            )

        return {"strategy": tier.value, "total_investment_usd": amount, "positions": positions}

    async def get_rebalance_recommendations(
        self,
        network: str | None,
        tier: StrategyTier | str,
        current_positions: Any,
        available_liquidity: Any = 0,
        min_action_threshold: float | None = None,
        max_positions: int | None = None,
        current_prices: dict[str, float] | None = None,
        entry_aprs: dict[str, float] | None = None,
    ) -> dict[str, Any]:
        """
        Rebalancing actions for a portfolio against a wide (top 50) pool universe.

        Returns:
            {"strategy", "recommendations_count", "recommendations",
             "market_conditions": {"timestamp", "network", "pools_analyzed"}}
        """
        tier = parse_tier(tier)
        positions = parse_current_positions(current_positions)
        liquidity = parse_amount(available_liquidity, "available_liquidity", allow_zero=True)
        if min_action_threshold is None:
            min_action_threshold = self._min_action_threshold
        if max_positions is None:
            max_positions = self._max_positions
        if min_action_threshold < 0:
            raise InputError(f"min_action_threshold must be non-negative, got {min_action_threshold}")
        if max_positions < 1:
            raise InputError(f"max_positions must be at least 1, got {max_positions}")

        served = self.resolve_network(network)
        pools = await self.get_pools_by_strategy(served, tier, top_n=self._refresh_top_n)
        recommendations = self._rebalancer.generate_recommendations(
            pools,
            positions,
            tier=tier,
            available_liquidity=liquidity,
            min_action_threshold=min_action_threshold,
            max_positions=max_positions,
            current_prices=current_prices,
            entry_aprs=entry_aprs,
        )

        return {
            "strategy": tier.value,
            "recommendations_count": len(recommendations),
            "recommendations": recommendations,
            "market_conditions": {
                "timestamp": int(time.time() * 1000),
                "network": served,
                "pools_analyzed": len(pools),
            },
        }
