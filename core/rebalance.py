"""
Rebalancing engine for concentrated-liquidity positions.

Compares a user's current positions with the current scored-pool universe
and returns prioritized, actionable recommendations (MAINTAIN results are
dropped). Also provides the price-range and impermanent-loss helpers the
recommendations are built from.

Per held position:
    - pool missing from the universe   -> EXIT (priority 9)
    - range drift or price near a range boundary -> ADJUST_RANGE (7)
    - APR moved beyond the threshold since entry -> reason only (6 / 4)
    - correlation below the tier minimum -> DECREASE by 50% (8)
    - APR below the 5% floor            -> EXIT (9), overrides the rest
Spare capital: best unheld pools by score, APR >= floor and correlation
at or above the tier minimum, 80% of the liquidity split evenly across
open slots (priority 5).

Usage:
    engine = RebalanceEngine()
    actions = engine.generate_recommendations(pools, positions, StrategyTier.LOW)
"""

from __future__ import annotations

import math
from decimal import Decimal

from app_logging.logger_manager import setup_module_logger
from config.loader import get_config
from shared.constants import (
    BOUNDARY_PROXIMITY,
    DEFAULT_MIN_ACTION_THRESHOLD,
    DEFAULT_RANGE_ADJUST_THRESHOLD,
    DEFAULT_RANGE_VOLATILITY,
    MIN_VIABLE_APR,
    NEW_CAPITAL_FRACTION,
    REFERENCE_PRICE,
)
from shared.types import (
    CurrentPosition,
    PriceRange,
    RebalanceAction,
    RebalanceActionType,
    RebalanceReason,
    ScoredPool,
    StrategyTier,
)

DEFAULT_RANGE_WIDTH_MULTIPLIERS = {
    StrategyTier.LOW: 4.0,  # wide range, little active management
    StrategyTier.MEDIUM: 2.5,
    StrategyTier.HIGH: 1.5,  # narrow range, more fee capture
}

DEFAULT_CORRELATION_THRESHOLDS = {
    StrategyTier.LOW: 0.7,
    StrategyTier.MEDIUM: 0.4,
    StrategyTier.HIGH: 0.0,
}

PRIORITY_EXIT = 9
PRIORITY_CORRELATION = 8
PRIORITY_RANGE = 7
PRIORITY_APR_DECLINE = 6
PRIORITY_NEW_POSITION = 5
PRIORITY_APR_INCREASE = 4


# ---------------------------------------------------------------------------
# Price range helpers
# ---------------------------------------------------------------------------


def calculate_optimal_price_range(
    pool: ScoredPool,
    current_price: float,
    tier: StrategyTier = StrategyTier.MEDIUM,
    width_multipliers: dict[StrategyTier, float] | None = None,
    default_volatility: float = DEFAULT_RANGE_VOLATILITY,
) -> PriceRange:
    """Range centered on the current price, half-width = APR volatility x tier multiplier."""
    multipliers = width_multipliers or DEFAULT_RANGE_WIDTH_MULTIPLIERS
    volatility = pool.apr_std_dev / 100 if pool.apr_std_dev else default_volatility
    half_width = volatility * multipliers[tier]
    return PriceRange(
        lower_price=current_price * (1 - half_width),
        upper_price=current_price * (1 + half_width),
    )


def needs_range_adjustment(
    current_range: PriceRange,
    optimal_range: PriceRange,
    current_price: float,
    min_threshold_percent: float = DEFAULT_RANGE_ADJUST_THRESHOLD,
    boundary_proximity: float = BOUNDARY_PROXIMITY,
) -> bool:
    """True if the range differs from optimal beyond the threshold or the price is near a boundary."""
    current_width = current_range.width
    if current_range.lower_price <= 0 or current_range.upper_price <= 0 or current_width <= 0:
        return True

    lower_diff = abs((optimal_range.lower_price - current_range.lower_price) / current_range.lower_price * 100)
    upper_diff = abs((optimal_range.upper_price - current_range.upper_price) / current_range.upper_price * 100)
    width_diff = abs((optimal_range.width - current_width) / current_width * 100)

    proximity_to_lower = (current_price - current_range.lower_price) / current_width
    proximity_to_upper = (current_range.upper_price - current_price) / current_width
    near_boundary = proximity_to_lower < boundary_proximity or proximity_to_upper < boundary_proximity

    return (
        lower_diff > min_threshold_percent
        or upper_diff > min_threshold_percent
        or width_diff > min_threshold_percent
        or near_boundary
    )


def get_price_position_in_range(current_price: float, price_range: PriceRange) -> int:
    """-1 below the range, 0 inside, 1 above."""
    if current_price < price_range.lower_price:
        return -1
    if current_price > price_range.upper_price:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Impermanent loss
# ---------------------------------------------------------------------------


def estimate_impermanent_loss(price_change_percent: float) -> float:
    """
    Impermanent loss (percent, <= 0) for a relative price move.

    IL = 2 * sqrt(r) / (1 + r) - 1 with r = 1 + change / 100.
    """
    ratio = 1 + price_change_percent / 100
    if ratio <= 0:
        return -100.0
    return (2 * math.sqrt(ratio) / (1 + ratio) - 1) * 100


def calculate_fee_vs_il_tradeoff(pool: ScoredPool, price_volatility_pct: float, days_held: int) -> float:
    """Expected fee return over the holding period plus the (negative) IL estimate."""
    if pool.apr is None:
        return 0.0
    fees_pct = pool.apr / 365 * days_held
    return fees_pct + estimate_impermanent_loss(price_volatility_pct)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class RebalanceEngine:
    """Produces prioritized rebalance actions for a portfolio of pool positions."""

    def __init__(self) -> None:
        cfg = get_config()
        rebalance_config = cfg.get_positions_config().get("rebalance", {})

        self._min_viable_apr = float(rebalance_config.get("min_viable_apr", MIN_VIABLE_APR))
        self._new_capital_fraction = Decimal(
            str(rebalance_config.get("new_capital_fraction", NEW_CAPITAL_FRACTION))
        )
        self._boundary_proximity = float(rebalance_config.get("boundary_proximity", BOUNDARY_PROXIMITY))
        self._default_volatility = float(rebalance_config.get("default_volatility", DEFAULT_RANGE_VOLATILITY))
        multipliers = rebalance_config.get("range_width_multipliers", {})
        self._width_multipliers = {
            tier: float(multipliers.get(tier.value, default))
            for tier, default in DEFAULT_RANGE_WIDTH_MULTIPLIERS.items()
        }
        thresholds = rebalance_config.get("correlation_thresholds", {})
        self._correlation_thresholds = {
            tier: float(thresholds.get(tier.value, default))
            for tier, default in DEFAULT_CORRELATION_THRESHOLDS.items()
        }

        self._logger = setup_module_logger("rebalance", "rebalance.log", module_folder="Portfolio_Logs")

    def correlation_threshold(self, tier: StrategyTier) -> float:
        return self._correlation_thresholds[tier]

    def generate_recommendations(
        self,
        pools: list[ScoredPool],
        current_positions: list[CurrentPosition],
        tier: StrategyTier = StrategyTier.MEDIUM,
        available_liquidity: Decimal = Decimal("0"),
        min_action_threshold: float = DEFAULT_MIN_ACTION_THRESHOLD,
        max_positions: int | None = None,
        current_prices: dict[str, float] | None = None,
        entry_aprs: dict[str, float] | None = None,
    ) -> list[RebalanceAction]:
        """
        Build rebalance actions for held positions and, if capital is spare, new entries.

        Args:
            pools: Current scored-pool universe.
            current_positions: Positions held now.
            tier: Risk tier (range width, correlation minimum).
            available_liquidity: Spare USD capital for new positions.
            min_action_threshold: Percent change that triggers range/APR actions.
            max_positions: Portfolio slot limit (defaults to the current count).
            current_prices: Optional pool id -> current relative price (1.0 if absent).
            entry_aprs: Optional pool id -> APR at entry, for APR change detection.

        Returns:
            Actions sorted by priority, highest first.
        """
        pools_by_id = {p.id: p for p in pools}
        prices = current_prices or {}
        entry_aprs = entry_aprs or {}
        limit = len(current_positions) if max_positions is None else max_positions

        actions: list[RebalanceAction] = []
        for position in current_positions:
            pool = pools_by_id.get(position.pool_id)
            if pool is None:
                actions.append(
                    RebalanceAction(
                        action_type=RebalanceActionType.EXIT_POSITION,
                        pool_id=position.pool_id,
                        priority=PRIORITY_EXIT,
                        reason_codes=[RebalanceReason.POOL_TVL_DECLINE],
                        reasons=["Pool data not available, possible liquidity issues"],
                        current_size=position.size,
                        target_size=Decimal("0"),
                        size_change_percent=-100.0,
                    )
                )
                continue

            action = self._evaluate_position(
                position,
                pool,
                tier,
                prices.get(position.pool_id, REFERENCE_PRICE),
                min_action_threshold,
                entry_aprs.get(position.pool_id),
            )
            if action is not None:
                actions.append(action)

        if available_liquidity > 0 and len(current_positions) < limit:
            actions.extend(self._new_positions(pools, current_positions, tier, available_liquidity, limit, prices))

        actions.sort(key=lambda a: a.priority, reverse=True)
        self._logger.info(
            "Generated %d rebalance action(s) for %d position(s), tier=%s, liquidity=%s",
            len(actions),
            len(current_positions),
            tier.value,
            available_liquidity,
        )
        return actions

    # ------------------------------------------------------------------
    # Held positions
    # ------------------------------------------------------------------

    def _evaluate_position(
        self,
        position: CurrentPosition,
        pool: ScoredPool,
        tier: StrategyTier,
        current_price: float,
        min_action_threshold: float,
        entry_apr: float | None,
    ) -> RebalanceAction | None:
        optimal_range = calculate_optimal_price_range(
            pool, current_price, tier, self._width_multipliers, self._default_volatility
        )
        reasons: list[str] = []
        reason_codes: list[RebalanceReason] = []
        priority = 1

        range_adjustment = False
        if position.price_range is not None:
            range_adjustment = needs_range_adjustment(
                position.price_range, optimal_range, current_price, min_action_threshold, self._boundary_proximity
            )
            if range_adjustment:
                reason_codes.append(RebalanceReason.RANGE_INEFFICIENCY)
                reasons.append("Position range is no longer optimal for current market conditions")
                priority = max(priority, PRIORITY_RANGE)

        apr_change = 0.0
        if entry_apr and pool.apr is not None:
            apr_change = (pool.apr - entry_apr) / entry_apr * 100
        if abs(apr_change) > min_action_threshold:
            if apr_change < 0:
                reason_codes.append(RebalanceReason.APR_DECLINE)
                reasons.append(f"Pool APR has declined by {abs(apr_change):.1f}%")
                priority = max(priority, PRIORITY_APR_DECLINE)
            else:
                reason_codes.append(RebalanceReason.APR_INCREASE)
                reasons.append(f"Pool APR has increased by {apr_change:.1f}%")
                priority = max(priority, PRIORITY_APR_INCREASE)

        size_adjustment = 0.0
        threshold = self._correlation_thresholds[tier]
        if pool.correlation is not None and pool.correlation < threshold:
            reason_codes.append(RebalanceReason.CORRELATION_CHANGE)
            reasons.append(
                f"Token correlation ({pool.correlation:.2f}) below threshold for {tier.value} risk profile"
            )
            size_adjustment -= 50
            priority = max(priority, PRIORITY_CORRELATION)

        if pool.apr is not None and pool.apr < self._min_viable_apr:
            reason_codes.append(RebalanceReason.APR_DECLINE)
            reasons.append(f"Pool APR ({pool.apr:.1f}%) is below minimum threshold")
            size_adjustment -= 100
            priority = max(priority, PRIORITY_EXIT)

        if size_adjustment <= -100:
            action_type = RebalanceActionType.EXIT_POSITION
        elif size_adjustment < 0:
            action_type = RebalanceActionType.DECREASE_SIZE
        elif size_adjustment > 0:
            action_type = RebalanceActionType.INCREASE_SIZE
        elif range_adjustment:
            action_type = RebalanceActionType.ADJUST_RANGE
        else:
            return None

        target_size = max(
            Decimal("0"),
            position.size * (Decimal("1") + Decimal(str(size_adjustment)) / Decimal("100")),
        )
        return RebalanceAction(
            action_type=action_type,
            pool_id=position.pool_id,
            priority=priority,
            reason_codes=reason_codes,
            reasons=reasons,
            token0=pool.token0.symbol,
            token1=pool.token1.symbol,
            fee_tier=pool.fee_tier,
            current_size=position.size,
            target_size=target_size,
            size_change_percent=size_adjustment,
            current_price_range=position.price_range,
            recommended_price_range=optimal_range,
        )

    # ------------------------------------------------------------------
    # New capital
    # ------------------------------------------------------------------

    def _new_positions(
        self,
        pools: list[ScoredPool],
        current_positions: list[CurrentPosition],
        tier: StrategyTier,
        available_liquidity: Decimal,
        max_positions: int,
        prices: dict[str, float],
    ) -> list[RebalanceAction]:
        held = {p.pool_id for p in current_positions}
        candidates = sorted(
            (p for p in pools if p.id not in held),
            key=lambda p: p.score or 0.0,
            reverse=True,
        )
        slots = min(max_positions - len(current_positions), len(candidates))
        if slots <= 0:
            return []

        position_size = available_liquidity * self._new_capital_fraction / Decimal(slots)
        threshold = self._correlation_thresholds[tier]

        actions = []
        for pool in candidates[:slots]:
            if pool.apr is None or pool.apr < self._min_viable_apr:
                continue
            if pool.correlation is not None and pool.correlation < threshold:
                continue

            price = prices.get(pool.id, REFERENCE_PRICE)
            correlation_text = f"{pool.correlation:.2f}" if pool.correlation is not None else "N/A"
            actions.append(
                RebalanceAction(
                    action_type=RebalanceActionType.ENTER_POSITION,
                    pool_id=pool.id,
                    priority=PRIORITY_NEW_POSITION,
                    reason_codes=[RebalanceReason.NEW_OPPORTUNITY],
                    reasons=[
                        f"New high-performing pool (APR: {pool.apr:.1f}%) aligned with {tier.value} risk profile",
                        f"Pool has favorable correlation: {correlation_text}",
                    ],
                    token0=pool.token0.symbol,
                    token1=pool.token1.symbol,
                    fee_tier=pool.fee_tier,
                    current_size=Decimal("0"),
                    target_size=position_size,
                    size_change_percent=100.0,
                    recommended_price_range=calculate_optimal_price_range(
                        pool, price, tier, self._width_multipliers, self._default_volatility
                    ),
                )
            )
        return actions
