"""
Position sizing for scored Uniswap pools.

Turns a ranked pool list and a capital amount into per-pool allocations.

Modes:
    - equal weight: as many positions as the capital allows at the minimum
      position size, each min(100 / count, max%) of capital
    - score weighted (default): the tier's target number of top pools,
      weighted by score x concentration multiplier
      1 + cf * (n - i - 1) / (n - 1), normalized, capped at max% with the
      excess redistributed once among uncapped pools by weight, and
      positions below the minimum size dropped
    - half-Kelly: independent per-pool sizer from APR and APR volatility

Usage:
    sizer = PositionSizer()
    positions = sizer.calculate_position_sizes(pools, Decimal("10000"), StrategyTier.MEDIUM)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from app_logging.logger_manager import setup_module_logger
from config.loader import get_config
from shared.constants import DEFAULT_MIN_POSITION_USD
from shared.types import PositionSizeRecommendation, ScoredPool, StrategyTier


@dataclass(frozen=True)
class SizingProfile:
    max_position_percentage: float
    min_position_usd: Decimal
    target_positions: int
    concentration_factor: float


DEFAULT_SIZING_PROFILES = {
    StrategyTier.LOW: SizingProfile(30, Decimal("500"), 4, 0.7),
    StrategyTier.MEDIUM: SizingProfile(40, Decimal("250"), 3, 0.8),
    StrategyTier.HIGH: SizingProfile(60, Decimal("100"), 2, 0.9),
}


def _percent_of(total: Decimal, percentage: float) -> Decimal:
    return total * Decimal(str(percentage)) / Decimal("100")


# ---------------------------------------------------------------------------
# Kelly criterion
# ---------------------------------------------------------------------------


def calculate_kelly_position_size(pool: ScoredPool) -> float:
    """
    Half-Kelly allocation (percent of capital) from a pool's APR history.

    Win probability uses a normal approximation W = 0.5 + edge / (vol * sqrt(2 pi))
    and the win/loss ratio R = edge / vol; Kelly = W - (1 - W) / R, clamped to
    [0, 100]% and halved. Returns 0 without APR or with zero volatility.
    """
    if not pool.apr or not pool.apr_std_dev:
        return 0.0

    edge = pool.apr / 100
    volatility = pool.apr_std_dev / 100

    prob_profit = 0.5 + edge / (volatility * math.sqrt(2 * math.pi))
    win_loss_ratio = edge / volatility

    kelly_pct = min(100.0, max(0.0, (prob_profit - (1 - prob_profit) / win_loss_ratio) * 100))
    return kelly_pct / 2


def calculate_kelly_position_value(pool: ScoredPool, total_capital: Decimal) -> Decimal:
    """Half-Kelly allocation in USD."""
    return _percent_of(total_capital, calculate_kelly_position_size(pool))


# ---------------------------------------------------------------------------
# Portfolio sizing
# ---------------------------------------------------------------------------


class PositionSizer:
    """Allocates capital across scored pools using per-tier sizing profiles."""

    def __init__(self) -> None:
        cfg = get_config()
        sizing_config = cfg.get_positions_config().get("sizing", {})

        self._default_min_position_usd = Decimal(
            str(sizing_config.get("default_min_position_usd", DEFAULT_MIN_POSITION_USD))
        )
        tiers_config = sizing_config.get("tiers", {})
        self._profiles: dict[StrategyTier, SizingProfile] = {}
        for tier, default in DEFAULT_SIZING_PROFILES.items():
            tier_cfg = tiers_config.get(tier.value, {})
            self._profiles[tier] = SizingProfile(
                max_position_percentage=float(
                    tier_cfg.get("max_position_percentage", default.max_position_percentage)
                ),
                min_position_usd=Decimal(str(tier_cfg.get("min_position_usd", default.min_position_usd))),
                target_positions=int(tier_cfg.get("target_positions", default.target_positions)),
                concentration_factor=float(
                    tier_cfg.get("concentration_factor", default.concentration_factor)
                ),
            )

        self._logger = setup_module_logger(
            "position_sizing", "position_sizing.log", module_folder="Portfolio_Logs"
        )

    def profile(self, tier: StrategyTier) -> SizingProfile:
        return self._profiles[tier]

    def calculate_position_sizes(
        self,
        pools: list[ScoredPool],
        total_investment_usd: Decimal,
        tier: StrategyTier = StrategyTier.MEDIUM,
        max_position_percentage: float | None = None,
        min_position_usd: Decimal | None = None,
        equal_weight: bool = False,
    ) -> list[PositionSizeRecommendation]:
        """
        Recommend allocations for the given pools.

        Args:
            pools: Scored pools (any order; ranked by score here).
            total_investment_usd: Capital to allocate.
            tier: Risk tier selecting the sizing profile.
            max_position_percentage: Per-position cap (percent), tier default if None.
            min_position_usd: Caller minimum; the larger of this and the tier minimum applies.
            equal_weight: Split evenly instead of by score.

        Returns:
            Recommendations, best pool first. Empty for no pools or no capital.
        """
        if not pools or total_investment_usd <= 0:
            return []

        profile = self._profiles[tier]
        max_pct = (
            float(max_position_percentage)
            if max_position_percentage is not None
            else profile.max_position_percentage
        )
        caller_min = min_position_usd if min_position_usd is not None else self._default_min_position_usd
        min_value = max(caller_min, profile.min_position_usd)
        ranked = sorted(pools, key=lambda p: p.score or 0.0, reverse=True)

        if equal_weight:
            positions = self._equal_weight(ranked, total_investment_usd, max_pct, min_value)
        else:
            positions = self._score_weighted(ranked, total_investment_usd, max_pct, min_value, profile)

        self._logger.info(
            "Sized %d position(s) for %s tier from %d pool(s), capital=%s, equal_weight=%s",
            len(positions),
            tier.value,
            len(pools),
            total_investment_usd,
            equal_weight,
        )
        return positions

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    @staticmethod
    def _equal_weight(
        ranked: list[ScoredPool],
        total: Decimal,
        max_pct: float,
        min_value: Decimal,
    ) -> list[PositionSizeRecommendation]:
        count = min(len(ranked), int(total // min_value)) if min_value > 0 else len(ranked)
        if count <= 0:
            return []
        pct = min(100 / count, max_pct)
        value = _percent_of(total, pct)
        return [PositionSizeRecommendation(p.id, pct, value) for p in ranked[:count]]

    @staticmethod
    def _score_weighted(
        ranked: list[ScoredPool],
        total: Decimal,
        max_pct: float,
        min_value: Decimal,
        profile: SizingProfile,
    ) -> list[PositionSizeRecommendation]:
        target_count = min(len(ranked), profile.target_positions)
        selected = ranked[:target_count]
        if not selected:
            return []

        total_score = sum(p.score or 0.0 for p in selected)
        if total_score <= 0:
            pct = min(100 / len(selected), max_pct)
            return [PositionSizeRecommendation(p.id, pct, _percent_of(total, pct)) for p in selected]

        weights = []
        for i, pool in enumerate(selected):
            multiplier = 1.0
            if target_count > 1:
                multiplier += profile.concentration_factor * (target_count - i - 1) / (target_count - 1)
            weights.append((pool.score or 0.0) * multiplier)
        total_weight = sum(weights)
        percentages = [w / total_weight * 100 for w in weights]

        # Cap oversized positions, then hand the freed budget to the rest by weight
        remaining_pct = 100.0
        remaining_positions = len(percentages)
        for i, pct in enumerate(percentages):
            if pct > max_pct:
                percentages[i] = max_pct
                remaining_pct -= max_pct
                remaining_positions -= 1
            else:
                remaining_pct -= pct

        if remaining_pct > 0 and remaining_positions > 0:
            uncapped = [i for i, pct in enumerate(percentages) if pct < max_pct]
            uncapped_weight = sum(weights[i] for i in uncapped)
            if uncapped_weight > 0:
                for i in uncapped:
                    percentages[i] += remaining_pct * weights[i] / uncapped_weight

        positions = [
            PositionSizeRecommendation(pool.id, pct, _percent_of(total, pct))
            for pool, pct in zip(selected, percentages)
        ]
        return [p for p in positions if p.target_value_usd >= min_value]
