"""
Strategy presets keyed by risk tier.

Static, immutable records combining filter thresholds, correlation
preferences and scoring weights with the display texts used by the pool
summary and the conversational layer. Weights do not sum to 1 and are not
renormalized (see core/scoring.py for the correlation weight adjustment).

Usage:
    from core.presets import get_preset
    from shared.types import StrategyTier

    preset = get_preset(StrategyTier.LOW)
    options = ScoringOptions.from_preset(preset, top_n=50)
"""

from __future__ import annotations

from types import MappingProxyType

from shared.types import StrategyPreset, StrategyTier

_LOW = StrategyPreset(
    tier=StrategyTier.LOW,
    name="Low Risk",
    description=(
        "Invest in established pools with the highest APR. Focuses on stable, mature pools "
        "with proven yield, minimizing exposure to volatility or new, untested pools. "
        "Prioritizes high token correlation and stable pairs."
    ),
    summary_description=(
        "Conservative strategy focusing on established pools with proven stability, "
        "high TVL, and consistent fees. Prioritizes lower volatility over APR."
    ),
    system_prompt=(
        "You are an investment agent. Your strategy is conservative, focusing on established "
        "Uniswap pools with proven stability. Look for pools with high Total Value Locked (TVL) "
        "and consistent fees. Prioritize pools with lower volatility, even if they have slightly "
        "lower APR. Avoid newly created pools and those showing unstable metrics. Prefer pairs "
        "with high correlation like stablecoins or ETH/USDC over exotic pairings."
    ),
    min_tvl=500_000,
    min_apr=5,
    top_n=10,
    max_pool_age_days=None,
    preferred_fee_tiers=(500, 3000),
    min_token_correlation=0.7,
    max_token_correlation=1.0,
    correlation_weight=0.15,
    prefer_stable_correlation=True,
    prefer_stable_base=True,
    avoid_exotic_pairs=True,
    apr_weight=0.2,
    tvl_weight=0.3,
    volatility_weight=0.2,
    tvl_trend_weight=0.1,
    volume_trend_weight=0.05,
    history_days=14,
)

_MEDIUM = StrategyPreset(
    tier=StrategyTier.MEDIUM,
    name="Medium Risk",
    description=(
        "Invest in pools with a positive TVL trend and moderate to high APR, avoiding new or "
        "highly volatile pools. Prefer pools with growing liquidity and recent volume spikes. "
        "Balances token correlation for optimal risk/reward."
    ),
    summary_description=(
        "Balanced strategy that seeks moderate risk and return. Targets pools with good "
        "volume and reasonable APR while maintaining acceptable volatility."
    ),
    system_prompt=(
        "You are an investment agent using a balanced strategy. Focus on Uniswap pools with a "
        "good balance of yield and stability. Look for pools with positive TVL trends and "
        "moderate to high APR. Consider volume growth as an important signal, but avoid pools "
        "with extreme volatility. Prefer pairs with at least one major token."
    ),
    min_tvl=100_000,
    min_apr=10,
    top_n=15,
    max_pool_age_days=None,
    preferred_fee_tiers=(500, 3000, 10000),
    min_token_correlation=0.4,
    max_token_correlation=1.0,
    correlation_weight=0.1,
    prefer_stable_correlation=False,
    prefer_stable_base=True,
    avoid_exotic_pairs=True,
    apr_weight=0.3,
    tvl_weight=0.2,
    volatility_weight=0.15,
    tvl_trend_weight=0.15,
    volume_trend_weight=0.1,
    history_days=7,
)

_HIGH = StrategyPreset(
    tier=StrategyTier.HIGH,
    name="High Risk",
    description=(
        "Invest in new pools as soon as they are created. New pools can offer high rewards but "
        "come with significant risk due to lack of history and potential for high volatility. "
        "Explores exotic token pairs for maximum return potential."
    ),
    summary_description=(
        "Aggressive strategy that targets maximum APR and accepts higher volatility. "
        "Focuses on newer or more volatile pools with potential for higher returns."
    ),
    system_prompt=(
        "You are an investment agent using an aggressive strategy. Seek out new pools with high "
        "potential returns. Focus on pools showing rapid growth in volume and liquidity. "
        "Prioritize high APR over stability. Consider exotic token combinations and low "
        "correlation pairs that might offer outsized returns."
    ),
    min_tvl=5_000,
    min_apr=10,
    top_n=20,
    max_pool_age_days=30,
    preferred_fee_tiers=(3000, 10000),
    min_token_correlation=0.0,
    max_token_correlation=0.8,
    correlation_weight=-0.05,  # negative: low correlation raises the score
    prefer_stable_correlation=False,
    prefer_stable_base=False,
    avoid_exotic_pairs=False,
    apr_weight=0.45,
    tvl_weight=0.1,
    volatility_weight=0.05,
    tvl_trend_weight=0.2,
    volume_trend_weight=0.25,
    history_days=3,
)

STRATEGY_PRESETS: MappingProxyType[StrategyTier, StrategyPreset] = MappingProxyType(
    {
        StrategyTier.LOW: _LOW,
        StrategyTier.MEDIUM: _MEDIUM,
        StrategyTier.HIGH: _HIGH,
    }
)


def get_preset(tier: StrategyTier | str) -> StrategyPreset:
    """Return the preset for a tier. Raises ValueError for unknown tiers."""
    return STRATEGY_PRESETS[StrategyTier.parse(tier)]
