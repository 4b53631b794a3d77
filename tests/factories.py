"""
Builders for pools, snapshots and scored pools used across the unit tests.
"""

from __future__ import annotations

from shared.types import DailySnapshot, Pool, ScoredPool, Token

# ---------------------------------------------------------------------------
# Sample tokens (Base mainnet)
# ---------------------------------------------------------------------------

USDC_BASE = Token("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USDC", "USD Coin")
WETH_BASE = Token("0x4200000000000000000000000000000000000006", "WETH", "Wrapped Ether")
DAI_BASE = Token("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", "DAI", "Dai Stablecoin")
EXOTIC_A = Token("0x1111111111111111111111111111111111111111", "AAA", "Token A")
EXOTIC_B = Token("0x2222222222222222222222222222222222222222", "BBB", "Token B")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_pool(
    pool_id: str = "0xpool",
    tvl: str = "1000000",
    days: list[tuple[str, str, str]] | None = None,
    token0: Token = USDC_BASE,
    token1: Token = WETH_BASE,
    fee_tier: str = "500",
    created_at: int | None = None,
    version: int | None = 3,
) -> Pool:
    """Build a Pool; days are (fees, volume, tvl) tuples, newest first."""
    days = days if days is not None else [("100", "50000", tvl)]
    snapshots = tuple(
        DailySnapshot(date=1_700_000_000 - i * 86_400, fees_usd=f, volume_usd=v, tvl_usd=t)
        for i, (f, v, t) in enumerate(days)
    )
    return Pool(
        id=pool_id,
        token0=token0,
        token1=token1,
        fee_tier=fee_tier,
        total_value_locked_usd=tvl,
        pool_day_data=snapshots,
        created_at_timestamp=created_at,
        version=version,
    )


def make_scored(
    pool_id: str = "0xpool",
    apr: float | None = 20.0,
    score: float | None = 0.5,
    tvl: float = 1_000_000.0,
    apr_std_dev: float | None = 2.0,
    correlation: float | None = 0.9,
    token0: Token = USDC_BASE,
    token1: Token = WETH_BASE,
    fee_tier: str = "500",
    **kwargs,
) -> ScoredPool:
    """Build a ScoredPool directly, bypassing the metrics engine."""
    pool = make_pool(pool_id, tvl=str(tvl), token0=token0, token1=token1, fee_tier=fee_tier)
    return ScoredPool(
        pool=pool,
        tvl_usd=tvl,
        apr=apr,
        apr_std_dev=apr_std_dev,
        correlation=correlation,
        score=score,
        **kwargs,
    )


