"""
Pool metrics engine for the Uniswap pool analytics service.

Pure computation: turns a pool's raw daily snapshots (newest first) into
derived metrics. Malformed day data never raises; the affected metric
degrades to None and a diagnostic is logged.

Metrics:
- apr: latest day fees / current TVL, annualized (percent). Uses the pool's
  current TVL rather than day0's TVL (instant yield at current liquidity).
- average_apr_window / apr_std_dev: mean and population standard deviation
  of per-day APRs over valid days.
- sharpe_ratio: (average APR - risk-free rate) / apr_std_dev.
- average_volume_window: mean daily volume over valid days.
- tvl_trend_pct / volume_trend_pct: newest vs oldest valid day, percent.
- tvl_slope / volume_slope: least-squares slope against day index
  (0 = newest), so a growing pool has a negative slope.

Usage:
    from core.metrics import compute_pool_metrics

    scored = compute_pool_metrics(pool)
    scored.apr, scored.apr_std_dev, scored.tvl_trend_pct
"""

from __future__ import annotations

import math

from app_logging.logger_manager import setup_module_logger
from shared.constants import DAYS_PER_YEAR, RISK_FREE_RATE
from shared.types import DailySnapshot, Pool, ScoredPool

_logger = setup_module_logger("metrics", "metrics.log", module_folder="Metrics_Logs")


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def parse_number(value: object) -> float | None:
    """Parse a subgraph decimal string (or number). None if missing or not finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def annualized_apr(fees_usd: float, tvl_usd: float) -> float:
    """Daily fees over TVL, annualized as a percent."""
    return fees_usd / tvl_usd * DAYS_PER_YEAR * 100


def mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def population_std_dev(values: list[float]) -> float | None:
    """Standard deviation dividing by n (not n - 1)."""
    avg = mean(values)
    if avg is None:
        return None
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def percent_change(newest: float, oldest: float) -> float | None:
    if oldest <= 0:
        return None
    return (newest - oldest) / oldest * 100


def regression_slope(xs: list[float], ys: list[float]) -> float | None:
    """Ordinary least-squares slope of ys against xs."""
    if len(xs) != len(ys) or len(xs) < 2:
        return None
    n = len(xs)
    x_mean = sum(xs) / n
    y_mean = sum(ys) / n
    num = sum((x - x_mean) * (y - y_mean) for x, y in zip(xs, ys))
    den = sum((x - x_mean) ** 2 for x in xs)
    if den == 0:
        return None
    return num / den


# ---------------------------------------------------------------------------
# Valid day filter
# ---------------------------------------------------------------------------


def _valid_day(day: DailySnapshot) -> tuple[float, float, float] | None:
    """Return (fees, tvl, volume) for a usable day, else None."""
    fees = parse_number(day.fees_usd)
    tvl = parse_number(day.tvl_usd)
    if fees is None or tvl is None or fees < 0 or tvl <= 0:
        return None
    volume = parse_number(day.volume_usd)
    if volume is None or volume < 0:
        _logger.debug("Day %s has unusable volumeUSD %r, counted as 0", day.date, day.volume_usd)
        volume = 0.0
    return fees, tvl, volume


# ---------------------------------------------------------------------------
# Pool metrics
# ---------------------------------------------------------------------------


def compute_pool_metrics(pool: Pool) -> ScoredPool:
    """Derive all window metrics for one pool. Never raises on bad day data."""
    current_tvl = parse_number(pool.total_value_locked_usd)
    tvl = current_tvl if current_tvl is not None and current_tvl > 0 else 0.0

    if not pool.pool_day_data or tvl <= 0:
        _logger.warning(
            "Pool %s: no day data (%d days) or non-positive TVL (%r), metrics unavailable",
            pool.id,
            len(pool.pool_day_data),
            pool.total_value_locked_usd,
        )
        return ScoredPool(pool=pool, tvl_usd=tvl)

    apr: float | None = None
    latest_fees = parse_number(pool.pool_day_data[0].fees_usd)
    if latest_fees is not None and latest_fees >= 0:
        apr = annualized_apr(latest_fees, tvl)
    else:
        _logger.warning(
            "Pool %s: invalid latest feesUSD %r, apr unavailable",
            pool.id,
            pool.pool_day_data[0].fees_usd,
        )

    valid_days = [v for v in (_valid_day(d) for d in pool.pool_day_data) if v is not None]
    skipped = len(pool.pool_day_data) - len(valid_days)
    if skipped:
        _logger.info("Pool %s: skipped %d invalid day(s) of %d", pool.id, skipped, len(pool.pool_day_data))

    day_aprs = [annualized_apr(fees, day_tvl) for fees, day_tvl, _ in valid_days]
    average_apr = mean(day_aprs)
    apr_std_dev = population_std_dev(day_aprs)
    sharpe_ratio = None
    if average_apr is not None and apr_std_dev is not None and apr_std_dev > 0:
        sharpe_ratio = (average_apr - RISK_FREE_RATE) / apr_std_dev
    average_volume = mean([volume for _, _, volume in valid_days])

    tvl_trend = volume_trend = tvl_slope = volume_slope = None
    if len(valid_days) > 1:
        tvls = [day_tvl for _, day_tvl, _ in valid_days]
        volumes = [volume for _, _, volume in valid_days]
        # index 0 = newest, last = oldest
        tvl_trend = percent_change(tvls[0], tvls[-1])
        volume_trend = percent_change(volumes[0], volumes[-1])
        xs = [float(i) for i in range(len(valid_days))]
        tvl_slope = regression_slope(xs, tvls)
        volume_slope = regression_slope(xs, volumes)

    return ScoredPool(
        pool=pool,
        tvl_usd=tvl,
        apr=apr,
        average_apr_window=average_apr,
        average_volume_window=average_volume,
        apr_std_dev=apr_std_dev,
        tvl_trend_pct=tvl_trend,
        volume_trend_pct=volume_trend,
        tvl_slope=tvl_slope,
        volume_slope=volume_slope,
        sharpe_ratio=sharpe_ratio,
    )


def compute_all(pools: list[Pool]) -> list[ScoredPool]:
    """Metrics for every pool, preserving input order."""
    return [compute_pool_metrics(p) for p in pools]
