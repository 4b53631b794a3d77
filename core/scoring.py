"""
Scoring and filtering pipeline for the Uniswap pool analytics service.

Combines per-pool metrics across a pool set into a ranked list:

    1. attach a correlation score to every pool
    2. min/max of each scored metric over the whole candidate set
       (before thresholds, None counts as 0)
    3. filter by APR, TVL, pool age, fee tier and correlation range
    4. min-max normalize, (v - min) / (max - min), 0 when max == min
    5. invert volatility (lower APR stddev is better)
    6. weighted composite score; with a non-zero correlation weight the
       other weights are scaled by (1 - |cw|) / (sum of weights + |cw|),
       and a negative cw rewards low correlation
    7. stable sort by score, descending, truncated to top_n

Usage:
    from core.scoring import score_pools
    from shared.types import ScoringOptions

    ranked = score_pools(compute_all(pools), ScoringOptions(min_tvl=50_000, top_n=5))
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace

from app_logging.logger_manager import log_data_processing, setup_module_logger
from core.correlation import calculate_token_correlation, is_preferred_fee_tier, meets_correlation_criteria
from shared.constants import SECONDS_PER_DAY
from shared.types import ScoredPool, ScoringOptions

_logger = setup_module_logger("scoring", "scoring.log", module_folder="Scoring_Logs")


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize(value: float, minimum: float, maximum: float) -> float:
    """Min-max normalization, 0 for a constant metric."""
    if maximum > minimum:
        return (value - minimum) / (maximum - minimum)
    return 0.0


@dataclass(frozen=True)
class _Range:
    low: float
    high: float

    @classmethod
    def of(cls, values: list[float]) -> _Range:
        return cls(min(values), max(values))

    def norm(self, value: float) -> float:
        return normalize(value, self.low, self.high)


@dataclass(frozen=True)
class MetricBounds:
    """Per-metric min/max across a candidate set."""

    apr: _Range
    tvl: _Range
    volatility: _Range
    tvl_trend: _Range
    volume_trend: _Range
    correlation: _Range

    @classmethod
    def from_pools(cls, pools: list[ScoredPool]) -> MetricBounds:
        if not pools:
            raise ValueError("Cannot compute metric bounds of an empty pool set")
        return cls(
            apr=_Range.of([p.apr or 0.0 for p in pools]),
            tvl=_Range.of([p.tvl_usd for p in pools]),
            volatility=_Range.of([p.apr_std_dev or 0.0 for p in pools]),
            tvl_trend=_Range.of([p.tvl_trend_pct or 0.0 for p in pools]),
            volume_trend=_Range.of([p.volume_trend_pct or 0.0 for p in pools]),
            correlation=_Range.of([p.correlation or 0.0 for p in pools]),
        )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def pool_age_days(pool: ScoredPool, now: float) -> float | None:
    created = pool.pool.created_at_timestamp
    if created is None:
        return None
    return (now - created) / SECONDS_PER_DAY


def passes_filters(pool: ScoredPool, options: ScoringOptions, now: float) -> bool:
    """Threshold checks. Age is only enforced when both the limit and the creation time exist."""
    if (pool.apr or 0.0) < options.min_apr:
        return False
    if pool.tvl_usd < options.min_tvl:
        return False
    if options.max_pool_age_days is not None:
        age = pool_age_days(pool, now)
        if age is not None and age > options.max_pool_age_days:
            return False
    if not is_preferred_fee_tier(pool.fee_tier, options.preferred_fee_tiers):
        return False
    return meets_correlation_criteria(
        pool.correlation or 0.0,
        options.min_token_correlation,
        options.max_token_correlation,
    )


# ---------------------------------------------------------------------------
# Composite score
# ---------------------------------------------------------------------------


def composite_score(pool: ScoredPool, bounds: MetricBounds, options: ScoringOptions) -> float:
    correlation_weight = options.correlation_weight
    base_weights = (
        options.apr_weight,
        options.tvl_weight,
        options.volatility_weight,
        options.tvl_trend_weight,
        options.volume_trend_weight,
    )
    weight_sum = sum(base_weights) + abs(correlation_weight)
    adjustment = 1.0
    if correlation_weight != 0 and weight_sum > 0:
        adjustment = (1 - abs(correlation_weight)) / weight_sum

    components = (
        bounds.apr.norm(pool.apr or 0.0),
        bounds.tvl.norm(pool.tvl_usd),
        1 - bounds.volatility.norm(pool.apr_std_dev or 0.0),
        bounds.tvl_trend.norm(pool.tvl_trend_pct or 0.0),
        bounds.volume_trend.norm(pool.volume_trend_pct or 0.0),
    )
    score = sum(c * w * adjustment for c, w in zip(components, base_weights))

    correlation_norm = bounds.correlation.norm(pool.correlation or 0.0)
    if correlation_weight >= 0:
        score += correlation_norm * correlation_weight
    else:
        score += (1 - correlation_norm) * abs(correlation_weight)
    return score


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def attach_correlations(pools: list[ScoredPool], options: ScoringOptions) -> list[ScoredPool]:
    prefs = options.correlation_preferences
    return [
        replace(p, correlation=calculate_token_correlation(p.token0.id, p.token1.id, prefs))
        for p in pools
    ]


def score_pools(
    pools: list[ScoredPool],
    options: ScoringOptions,
    now: float | None = None,
    trace_id: str | None = None,
) -> list[ScoredPool]:
    """Filter, score and rank pools. Returns at most options.top_n pools."""
    if not pools:
        return []

    now = time.time() if now is None else now
    trace_id = trace_id or uuid.uuid4().hex

    candidates = attach_correlations(pools, options)
    bounds = MetricBounds.from_pools(candidates)
    filtered = [p for p in candidates if passes_filters(p, options, now)]
    scored = [replace(p, score=composite_score(p, bounds, options)) for p in filtered]
    scored.sort(key=lambda p: p.score or 0.0, reverse=True)
    ranked = scored[: max(options.top_n, 0)]

    _logger.info(
        "Scored %d pools: %d passed filters, returning %d (tier=%s)",
        len(pools),
        len(filtered),
        len(ranked),
        options.tier.value if options.tier else "custom",
    )
    log_data_processing(
        trace_id=trace_id,
        source_module="scoring",
        what="Filter and rank pools by composite score",
        why="Build the ranked pool list for a strategy",
        data_type="ScoredPool[]",
        input_data={"pool_count": len(pools)},
        output_data=[{"id": p.id, "score": p.score} for p in ranked],
        intermediate_states=[
            {"filtered": len(filtered)},
            {"bounds": {"apr": [bounds.apr.low, bounds.apr.high], "tvl": [bounds.tvl.low, bounds.tvl.high]}},
        ],
    )
    return ranked
