"""
Unit tests for core/scoring.py.

Tests cover:
- Empty input short-circuit
- Constant-metric normalization (0, never NaN)
- Score bounds for weights summing to <= 1
- minTVL filter monotonicity
- Volatility inversion
- Correlation weight sign (negative rewards low correlation)
- Fee tier, age and correlation-range filters
- Stable ordering and top_n truncation
"""

from __future__ import annotations

import math

import pytest

from core.scoring import MetricBounds, normalize, passes_filters, score_pools
from shared.types import ScoredPool, ScoringOptions
from factories import EXOTIC_A, EXOTIC_B, make_pool, make_scored

NOW = 1_700_000_000.0


def _universe():
    return [
        make_scored("0xa", apr=50.0, tvl=2_000_000, apr_std_dev=10.0, tvl_trend_pct=5.0, volume_trend_pct=-3.0),
        make_scored("0xb", apr=12.0, tvl=300_000, apr_std_dev=1.0, tvl_trend_pct=-2.0, volume_trend_pct=8.0),
        make_scored("0xc", apr=30.0, tvl=900_000, apr_std_dev=4.0, tvl_trend_pct=0.5, volume_trend_pct=1.0),
        make_scored("0xd", apr=5.0, tvl=150_000, apr_std_dev=None, tvl_trend_pct=None, volume_trend_pct=None),
    ]


class TestNormalize:
    def test_constant_metric_is_zero(self):
        assert normalize(5.0, 5.0, 5.0) == 0.0

    def test_range(self):
        assert normalize(5.0, 0.0, 10.0) == 0.5

    def test_constant_metric_across_pools(self):
        pools = [make_scored(f"0x{i}", apr=20.0, tvl=500_000, apr_std_dev=2.0) for i in range(3)]
        ranked = score_pools(pools, ScoringOptions(min_tvl=0), now=NOW)
        assert len(ranked) == 3
        for p in ranked:
            assert not math.isnan(p.score)
            # only the inverted volatility term contributes (1 - 0) * 0.2
            assert p.score == pytest.approx(0.2)


class TestEmptyInput:
    def test_empty_returns_empty(self):
        assert score_pools([], ScoringOptions()) == []

    def test_bounds_of_empty_set_raise(self):
        with pytest.raises(ValueError):
            MetricBounds.from_pools([])


class TestScoreBounds:
    def test_scores_within_weight_sum(self):
        options = ScoringOptions(min_tvl=0, top_n=10)
        weight_sum = (
            options.apr_weight
            + options.tvl_weight
            + options.volatility_weight
            + options.tvl_trend_weight
            + options.volume_trend_weight
        )
        for p in score_pools(_universe(), options, now=NOW):
            assert 0.0 <= p.score <= weight_sum + 1e-9

    def test_sorted_descending(self):
        ranked = score_pools(_universe(), ScoringOptions(min_tvl=0), now=NOW)
        scores = [p.score for p in ranked]
        assert scores == sorted(scores, reverse=True)


class TestFilterMonotonicity:
    def test_raising_min_tvl_never_adds_pools(self):
        counts = [
            len(score_pools(_universe(), ScoringOptions(min_tvl=t, top_n=50), now=NOW))
            for t in (0, 200_000, 500_000, 1_000_000, 5_000_000)
        ]
        assert counts == sorted(counts, reverse=True)
        assert counts[0] == 4
        assert counts[-1] == 0

    def test_min_apr(self):
        ranked = score_pools(_universe(), ScoringOptions(min_tvl=0, min_apr=20), now=NOW)
        assert {p.id for p in ranked} == {"0xa", "0xc"}


class TestVolatilityInversion:
    def test_lower_std_dev_scores_higher(self):
        calm = make_scored("0xcalm", apr=20.0, tvl=500_000, apr_std_dev=1.0)
        wild = make_scored("0xwild", apr=20.0, tvl=500_000, apr_std_dev=9.0)
        ranked = score_pools([wild, calm], ScoringOptions(min_tvl=0), now=NOW)
        assert [p.id for p in ranked] == ["0xcalm", "0xwild"]
        assert ranked[0].score >= ranked[1].score


class TestCorrelationWeight:
    def test_negative_weight_rewards_low_correlation(self):
        stable = make_scored("0xstable", apr=20.0, tvl=500_000)
        exotic = make_scored("0xexotic", apr=20.0, tvl=500_000, token0=EXOTIC_A, token1=EXOTIC_B)
        options = ScoringOptions(min_tvl=0, correlation_weight=-0.05)
        ranked = score_pools([stable, exotic], options, now=NOW)
        assert ranked[0].id == "0xexotic"

    def test_positive_weight_rewards_high_correlation(self):
        stable = make_scored("0xstable", apr=20.0, tvl=500_000)
        exotic = make_scored("0xexotic", apr=20.0, tvl=500_000, token0=EXOTIC_A, token1=EXOTIC_B)
        options = ScoringOptions(min_tvl=0, correlation_weight=0.15)
        ranked = score_pools([exotic, stable], options, now=NOW)
        assert ranked[0].id == "0xstable"

    def test_correlation_attached(self):
        exotic = make_scored("0xexotic", correlation=None, token0=EXOTIC_A, token1=EXOTIC_B)
        ranked = score_pools([exotic], ScoringOptions(min_tvl=0), now=NOW)
        assert ranked[0].correlation == 0.3


class TestFilters:
    def test_fee_tier_preference(self):
        pools = [make_scored("0x500", fee_tier="500"), make_scored("0x100", fee_tier="100")]
        ranked = score_pools(pools, ScoringOptions(min_tvl=0, preferred_fee_tiers=(500, 3000)), now=NOW)
        assert [p.id for p in ranked] == ["0x500"]

    def test_correlation_range(self):
        exotic = make_scored("0xexotic", token0=EXOTIC_A, token1=EXOTIC_B)
        stable = make_scored("0xstable")
        ranked = score_pools([exotic, stable], ScoringOptions(min_tvl=0, min_token_correlation=0.7), now=NOW)
        assert [p.id for p in ranked] == ["0xstable"]

    def test_age_limit_applies_only_with_creation_time(self):
        options = ScoringOptions(min_tvl=0, max_pool_age_days=30)
        old = ScoredPool(pool=make_pool("0xold", created_at=int(NOW) - 60 * 86_400), tvl_usd=1e6, apr=20.0)
        young = ScoredPool(pool=make_pool("0xyoung", created_at=int(NOW) - 86_400), tvl_usd=1e6, apr=20.0)
        unknown = make_scored("0xunknown")

        assert not passes_filters(old, options, NOW)
        assert passes_filters(young, options, NOW)
        assert passes_filters(unknown, options, NOW)


class TestOrderingAndTruncation:
    def test_top_n(self):
        ranked = score_pools(_universe(), ScoringOptions(min_tvl=0, top_n=2), now=NOW)
        assert len(ranked) == 2

    def test_ties_keep_input_order(self):
        pools = [make_scored(f"0x{i}", apr=20.0, tvl=500_000, apr_std_dev=2.0) for i in range(4)]
        ranked = score_pools(pools, ScoringOptions(min_tvl=0), now=NOW)
        assert [p.id for p in ranked] == ["0x0", "0x1", "0x2", "0x3"]
