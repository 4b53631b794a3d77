"""
Unit tests for core/correlation.py.

Tests cover the classification precedence, preference flags, case
insensitivity, the inclusive range check and fee-tier preference.
"""

from __future__ import annotations

from core.correlation import (
    calculate_token_correlation,
    is_major_token,
    is_preferred_fee_tier,
    is_stable_token,
    meets_correlation_criteria,
)
from shared.types import CorrelationPreferences
from factories import DAI_BASE, EXOTIC_A, EXOTIC_B, USDC_BASE

WBTC_ETHEREUM = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"


class TestClassification:
    def test_checksummed_address_is_stable(self):
        assert is_stable_token(USDC_BASE.id)

    def test_major_includes_stables(self):
        assert is_major_token(USDC_BASE.id)
        assert is_major_token(WBTC_ETHEREUM)
        assert not is_stable_token(WBTC_ETHEREUM)

    def test_exotic(self):
        assert not is_major_token(EXOTIC_A.id)


class TestCalculateTokenCorrelation:
    def test_stable_pair(self):
        assert calculate_token_correlation(USDC_BASE.id, DAI_BASE.id) == 0.95

    def test_stable_pair_with_preference(self):
        prefs = CorrelationPreferences(prefer_stable_correlation=True)
        assert calculate_token_correlation(USDC_BASE.id, DAI_BASE.id, prefs) == 1.0

    def test_one_stable(self):
        assert calculate_token_correlation(USDC_BASE.id, EXOTIC_A.id) == 0.8
        prefs = CorrelationPreferences(prefer_stable_base=True)
        assert calculate_token_correlation(EXOTIC_A.id, USDC_BASE.id, prefs) == 0.9

    def test_major_pair(self):
        assert calculate_token_correlation(WBTC_ETHEREUM, EXOTIC_A.id) == 0.6

    def test_exotic_pair(self):
        assert calculate_token_correlation(EXOTIC_A.id, EXOTIC_B.id) == 0.3
        prefs = CorrelationPreferences(avoid_exotic_pairs=True)
        assert calculate_token_correlation(EXOTIC_A.id, EXOTIC_B.id, prefs) == 0.1


class TestCriteria:
    def test_inclusive_bounds(self):
        assert meets_correlation_criteria(0.7, 0.7, 1.0)
        assert meets_correlation_criteria(0.8, 0.0, 0.8)
        assert not meets_correlation_criteria(0.81, 0.0, 0.8)

    def test_defaults(self):
        assert meets_correlation_criteria(0.0)
        assert meets_correlation_criteria(1.0)


class TestFeeTier:
    def test_no_preference(self):
        assert is_preferred_fee_tier("100", ())
        assert is_preferred_fee_tier("100", None)

    def test_listed(self):
        assert is_preferred_fee_tier("3000", (500, 3000))
        assert not is_preferred_fee_tier("100", (500, 3000))

    def test_unparseable(self):
        assert not is_preferred_fee_tier("dynamic", (500,))
