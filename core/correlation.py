"""
Token pair correlation estimator.

A deterministic lookup against static token classification tables, not a
statistical correlation of price history. The score is a heuristic proxy
for how closely the two tokens of a pair move together (stable/stable pairs
barely diverge, exotic pairs diverge the most), used to steer strategies
away from or toward impermanent-loss exposure.

Precedence (first match wins):
    1. both tokens stable          -> 0.95 (1.0 with prefer_stable_correlation)
    2. exactly one token stable    -> 0.8  (0.9 with prefer_stable_base)
    3. at least one major token    -> 0.6
    4. exotic pair                 -> 0.3  (0.1 with avoid_exotic_pairs)
"""

from __future__ import annotations

from shared.constants import MAJOR_TOKENS, STABLE_TOKENS
from shared.types import CorrelationPreferences


def is_stable_token(address: str) -> bool:
    return address.lower() in STABLE_TOKENS


def is_major_token(address: str) -> bool:
    return address.lower() in MAJOR_TOKENS


def calculate_token_correlation(
    token0_address: str,
    token1_address: str,
    preferences: CorrelationPreferences | None = None,
) -> float:
    """Classify a token pair and return its correlation score in [0, 1]."""
    prefs = preferences or CorrelationPreferences()
    stable0 = is_stable_token(token0_address)
    stable1 = is_stable_token(token1_address)

    if stable0 and stable1:
        return 1.0 if prefs.prefer_stable_correlation else 0.95

    if stable0 or stable1:
        return 0.9 if prefs.prefer_stable_base else 0.8

    if is_major_token(token0_address) or is_major_token(token1_address):
        return 0.6

    return 0.1 if prefs.avoid_exotic_pairs else 0.3


def meets_correlation_criteria(
    correlation: float,
    min_correlation: float = 0.0,
    max_correlation: float = 1.0,
) -> bool:
    """Inclusive range check of a correlation score."""
    return min_correlation <= correlation <= max_correlation


def is_preferred_fee_tier(fee_tier: str | int, preferred_fee_tiers: tuple[int, ...] | list[int] | None) -> bool:
    """True when no preference is set or the pool's fee tier is listed."""
    if not preferred_fee_tiers:
        return True
    try:
        return int(fee_tier) in preferred_fee_tiers
    except (TypeError, ValueError):
        return False
