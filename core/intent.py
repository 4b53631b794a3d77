"""
Free-text investment intent adapter.

Turns a user message such as "invest 250 usdc in a safe pool" into a typed
InvestmentIntent (amount, token, risk tier, on-chain base units). Keywords
match whole words of the lowercased message; the first number is the amount.
Returns None unless amount, token and tier are all present.

infer_strategy_tier() is the looser variant used to pick a tier for a
conversation, defaulting to medium.

Usage:
    intent = parse_investment_intent("Put 100 USDT into a low risk pool")
    if intent is not None:
        intent.amount_base_units  # 100000000
"""

from __future__ import annotations

import re
from decimal import Decimal

from web3 import Web3

from app_logging.logger_manager import setup_module_logger
from shared.constants import INTENT_TOKEN_UNITS
from shared.types import InvestmentIntent, StrategyTier

_logger = setup_module_logger("intent", "intent.log", module_folder="Intent_Logs")

_AMOUNT_RE = re.compile(r"\b(\d+(?:\.\d+)?)\b")

# First match wins; keywords match whole words only
_TOKEN_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("usdt", ("usdt", "tether")),
    ("usdc", ("usdc", "usd coin")),
    ("dai", ("dai",)),
    ("eth", ("eth", "ethereum")),
)

_INTENT_TIER_KEYWORDS: tuple[tuple[StrategyTier, tuple[str, ...]], ...] = (
    (StrategyTier.LOW, ("low risk", "safe", "conservative")),
    (StrategyTier.MEDIUM, ("medium risk", "moderate", "balanced")),
    (StrategyTier.HIGH, ("high risk", "aggressive", "risky")),
)

_STRATEGY_TIER_KEYWORDS: tuple[tuple[StrategyTier, tuple[str, ...]], ...] = (
    (StrategyTier.LOW, ("low risk", "safe investment", "conservative", "stable")),
    (StrategyTier.HIGH, ("high risk", "aggressive", "high return", "high yield", "high apr")),
    (StrategyTier.MEDIUM, ("medium risk", "moderate risk", "balanced")),
)


def _compile(table):
    return tuple(
        (value, re.compile(r"\b(?:%s)\b" % "|".join(re.escape(k) for k in keywords)))
        for value, keywords in table
    )


_TOKEN_PATTERNS = _compile(_TOKEN_KEYWORDS)
_INTENT_TIER_PATTERNS = _compile(_INTENT_TIER_KEYWORDS)
_STRATEGY_TIER_PATTERNS = _compile(_STRATEGY_TIER_KEYWORDS)


def _match(text: str, patterns):
    """First table value with a keyword present as whole words."""
    for value, pattern in patterns:
        if pattern.search(text):
            return value
    return None


def parse_investment_intent(message: str) -> InvestmentIntent | None:
    text = message.lower()

    amount_match = _AMOUNT_RE.search(text)
    token = _match(text, _TOKEN_PATTERNS)
    tier = _match(text, _INTENT_TIER_PATTERNS)
    if amount_match is None or token is None or tier is None:
        _logger.info(
            "Incomplete investment intent: amount=%s token=%s tier=%s",
            amount_match.group(1) if amount_match else None,
            token,
            tier.value if tier else None,
        )
        return None

    amount = Decimal(amount_match.group(1))
    intent = InvestmentIntent(
        amount=amount,
        token_symbol=token,
        tier=tier,
        amount_base_units=Web3.to_wei(amount, INTENT_TOKEN_UNITS[token]),
    )
    _logger.info("Parsed investment intent: %s %s, %s risk", amount, token, tier.value)
    return intent


def infer_strategy_tier(text: str) -> StrategyTier:
    """Tier named or implied by a message; medium when nothing matches."""
    return _match(text.lower(), _STRATEGY_TIER_PATTERNS) or StrategyTier.MEDIUM
