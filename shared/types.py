"""
Shared data types for the Uniswap pool analytics service.

Centralized dataclasses and enums used across all modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class StrategyTier(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: StrategyTier | str) -> StrategyTier:
        """Accept a tier or its case-insensitive name. Raises ValueError if unknown."""
        if isinstance(value, StrategyTier):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown strategy tier '{value}': expected one of low, medium, high"
            ) from None


class RebalanceActionType(Enum):
    MAINTAIN = "maintain"  # No action needed (never emitted)
    ADJUST_RANGE = "adjust_range"  # Update price range, keep size
    INCREASE_SIZE = "increase_size"
    DECREASE_SIZE = "decrease_size"
    EXIT_POSITION = "exit_position"
    ENTER_POSITION = "enter_position"  # New position for spare capital


class RebalanceReason(Enum):
    PRICE_DRIFT = "price_drift"
    APR_DECLINE = "apr_decline"
    APR_INCREASE = "apr_increase"
    VOLATILITY_CHANGE = "volatility_change"
    CORRELATION_CHANGE = "correlation_change"
    NEW_OPPORTUNITY = "new_opportunity"
    POOL_TVL_DECLINE = "pool_tvl_decline"
    RANGE_INEFFICIENCY = "range_inefficiency"
    PORTFOLIO_IMBALANCE = "portfolio_imbalance"
    FEE_ACCUMULATION = "fee_accumulation"
    AGE_THRESHOLD = "age_threshold"


# ---------------------------------------------------------------------------
# Subgraph Data Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    id: str  # ERC-20 address (zero address for native ETH on v4)
    symbol: str
    name: str


@dataclass(frozen=True)
class DailySnapshot:
    """One day of pool activity, values as delivered by the subgraph."""

    date: int  # unix seconds, start of day
    fees_usd: str
    volume_usd: str
    tvl_usd: str


@dataclass(frozen=True)
class Pool:
    id: str  # address (v3) or bytes32 pool id (v4), case-sensitive
    token0: Token
    token1: Token
    fee_tier: str  # hundredths of a bip, e.g. "3000" = 0.3%
    total_value_locked_usd: str
    pool_day_data: tuple[DailySnapshot, ...] = ()  # newest first
    created_at_timestamp: int | None = None
    version: int | None = None  # protocol version of the source


@dataclass(frozen=True)
class ScoredPool:
    """A pool enriched with derived metrics. Rebuilt on every refresh."""

    pool: Pool
    tvl_usd: float = 0.0  # parsed current TVL
    apr: float | None = None  # latest day, annualized, percent
    average_apr_window: float | None = None
    average_volume_window: float | None = None
    apr_std_dev: float | None = None
    tvl_trend_pct: float | None = None
    volume_trend_pct: float | None = None
    tvl_slope: float | None = None
    volume_slope: float | None = None
    sharpe_ratio: float | None = None
    correlation: float | None = None  # heuristic [0, 1]
    score: float | None = None  # composite, set by the scoring pipeline
    is_synthetic_apr: bool = False  # demo-mode presentation value

    @property
    def id(self) -> str:
        return self.pool.id

    @property
    def fee_tier(self) -> str:
        return self.pool.fee_tier

    @property
    def token0(self) -> Token:
        return self.pool.token0

    @property
    def token1(self) -> Token:
        return self.pool.token1

    @property
    def pair_label(self) -> str:
        return f"{self.pool.token0.symbol}/{self.pool.token1.symbol}"


# ---------------------------------------------------------------------------
# Strategy / Scoring Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StrategyPreset:
    tier: StrategyTier
    name: str
    description: str
    summary_description: str
    system_prompt: str
    # Filters
    min_tvl: float
    min_apr: float
    top_n: int
    max_pool_age_days: int | None
    preferred_fee_tiers: tuple[int, ...]
    # Correlation
    min_token_correlation: float
    max_token_correlation: float
    correlation_weight: float
    prefer_stable_correlation: bool
    prefer_stable_base: bool
    avoid_exotic_pairs: bool
    # Scoring weights
    apr_weight: float
    tvl_weight: float
    volatility_weight: float
    tvl_trend_weight: float
    volume_trend_weight: float
    history_days: int


@dataclass(frozen=True)
class CorrelationPreferences:
    prefer_stable_correlation: bool = False
    prefer_stable_base: bool = False
    avoid_exotic_pairs: bool = False


@dataclass(frozen=True)
class ScoringOptions:
    """Filter thresholds and weights for one scoring run."""

    min_tvl: float = 100_000
    min_apr: float = 0
    top_n: int = 10
    max_pool_age_days: int | None = None
    preferred_fee_tiers: tuple[int, ...] = ()
    min_token_correlation: float = 0
    max_token_correlation: float = 1
    correlation_weight: float = 0
    prefer_stable_correlation: bool = False
    prefer_stable_base: bool = False
    avoid_exotic_pairs: bool = False
    apr_weight: float = 0.4
    tvl_weight: float = 0.2
    volatility_weight: float = 0.2
    tvl_trend_weight: float = 0.1
    volume_trend_weight: float = 0.1
    history_days: int = 7
    tier: StrategyTier | None = None

    @property
    def correlation_preferences(self) -> CorrelationPreferences:
        return CorrelationPreferences(
            prefer_stable_correlation=self.prefer_stable_correlation,
            prefer_stable_base=self.prefer_stable_base,
            avoid_exotic_pairs=self.avoid_exotic_pairs,
        )

    @classmethod
    def from_preset(cls, preset: StrategyPreset, **overrides: object) -> ScoringOptions:
        """Build options from a preset; keyword overrides win (None values are ignored)."""
        values = {
            "min_tvl": preset.min_tvl,
            "min_apr": preset.min_apr,
            "top_n": preset.top_n,
            "max_pool_age_days": preset.max_pool_age_days,
            "preferred_fee_tiers": preset.preferred_fee_tiers,
            "min_token_correlation": preset.min_token_correlation,
            "max_token_correlation": preset.max_token_correlation,
            "correlation_weight": preset.correlation_weight,
            "prefer_stable_correlation": preset.prefer_stable_correlation,
            "prefer_stable_base": preset.prefer_stable_base,
            "avoid_exotic_pairs": preset.avoid_exotic_pairs,
            "apr_weight": preset.apr_weight,
            "tvl_weight": preset.tvl_weight,
            "volatility_weight": preset.volatility_weight,
            "tvl_trend_weight": preset.tvl_trend_weight,
            "volume_trend_weight": preset.volume_trend_weight,
            "history_days": preset.history_days,
            "tier": preset.tier,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Cache Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheEntry:
    pools: tuple[ScoredPool, ...] = ()
    average_apr: float = 0.0
    timestamp: float = 0.0  # epoch seconds, 0 = never populated


@dataclass(frozen=True)
class StrategySummary:
    tier: StrategyTier
    name: str
    description: str
    average_apr: float
    pool_count: int
    top_pools: list[ScoredPool]


@dataclass(frozen=True)
class PoolSummary:
    strategies: dict[str, StrategySummary]
    timestamp: float
    last_updated: str  # ISO-8601
    demo_mode: bool = False


# ---------------------------------------------------------------------------
# Portfolio Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionSizeRecommendation:
    pool_id: str
    percentage: float  # 0-100
    target_value_usd: Decimal


@dataclass(frozen=True)
class PriceRange:
    lower_price: float
    upper_price: float

    @property
    def width(self) -> float:
        return self.upper_price - self.lower_price


@dataclass(frozen=True)
class CurrentPosition:
    pool_id: str
    size: Decimal  # USD
    price_range: PriceRange | None = None
    entry_date: int | None = None  # unix seconds


@dataclass(frozen=True)
class RebalanceAction:
    action_type: RebalanceActionType
    pool_id: str
    priority: int  # 1-10, 10 = most urgent
    reason_codes: list[RebalanceReason] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    token0: str | None = None
    token1: str | None = None
    fee_tier: str | None = None
    current_size: Decimal | None = None
    target_size: Decimal | None = None
    size_change_percent: float | None = None
    current_price_range: PriceRange | None = None
    recommended_price_range: PriceRange | None = None


# ---------------------------------------------------------------------------
# Intent Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvestmentIntent:
    amount: Decimal
    token_symbol: str  # "usdt", "usdc", "dai", "eth"
    tier: StrategyTier
    amount_base_units: int  # on-chain integer units for the token
