"""
Shared constants for the Uniswap pool analytics service.

Token classification tables, numeric constants, and default values used
across all modules.
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------

DAYS_PER_YEAR = 365
SECONDS_PER_DAY = 86_400
SECONDS_PER_HOUR = 3_600
RISK_FREE_RATE = 0.0  # APR percent used by the Sharpe-like ratio

# ---------------------------------------------------------------------------
# Subgraph Defaults
# ---------------------------------------------------------------------------

DEFAULT_NETWORK = "base"
DEFAULT_HISTORY_DAYS = 7
TOP_POOLS_FIRST = 50  # pools per query, ordered by TVL desc

# ---------------------------------------------------------------------------
# Pool Cache Defaults
# ---------------------------------------------------------------------------

CACHE_FRESHNESS_SECONDS = 6 * SECONDS_PER_HOUR
CACHE_REFRESH_INTERVAL_SECONDS = 6 * SECONDS_PER_HOUR
SOURCE_TIMEOUT_SECONDS = 15.0
CACHE_REFRESH_TOP_N = 50

# Demo mode: presentation-only figures, never derived from real data
DEMO_STRATEGY_APRS = {"low": 18.75, "medium": 35.42, "high": 72.89}
DEMO_APR_RANGES = {"low": (15.0, 25.0), "medium": (25.0, 50.0), "high": (50.0, 120.0)}
DEMO_APR_DECAY_EXPONENT = 0.7
DEMO_APR_JITTER = 2.5

# ---------------------------------------------------------------------------
# Portfolio Defaults
# ---------------------------------------------------------------------------

DEFAULT_MIN_POSITION_USD = Decimal("100")
MIN_VIABLE_APR = 5.0  # percent; below this a position is exited
NEW_CAPITAL_FRACTION = Decimal("0.8")  # share of spare liquidity deployed
DEFAULT_MIN_ACTION_THRESHOLD = 10.0  # percent
DEFAULT_MAX_POSITIONS = 10
DEFAULT_RANGE_ADJUST_THRESHOLD = 15.0  # percent
BOUNDARY_PROXIMITY = 0.2  # fraction of range width
DEFAULT_RANGE_VOLATILITY = 0.05
REFERENCE_PRICE = 1.0  # relative price when no oracle price is supplied

# ---------------------------------------------------------------------------
# Token Classification (lowercase addresses)
# ---------------------------------------------------------------------------

STABLE_TOKENS = frozenset(
    {
        # USDC
        "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",  # Ethereum
        "0x2791bca1f2de4661ed88a30c99a7a9449aa84174",  # Polygon
        "0x7f5c764cbc14f9669b88837ca1490cca17c31607",  # Optimism
        "0xaf88d065e77c8cc2239327c5edb3a432268e5831",  # Arbitrum
        "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",  # Base
        # USDT
        "0xdac17f958d2ee523a2206206994597c13d831ec7",  # Ethereum
        "0xc2132d05d31c914a87c6611c10748aeb04b58e8f",  # Polygon
        "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58",  # Optimism
        "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",  # Arbitrum
        # DAI
        "0x6b175474e89094c44da98b954eedeac495271d0f",  # Ethereum
        "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063",  # Polygon
        "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",  # Optimism & Arbitrum
        "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",  # Base
        # WETH
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",  # Ethereum
        "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619",  # Polygon
        "0x4200000000000000000000000000000000000006",  # Optimism & Base
        "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",  # Arbitrum
    }
)

MAJOR_TOKENS = STABLE_TOKENS | frozenset(
    {
        # WBTC
        "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",  # Ethereum
        "0x1bfd67037b42cf73acf2047067bd4f2c47d9bfd6",  # Polygon
        "0x68f180fcce6836688e9084f035309e29bf0a2095",  # Optimism
        "0x2f2a2543b76a4166549f7aab2e75bef0aefc5b0f",  # Arbitrum
        "0x1a35ee4640b0a3b87705b0a4b45d227ba60ca2ad",  # Base
        # LINK
        "0x514910771af9ca656af840dff83e8264ecf986ca",  # Ethereum
        "0xb0897686c545045afc77cf20ec7a532e3120e0f1",  # Polygon
        "0x350a791bfc2c21f9ed5d10980dad2e2638ffa7f6",  # Optimism
        "0xf97f4df75117a78c1a5a0dbb814af92458539fb4",  # Arbitrum
        # UNI
        "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984",  # Ethereum
        "0xb33eaad8d922b1083446dc23f610c2567fb5180f",  # Optimism
        "0xfa7f8980b0f1e64a2062791cc3b0871572f1f7f0",  # Arbitrum
    }
)

# ---------------------------------------------------------------------------
# Intent Adapter Tokens (symbol -> on-chain decimals unit for Web3.to_wei)
# ---------------------------------------------------------------------------

INTENT_TOKEN_UNITS = {
    "usdt": "mwei",  # 6 decimals
    "usdc": "mwei",  # 6 decimals
    "dai": "ether",  # 18 decimals
    "eth": "ether",  # 18 decimals
}
