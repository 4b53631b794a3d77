"""
Uniswap subgraph client for the pool analytics service.

Queries the top pools by TVL (with their recent daily snapshots) from the
Graph gateway, one endpoint per protocol version. Failures are raised as
DataSourceError so the caller decides whether to degrade (cache refresh) or
fail (direct request).

Caching: a short in-memory TTL per (version, history_days, first) keeps
bursts of identical requests (three strategy tiers refreshing at once) from
hitting the gateway repeatedly.

Usage:
    client = SubgraphClient(session, network="base")
    pools = await client.fetch_top_pools(version=3, history_days=7)
"""

from __future__ import annotations

import os
import time
import uuid
from dataclasses import dataclass
from typing import Any

import aiohttp
from web3 import Web3

from app_logging.logger_manager import log_data_entry, setup_module_logger
from config.loader import get_config
from shared.constants import DEFAULT_HISTORY_DAYS, DEFAULT_NETWORK, SOURCE_TIMEOUT_SECONDS, TOP_POOLS_FIRST
from shared.types import DailySnapshot, Pool, Token

TOP_POOLS_QUERY = """
query TopPoolsForAPRCalculation {
  pools(
    orderBy: totalValueLockedUSD
    orderDirection: desc
    first: %(first)d
    subgraphError: allow
  ) {
    id
    createdAtTimestamp
    feeTier
    totalValueLockedUSD
    token0 {
      id
      symbol
      name
    }
    token1 {
      id
      symbol
      name
    }
    poolDayData(orderBy: date, orderDirection: desc, first: %(history_days)d) {
      date
      feesUSD
      volumeUSD
      tvlUSD
    }
  }
}
"""


class DataSourceError(Exception):
    """Raised when a subgraph query fails, times out or returns no data."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


@dataclass(frozen=True)
class SubgraphSource:
    name: str
    version: int
    url: str


class _CacheEntry:
    """In-memory cache entry with TTL."""

    __slots__ = ("data", "expires_at")

    def __init__(self, data: Any, ttl_seconds: float) -> None:
        self.data = data
        self.expires_at = time.monotonic() + ttl_seconds

    @property
    def is_valid(self) -> bool:
        return time.monotonic() < self.expires_at


def build_top_pools_query(history_days: int = DEFAULT_HISTORY_DAYS, first: int = TOP_POOLS_FIRST) -> str:
    return TOP_POOLS_QUERY % {"first": int(first), "history_days": int(history_days)}


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _parse_token(raw: dict[str, Any]) -> Token:
    return Token(id=str(raw["id"]), symbol=str(raw.get("symbol") or ""), name=str(raw.get("name") or ""))


def parse_pool(raw: dict[str, Any], version: int | None = None) -> Pool:
    """Build a Pool from one subgraph pool object. Raises KeyError/TypeError/ValueError if malformed."""
    token0 = _parse_token(raw["token0"])
    token1 = _parse_token(raw["token1"])
    for token in (token0, token1):
        if not Web3.is_address(token.id):
            raise ValueError(f"invalid token address {token.id!r}")

    days = tuple(
        DailySnapshot(
            date=int(day["date"]),
            fees_usd=str(day.get("feesUSD")),
            volume_usd=str(day.get("volumeUSD")),
            tvl_usd=str(day.get("tvlUSD")),
        )
        for day in raw.get("poolDayData") or []
    )
    created = raw.get("createdAtTimestamp")
    return Pool(
        id=str(raw["id"]),
        token0=token0,
        token1=token1,
        fee_tier=str(raw["feeTier"]),
        total_value_locked_usd=str(raw.get("totalValueLockedUSD")),
        pool_day_data=days,
        created_at_timestamp=int(created) if created is not None else None,
        version=version,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class SubgraphClient:
    """
    Async GraphQL client for the Uniswap v3/v4 subgraphs of one network.

    The aiohttp session is shared with the rest of the process when passed in;
    otherwise one is created lazily and closed by close().
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        network: str = DEFAULT_NETWORK,
        sources: list[SubgraphSource] | None = None,
        api_key: str | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._network = network

        cfg = get_config()
        subgraph_config = cfg.get_subgraph_config()
        cache_config = cfg.get_cache_config()

        self._default_version = int(subgraph_config.get("default_version", 4))
        self._first = int(subgraph_config.get("top_pools_first", TOP_POOLS_FIRST))
        self._cache_ttl = float(subgraph_config.get("client_cache_ttl_seconds", 60))
        self._timeout = float(cache_config.get("source_timeout_seconds", SOURCE_TIMEOUT_SECONDS))
        self._api_key = api_key if api_key is not None else cfg.get_graph_api_key()

        if sources is None:
            sources = [
                SubgraphSource(
                    name=s.get("name", f"v{s.get('version')}"),
                    version=int(s["version"]),
                    url=os.getenv(s.get("url_env", ""), ""),
                )
                for s in cfg.get_network_sources(network)
            ]
        self._sources = {s.version: s for s in sources}

        self._cache: dict[str, _CacheEntry] = {}

        self._logger = setup_module_logger(
            "subgraph_client", "subgraph_client.log", module_folder="Subgraph_Client_Logs"
        )

    @property
    def network(self) -> str:
        return self._network

    @property
    def versions(self) -> list[int]:
        """Protocol versions with a configured endpoint, in config order."""
        return list(self._sources)

    @property
    def default_version(self) -> int:
        return self._default_version

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def fetch_top_pools(
        self,
        version: int | None = None,
        history_days: int = DEFAULT_HISTORY_DAYS,
    ) -> list[Pool]:
        """
        Fetch the top pools by TVL with up to `history_days` daily snapshots.

        Args:
            version: Protocol version (3 or 4); the configured default if None.
            history_days: Number of most recent daily snapshots per pool.

        Returns:
            Parsed pools in subgraph order. Malformed pools are skipped.

        Raises:
            DataSourceError: unknown version, HTTP/transport failure, timeout,
                or a GraphQL error response without data.
        """
        version = self._default_version if version is None else version
        source = self._sources.get(version)
        if source is None or not source.url:
            raise DataSourceError(f"v{version}", f"no subgraph endpoint configured for {self._network}")

        cache_key = f"pools:{version}:{history_days}:{self._first}"
        entry = self._cache.get(cache_key)
        if entry and entry.is_valid:
            self._logger.debug("Cache hit: %s", cache_key)
            return list(entry.data)
        self._evict_expired()

        data = await self._post_query(source, build_top_pools_query(history_days, self._first))

        pools = []
        for raw in data.get("pools") or []:
            try:
                pools.append(parse_pool(raw, version))
            except (KeyError, TypeError, ValueError) as e:
                self._logger.warning(
                    "%s: skipping malformed pool %s: %s",
                    source.name,
                    raw.get("id") if isinstance(raw, dict) else raw,
                    e,
                )

        self._cache[cache_key] = _CacheEntry(tuple(pools), self._cache_ttl)
        self._logger.info("%s: fetched %d pools (history_days=%d)", source.name, len(pools), history_days)
        log_data_entry(
            trace_id=uuid.uuid4().hex,
            source_module="subgraph_client",
            what=f"Top pools from {source.name}",
            why="Raw input for pool metrics and scoring",
            data_type="Pool[]",
            data={"network": self._network, "version": version, "pool_count": len(pools)},
        )
        return pools

    def _evict_expired(self) -> None:
        expired = [key for key, entry in self._cache.items() if not entry.is_valid]
        for key in expired:
            del self._cache[key]

    async def _post_query(self, source: SubgraphSource, query: str) -> dict[str, Any]:
        session = await self._get_session()
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            async with session.post(
                source.url,
                json={"query": query},
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise DataSourceError(source.name, f"HTTP {resp.status}: {body[:200]}")
                result = await resp.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise DataSourceError(source.name, f"request failed: {e!r}") from e
        except ValueError as e:
            raise DataSourceError(source.name, "invalid JSON response") from e

        if not isinstance(result, dict):
            raise DataSourceError(source.name, "unexpected response shape")

        errors = result.get("errors")
        data = result.get("data")
        if errors:
            if not data:
                raise DataSourceError(source.name, f"GraphQL errors: {errors}")
            self._logger.error("%s: GraphQL errors with partial data: %s", source.name, errors)
        if not isinstance(data, dict):
            raise DataSourceError(source.name, "response has no data")
        return data
