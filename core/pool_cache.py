"""
Per-strategy pool cache with periodic background refresh.

Holds one CacheEntry (scored pools, average APR, timestamp) per risk tier for
the network served by the analytics service. Entries are rebuilt from every
configured subgraph version concurrently and swapped in with a single
assignment, so readers see either the old entry or the new one, never a
partial result.

Refresh per tier:
    - preset options with top_n raised to the refresh size
    - each source version queried under a per-source timeout; failures and
      timeouts contribute nothing (warning)
    - all sources failed: previous entry kept (error if never populated)
    - otherwise the entry is replaced wholesale, even when empty

Reads:
    - fresh and non-empty: served from the cache
    - otherwise a read-through refresh under a per-tier lock; concurrent
      stale readers share one refresh

Demo mode (app.json "demo_mode" / DEMO_MODE): summary views show fixed
tier APRs and synthetic per-pool APRs on copies flagged is_synthetic_apr.
Cached data is never modified.

Usage:
    cache = PoolCacheService(analytics)
    await cache.refresh_pool_cache()
    task = asyncio.create_task(cache.run(), name="pool_cache")
    pools = await cache.get_cached_pools_by_strategy("low")
"""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from app_logging.logger_manager import log_data_output, setup_module_logger
from config.loader import get_config
from core.pool_analytics import PoolAnalyticsService, parse_tier
from core.presets import get_preset
from execution.subgraph_client import DataSourceError
from shared.constants import (
    CACHE_FRESHNESS_SECONDS,
    CACHE_REFRESH_INTERVAL_SECONDS,
    CACHE_REFRESH_TOP_N,
    DEMO_APR_DECAY_EXPONENT,
    DEMO_APR_JITTER,
    DEMO_APR_RANGES,
    DEMO_STRATEGY_APRS,
    SECONDS_PER_HOUR,
    SOURCE_TIMEOUT_SECONDS,
)
from shared.types import CacheEntry, PoolSummary, ScoredPool, ScoringOptions, StrategySummary, StrategyTier


def average_apr(pools: list[ScoredPool] | tuple[ScoredPool, ...]) -> float:
    """Mean APR over pools with a known APR, 0 if none."""
    aprs = [p.apr for p in pools if p.apr is not None]
    return sum(aprs) / len(aprs) if aprs else 0.0


def top_by_apr(pools: list[ScoredPool] | tuple[ScoredPool, ...], count: int) -> list[ScoredPool]:
    ranked = sorted((p for p in pools if p.apr is not None), key=lambda p: p.apr, reverse=True)
    return ranked[: max(count, 0)]


def synthetic_aprs(
    pools: list[ScoredPool] | tuple[ScoredPool, ...],
    tier: StrategyTier,
    rng: random.Random,
) -> list[ScoredPool]:
    """
    Demo-mode copies with presentation APRs inside the tier's range.

    Pool i of n gets max - spread * (i / n) ** 0.7 plus uniform jitter,
    rounded to 2 dp and clamped, so the first pools look best.
    """
    low, high = DEMO_APR_RANGES[tier.value]
    spread = high - low
    n = len(pools) or 1
    result = []
    for i, pool in enumerate(pools):
        apr = high - spread * (i / n) ** DEMO_APR_DECAY_EXPONENT
        apr = round(apr + rng.uniform(-DEMO_APR_JITTER, DEMO_APR_JITTER), 2)
        result.append(replace(pool, apr=max(low, min(high, apr)), is_synthetic_apr=True))
    return result


class PoolCacheService:
    """Strategy-keyed cache over PoolAnalyticsService with background refresh."""

    def __init__(
        self,
        analytics: PoolAnalyticsService,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._analytics = analytics
        self._clock = clock
        self._rng = rng or random.Random()

        cfg = get_config()
        app_config = cfg.get_app_config()
        cache_config = cfg.get_cache_config()

        self._network: str = analytics.network
        self._demo_mode: bool = bool(app_config.get("demo_mode", False))
        self._freshness = float(
            cache_config.get("freshness_hours", CACHE_FRESHNESS_SECONDS / SECONDS_PER_HOUR)
        ) * SECONDS_PER_HOUR
        self._refresh_interval = float(
            cache_config.get("refresh_interval_hours", CACHE_REFRESH_INTERVAL_SECONDS / SECONDS_PER_HOUR)
        ) * SECONDS_PER_HOUR
        self._source_timeout = float(cache_config.get("source_timeout_seconds", SOURCE_TIMEOUT_SECONDS))
        self._refresh_top_n = int(cache_config.get("refresh_top_n", CACHE_REFRESH_TOP_N))
        self._summary_top_n = int(cache_config.get("summary_top_n", 5))

        self._entries: dict[StrategyTier, CacheEntry] = {tier: CacheEntry() for tier in StrategyTier}
        self._locks: dict[StrategyTier, asyncio.Lock] = {tier: asyncio.Lock() for tier in StrategyTier}
        self._running = False

        self._logger = setup_module_logger("pool_cache", "pool_cache.log", module_folder="Pool_Cache_Logs")

    @property
    def network(self) -> str:
        return self._network

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    def entry(self, tier: StrategyTier | str) -> CacheEntry:
        return self._entries[parse_tier(tier)]

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.timestamp > 0 and self._clock() - entry.timestamp < self._freshness

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Periodic refresh loop, launched as an asyncio.Task after the startup refresh."""
        self._running = True
        self._logger.info(
            "Pool cache refresh loop started (network=%s, interval=%.0fs)",
            self._network,
            self._refresh_interval,
        )
        try:
            while self._running:
                await asyncio.sleep(self._refresh_interval)
                if not self._running:
                    break
                await self.refresh_pool_cache()
        except asyncio.CancelledError:
            self._logger.info("Pool cache refresh loop cancelled")
        finally:
            self._running = False

    def stop(self) -> None:
        """Signal the run loop to stop."""
        self._running = False

    async def refresh_pool_cache(self) -> None:
        """Refresh every tier concurrently. Never raises; per-tier failures are logged."""
        self._logger.info("Refreshing pool cache for all strategies")
        tiers = list(StrategyTier)
        results = await asyncio.gather(*(self._refresh_locked(t) for t in tiers), return_exceptions=True)
        for tier, result in zip(tiers, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                self._logger.error("Refresh failed for %s strategy: %s", tier.value, result)
        self._logger.info("Pool cache refresh completed")

    async def _refresh_locked(self, tier: StrategyTier) -> CacheEntry:
        async with self._locks[tier]:
            return await self.refresh_strategy(tier)

    async def refresh_strategy(self, tier: StrategyTier) -> CacheEntry:
        """
        Rebuild one tier's entry from all sources.

        Raises:
            DataSourceError: every source failed and the tier was never populated.
        """
        options = ScoringOptions.from_preset(get_preset(tier), top_n=self._refresh_top_n)
        versions = self._analytics.versions
        results = await asyncio.gather(*(self._query_source(tier, options, v) for v in versions))

        previous = self._entries[tier]
        if all(r is None for r in results):
            if previous.timestamp == 0:
                raise DataSourceError("pool_cache", f"all sources failed for {tier.value} strategy")
            self._logger.warning("All sources failed for %s strategy, keeping previous entry", tier.value)
            return previous

        pools = tuple(p for r in results if r is not None for p in r)
        entry = CacheEntry(pools=pools, average_apr=average_apr(pools), timestamp=self._clock())
        self._entries[tier] = entry

        self._logger.info(
            "Cached %d pools for %s strategy, average APR %.2f%%",
            len(pools),
            tier.value,
            entry.average_apr,
        )
        log_data_output(
            trace_id=uuid.uuid4().hex,
            source_module="pool_cache",
            what=f"Cache entry for {tier.value} strategy",
            why="Serve strategy pool reads without hitting the subgraph",
            data_type="CacheEntry",
            data={"pool_count": len(pools), "average_apr": entry.average_apr, "timestamp": entry.timestamp},
            next_stage="cache readers",
        )
        return entry

    async def _query_source(
        self,
        tier: StrategyTier,
        options: ScoringOptions,
        version: int,
    ) -> list[ScoredPool] | None:
        try:
            return await asyncio.wait_for(
                self._analytics.get_best_pools_with_score(self._network, options, version=version),
                timeout=self._source_timeout,
            )
        except asyncio.TimeoutError:
            self._logger.warning(
                "v%d source timed out after %.0fs for %s strategy", version, self._source_timeout, tier.value
            )
        except DataSourceError as e:
            self._logger.warning("v%d source failed for %s strategy: %s", version, tier.value, e)
        except Exception as e:
            self._logger.warning(
                "v%d source raised %s for %s strategy: %s", version, type(e).__name__, tier.value, e
            )
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fresh_entry(self, tier: StrategyTier, require_pools: bool) -> CacheEntry:
        entry = self._entries[tier]
        if self.is_fresh(entry) and (entry.pools or not require_pools):
            return entry

        seen = entry.timestamp
        async with self._locks[tier]:
            current = self._entries[tier]
            if current.timestamp != seen and self.is_fresh(current):
                return current
            self._logger.info("No recent cache for %s strategy, fetching fresh data", tier.value)
            return await self.refresh_strategy(tier)

    async def get_cached_pools_by_strategy(self, tier: StrategyTier | str) -> list[ScoredPool]:
        """Cached pools for a tier, refreshed first if stale or empty."""
        entry = await self._fresh_entry(parse_tier(tier), require_pools=True)
        return list(entry.pools)

    async def get_average_apr_by_strategy(self, tier: StrategyTier | str) -> float:
        entry = await self._fresh_entry(parse_tier(tier), require_pools=False)
        return entry.average_apr

    async def get_all_strategy_aprs(self) -> dict[str, float]:
        if self._demo_mode:
            self._logger.info("Demo mode: returning fixed strategy APRs")
            return dict(DEMO_STRATEGY_APRS)

        tiers = list(StrategyTier)
        aprs = await asyncio.gather(*(self.get_average_apr_by_strategy(t) for t in tiers))
        return {tier.value: apr for tier, apr in zip(tiers, aprs)}

    async def get_top_pools_by_strategy(self, tier: StrategyTier | str, count: int = 5) -> list[ScoredPool]:
        """Top pools by APR (unknown APR excluded); synthetic APRs in demo mode."""
        tier = parse_tier(tier)
        pools = await self.get_cached_pools_by_strategy(tier)
        if self._demo_mode:
            pools = synthetic_aprs(pools, tier, self._rng)
        return top_by_apr(pools, count)

    async def get_pool_summary(self, top_n: int | None = None) -> PoolSummary:
        """Name, description, average APR, pool count and top pools for every tier."""
        top_n = self._summary_top_n if top_n is None else top_n
        self._logger.info("Generating pool summary with top %d pools per strategy", top_n)

        tiers = list(StrategyTier)
        aprs = await self.get_all_strategy_aprs()
        pool_lists = await asyncio.gather(*(self.get_cached_pools_by_strategy(t) for t in tiers))

        strategies = {}
        for tier, pools in zip(tiers, pool_lists):
            preset = get_preset(tier)
            shown = synthetic_aprs(pools, tier, self._rng) if self._demo_mode else pools
            strategies[tier.value] = StrategySummary(
                tier=tier,
                name=f"{preset.name} Strategy",
                description=preset.summary_description,
                average_apr=aprs[tier.value],
                pool_count=len(pools),
                top_pools=top_by_apr(shown, top_n),
            )

        now = self._clock()
        return PoolSummary(
            strategies=strategies,
            timestamp=now,
            last_updated=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            demo_mode=self._demo_mode,
        )
