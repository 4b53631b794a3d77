"""
Uniswap Pool Analytics — Main Entrypoint.

Single-process asyncio runner:
    1. validates config files and required environment variables
    2. wires SubgraphClient -> PoolAnalyticsService -> PoolCacheService
    3. performs a blocking startup refresh of all strategy tiers
    4. runs the periodic cache refresh task until SIGINT/SIGTERM

One aiohttp session is shared by every subgraph query for the lifetime of
the process. No external IPC; consumers call the services in-process.

Usage:
    python main.py          # set DEMO_MODE=true for presentation APRs
"""

from __future__ import annotations

import asyncio
import signal
import sys

import aiohttp
from dotenv import load_dotenv

from app_logging.logger_manager import create_module_log_directories, setup_module_logger
from config.loader import get_config
from config.validate import ConfigValidationError, validate_all_configs
from shared.constants import DEFAULT_NETWORK, SOURCE_TIMEOUT_SECONDS
from shared.serialization_utils import to_json

# ---------------------------------------------------------------------------
# Module logger (logged to logs/ root, no sub-folder)
# ---------------------------------------------------------------------------
_logger = setup_module_logger("main", "main.log")


# ---------------------------------------------------------------------------
# Startup banner
# ---------------------------------------------------------------------------


def _log_banner(network: str, versions: list[int], demo_mode: bool, refresh_hours: float) -> None:
    """Log a concise startup summary."""
    _logger.info("=" * 60)
    _logger.info("Uniswap pool analytics starting")
    _logger.info("=" * 60)
    _logger.info("  network         : %s", network)
    _logger.info("  sources         : %s", ", ".join(f"v{v}" for v in versions) or "(none)")
    _logger.info("  demo_mode       : %s", demo_mode)
    _logger.info("  refresh_every   : %sh", refresh_hours)
    _logger.info("=" * 60)


def _resolve_network(configured: str, supported: list[str]) -> str:
    if configured in supported:
        return configured
    _logger.warning("Network %r not supported, falling back to %r", configured, DEFAULT_NETWORK)
    return DEFAULT_NETWORK


# ---------------------------------------------------------------------------
# Task done callback — detect unhandled exceptions
# ---------------------------------------------------------------------------


def _task_done_callback(
    task: asyncio.Task[None],
    shutdown_event: asyncio.Event,
) -> None:
    """Called when a long-running task finishes (normally or with error)."""
    try:
        exc = task.exception()
    except asyncio.CancelledError:
        _logger.info("Task %s cancelled", task.get_name())
        return

    if exc is not None:
        _logger.critical(
            "Task %s failed with unhandled exception: %s",
            task.get_name(),
            exc,
            exc_info=exc,
        )
        shutdown_event.set()


# ---------------------------------------------------------------------------
# Main async entry
# ---------------------------------------------------------------------------


async def _run() -> None:
    """Wire all components, warm the cache and launch the refresh task."""
    # ------------------------------------------------------------------
    # 1. Load environment and validate configuration
    # ------------------------------------------------------------------
    load_dotenv()

    try:
        validate_all_configs()
    except ConfigValidationError as exc:
        _logger.critical("Config validation failed:\n%s", exc)
        sys.exit(1)

    create_module_log_directories()

    cfg = get_config()
    app_cfg = cfg.get_app_config()
    cache_cfg = cfg.get_cache_config()
    network = _resolve_network(app_cfg.get("network", DEFAULT_NETWORK), app_cfg.get("supported_networks", []))

    # ------------------------------------------------------------------
    # 2. Initialize shared instances (dependency order)
    # ------------------------------------------------------------------
    from core.pool_analytics import PoolAnalyticsService
    from core.pool_cache import PoolCacheService
    from core.position_sizing import PositionSizer
    from core.rebalance import RebalanceEngine
    from execution.subgraph_client import SubgraphClient

    timeout = float(cache_cfg.get("source_timeout_seconds", SOURCE_TIMEOUT_SECONDS))
    http_session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
    subgraph_client = SubgraphClient(http_session, network=network)
    analytics = PoolAnalyticsService(subgraph_client, PositionSizer(), RebalanceEngine())
    pool_cache = PoolCacheService(analytics)

    _log_banner(
        network,
        subgraph_client.versions,
        pool_cache.demo_mode,
        cache_cfg.get("refresh_interval_hours", 6),
    )

    try:
        # ------------------------------------------------------------------
        # 3. Startup refresh (blocking; per-tier failures are logged)
        # ------------------------------------------------------------------
        await pool_cache.refresh_pool_cache()
        if any(pool_cache.entry(t).timestamp for t in ("low", "medium", "high")):
            summary = await pool_cache.get_pool_summary()
            _logger.info("Pool summary:\n%s", to_json(summary, indent=2))
        else:
            _logger.warning("No strategy could be populated at startup, serving cold cache")

        # ------------------------------------------------------------------
        # 4. Signal handling for graceful shutdown
        # ------------------------------------------------------------------
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def _handle_signal(sig: signal.Signals) -> None:
            _logger.info("Received %s, initiating graceful shutdown", sig.name)
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _handle_signal, sig)

        # ------------------------------------------------------------------
        # 5. Launch periodic refresh
        # ------------------------------------------------------------------
        task_cache = asyncio.create_task(pool_cache.run(), name="pool_cache")
        task_cache.add_done_callback(lambda done_task: _task_done_callback(done_task, shutdown_event))
        _logger.info("Task launched: pool_cache")

        # ------------------------------------------------------------------
        # 6. Wait for shutdown signal, then cancel tasks
        # ------------------------------------------------------------------
        try:
            await shutdown_event.wait()
        finally:
            _logger.info("Shutting down, cancelling tasks")
            pool_cache.stop()
            if not task_cache.done():
                task_cache.cancel()

            results = await asyncio.gather(task_cache, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                    _logger.error("Task %s exited with error: %s", task_cache.get_name(), result)
    finally:
        # Cleanup resources
        await http_session.close()
        _logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Synchronous entry point."""
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        _logger.info("Interrupted by user")


if __name__ == "__main__":
    main()
