"""Entry point for the creator-radar proxy and recent-tokens sync."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from src.api.server import run_api_server
from src.api.service_registry import ServiceRegistry
from src.cache.proxy import CachingProxy, TtlPolicy
from src.cache.store import build_cache_store
from src.parsers.btc_price import BtcPriceClient
from src.parsers.creator_performance import CreatorAggregator
from src.parsers.odin.client import OdinClient
from src.parsers.odin.feed import OdinFeed
from src.parsers.recent_sync import RecentTokensSync, SyncSnapshot
from src.utils.logger import setup_logger


def _log_commit(snapshot: SyncSnapshot) -> None:
    if snapshot.new_token_ids:
        logger.info(f"[SYNC] New tokens: {', '.join(sorted(snapshot.new_token_ids))}")


async def main() -> None:
    setup_logger()
    logger.info("Starting creator-radar...")

    store = build_cache_store()
    proxy = CachingProxy(store, TtlPolicy.from_settings())
    odin = OdinClient(
        max_rps=settings.odin_max_rps,
        base_url=settings.odin_api_url,
        timeout=settings.odin_timeout_sec,
        max_retries=settings.odin_max_retries,
        retry_base_delay=settings.odin_retry_base_delay_sec,
    )
    btc_price = BtcPriceClient(proxy)
    feed = OdinFeed(proxy, odin)
    aggregator = CreatorAggregator(feed, btc_price)
    sync = RecentTokensSync(feed, aggregator, on_commit=_log_commit) if settings.sync_enabled else None
    services = ServiceRegistry(proxy=proxy, feed=feed, aggregator=aggregator, sync=sync)

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tasks = [asyncio.create_task(run_api_server(services), name="api_server")]
    if sync is not None:
        tasks.append(asyncio.create_task(sync.start(), name="recent_sync_start"))

    # Wait for the server to exit or a shutdown signal
    done, pending = await asyncio.wait(
        [tasks[0], asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for task in [*pending, *tasks[1:]]:
        if task.done():
            continue
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    if sync is not None:
        await sync.stop()
    await odin.close()
    await btc_price.close()
    await store.close()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
