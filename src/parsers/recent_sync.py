"""Incremental sync of recently launched tokens.

Two polling tasks refresh the "newest" (small, fast) and "older" (larger,
slower) windows of the created_time-sorted feed. After each refresh a
cycle merges both windows, resolves creator aggregates (reusing cached
ones for creators without new tokens) and commits an immutable snapshot.

Cycles are numbered; a cycle that finishes after a newer one has already
committed is discarded.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from loguru import logger

from config.settings import settings
from src.parsers.creator_cache import CreatorCache
from src.parsers.creator_performance import CreatorAggregator, confidence_tier
from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.odin.feed import OdinFeed
from src.parsers.odin.models import CreatorPerformance, OdinToken, TokenWithCreator
from src.parsers.token_merge import creators_touched, merge_windows, reconcile_creators


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class SyncSnapshot:
    """Committed merged view. ``cycle == 0`` means nothing committed yet.

    ``baseline`` is False until a cycle commits after at least one window
    has loaded; new tokens are only detected against a baseline view.
    """

    cycle: int = 0
    items: tuple[TokenWithCreator, ...] = ()
    new_token_ids: frozenset[str] = frozenset()
    updated_at: datetime | None = None
    baseline: bool = False

    @property
    def token_ids(self) -> frozenset[str]:
        return frozenset(item.token.id for item in self.items)

    def filtered(self, tier: str = "all") -> list[TokenWithCreator]:
        """Items whose creator is in ``tier``; tokens without creator data
        only appear under "all"."""
        if tier == "all":
            return list(self.items)
        return [
            item
            for item in self.items
            if item.creator is not None
            and confidence_tier(item.creator.confidence_score) == tier
        ]


class RecentTokensSync:
    def __init__(
        self,
        feed: OdinFeed,
        aggregator: CreatorAggregator,
        *,
        creator_cache: CreatorCache | None = None,
        newest_interval: float | None = None,
        older_interval: float | None = None,
        older_limit: int | None = None,
        highlight_sec: float | None = None,
        max_concurrent: int | None = None,
        on_commit: Callable[[SyncSnapshot], None] | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._feed = feed
        self._aggregator = aggregator
        self._creator_cache = creator_cache or CreatorCache(settings.creator_cache_max_size)
        self._newest_interval = newest_interval or settings.sync_newest_interval_sec
        self._older_interval = older_interval or settings.sync_older_interval_sec
        self._older_limit = older_limit or settings.sync_older_limit
        self._highlight_sec = (
            settings.sync_highlight_sec if highlight_sec is None else highlight_sec
        )
        self._semaphore = asyncio.Semaphore(
            max_concurrent or settings.sync_max_concurrent_aggregations
        )
        self._on_commit = on_commit
        self._now = now

        self._newest: tuple[OdinToken, ...] = ()
        self._older: tuple[OdinToken, ...] = ()
        self._windows_loaded = False
        self._snapshot = SyncSnapshot()
        self._cycle_seq = 0
        self._commit_lock = asyncio.Lock()
        self._tasks: list[asyncio.Task] = []
        self._highlight_task: asyncio.Task | None = None

    @property
    def snapshot(self) -> SyncSnapshot:
        return self._snapshot

    @property
    def creator_cache(self) -> CreatorCache:
        return self._creator_cache

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    # === Lifecycle ===

    async def start(self) -> None:
        """Load both windows, commit the first cycle, then start polling."""
        if self.is_running:
            return
        await self.initial_load()
        self._tasks = [
            asyncio.create_task(
                self._poll_loop("newest", self._newest_interval, self.refresh_newest),
                name="recent_sync_newest",
            ),
            asyncio.create_task(
                self._poll_loop("older", self._older_interval, self.refresh_older),
                name="recent_sync_older",
            ),
        ]
        logger.info(
            f"[SYNC] Polling started (newest every {self._newest_interval:.0f}s, "
            f"older every {self._older_interval:.0f}s)"
        )

    async def stop(self) -> None:
        tasks = list(self._tasks)
        if self._highlight_task is not None:
            tasks.append(self._highlight_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self._highlight_task = None
        logger.info("[SYNC] Polling stopped")

    async def initial_load(self) -> SyncSnapshot | None:
        await asyncio.gather(self.refresh_newest(), self.refresh_older())
        return await self.run_cycle()

    async def _poll_loop(
        self, name: str, interval: float, refresh: Callable[[], Awaitable[bool]]
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                if await refresh():
                    await self.run_cycle()
            except Exception as e:
                logger.error(f"[SYNC] {name} poll error: {e}")

    # === Window refresh ===

    async def refresh_newest(self) -> bool:
        try:
            tokens = await self._feed.get_newest_tokens()
        except UpstreamFetchError as e:
            logger.warning(f"[SYNC] Newest window refresh failed, keeping previous: {e}")
            return False
        self._newest = tuple(tokens)
        self._windows_loaded = True
        logger.debug(f"[SYNC] Fetched {len(tokens)} newest tokens")
        return True

    async def refresh_older(self) -> bool:
        try:
            tokens = await self._feed.get_older_recent_tokens(self._older_limit)
        except UpstreamFetchError as e:
            logger.warning(f"[SYNC] Older window refresh failed, keeping previous: {e}")
            return False
        self._older = tuple(tokens)
        self._windows_loaded = True
        logger.debug(f"[SYNC] Fetched {len(tokens)} older tokens")
        return True

    # === Merge cycle ===

    async def run_cycle(self, *, force_refresh: bool = False) -> SyncSnapshot | None:
        """Merge, resolve creators and commit. Returns None if superseded."""
        self._cycle_seq += 1
        seq = self._cycle_seq
        newest, older = self._newest, self._older
        loaded = self._windows_loaded

        base = self._snapshot
        merge = merge_windows(newest, older, base.token_ids if base.baseline else None)
        touched = creators_touched(merge.tokens, merge.new_token_ids)
        items = await self._resolve_creators(merge.tokens, touched, force_refresh)
        items = reconcile_creators(items)

        async with self._commit_lock:
            current = self._snapshot
            if current.cycle >= seq:
                logger.debug(f"[SYNC] Cycle {seq} superseded by {current.cycle}, discarded")
                return None
            if current.baseline:
                new_ids = merge.token_ids - current.token_ids
            else:
                new_ids = frozenset()
            snapshot = SyncSnapshot(
                cycle=seq,
                items=tuple(items),
                new_token_ids=new_ids,
                updated_at=self._now(),
                baseline=loaded,
            )
            self._snapshot = snapshot

        logger.info(
            f"[SYNC] Cycle {seq}: {len(items)} tokens "
            f"({len(newest)} newest + {len(older)} older), {len(new_ids)} new"
        )
        if new_ids:
            self._schedule_highlight_clear(seq)
        if self._on_commit is not None:
            self._on_commit(snapshot)
        return snapshot

    async def _resolve_creators(
        self,
        tokens: tuple[OdinToken, ...],
        touched: set[str],
        force_refresh: bool,
    ) -> list[TokenWithCreator]:
        if touched and not force_refresh:
            dropped = self._creator_cache.invalidate_many(touched)
            logger.debug(
                f"[SYNC] {len(touched)} creators touched by new tokens, {dropped} cached records dropped"
            )

        resolved: dict[str, CreatorPerformance | None] = {}
        to_compute: list[str] = []
        for principal in dict.fromkeys(t.creator for t in tokens if t.creator):
            cached = None if force_refresh else self._creator_cache.get(principal)
            if cached is not None:
                resolved[principal] = cached.performance
            else:
                to_compute.append(principal)

        results = await asyncio.gather(
            *(
                self._aggregate_one(p, force_refresh or p in touched)
                for p in to_compute
            )
        )
        for principal, perf in zip(to_compute, results):
            resolved[principal] = perf
            if perf is not None:
                self._creator_cache.put(principal, perf)

        return [
            TokenWithCreator(token=t, creator=resolved.get(t.creator)) for t in tokens
        ]

    async def _aggregate_one(
        self, principal: str, force_refresh: bool
    ) -> CreatorPerformance | None:
        async with self._semaphore:
            try:
                return await self._aggregator.aggregate(principal, force_refresh=force_refresh)
            except Exception as e:
                logger.warning(f"[SYNC] Creator resolution failed for {principal[:12]}: {e}")
                return None

    # === Highlight ===

    def _schedule_highlight_clear(self, cycle: int) -> None:
        if self._highlight_task is not None and not self._highlight_task.done():
            self._highlight_task.cancel()
        self._highlight_task = asyncio.create_task(
            self._clear_highlight_later(cycle), name="recent_sync_highlight"
        )

    async def _clear_highlight_later(self, cycle: int) -> None:
        await asyncio.sleep(self._highlight_sec)
        await self.clear_highlight(cycle)

    async def clear_highlight(self, cycle: int | None = None) -> None:
        """Drop new_token_ids, only if ``cycle`` is still the committed one."""
        async with self._commit_lock:
            current = self._snapshot
            if cycle is not None and current.cycle != cycle:
                return
            if current.new_token_ids:
                self._snapshot = replace(current, new_token_ids=frozenset())
