"""Cache-aside proxy in front of the Odin.fun API.

Each logical resource is resolved under a cache key with a TTL class.
Read paths prefer staleness over unavailability: when upstream fails and
any cached payload exists (even expired), that payload is returned.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from config.settings import settings
from src.cache.store import CacheEntry, CacheStore, CacheStoreError
from src.parsers.odin.exceptions import UpstreamFetchError


class TtlClass(str, Enum):
    DEFAULT = "default"  # listings, users, creator token sets
    RECENT = "recent"  # created_time-sorted listings
    NEWEST = "newest"  # newest-tokens window
    OLDER = "older"  # older-recent-tokens window
    TRADES = "trades"
    HOLDERS = "holders"
    BTC_PRICE = "btc_price"


@dataclass(frozen=True)
class TtlPolicy:
    """Seconds per TTL class; every class is independently configurable."""

    default: float = 20 * 60
    recent: float = 30
    newest: float = 20
    older: float = 120
    trades: float = 30
    holders: float = 60
    btc_price: float = 60

    def ttl_for(self, ttl_class: TtlClass) -> float:
        return getattr(self, ttl_class.value)

    @classmethod
    def from_settings(cls) -> "TtlPolicy":
        return cls(
            default=settings.cache_ttl_default_sec,
            recent=settings.cache_ttl_recent_sec,
            newest=settings.cache_ttl_newest_sec,
            older=settings.cache_ttl_older_sec,
            trades=settings.cache_ttl_trades_sec,
            holders=settings.cache_ttl_holders_sec,
            btc_price=settings.cache_ttl_btc_price_sec,
        )


@dataclass
class ProxyStats:
    hits: int = 0
    misses: int = 0
    stale_served: int = 0
    upstream_errors: int = 0
    store_errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_served": self.stale_served,
            "upstream_errors": self.upstream_errors,
            "store_errors": self.store_errors,
        }


class CachingProxy:
    def __init__(
        self,
        store: CacheStore,
        ttl_policy: TtlPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl_policy = ttl_policy or TtlPolicy()
        self._clock = clock
        self._stats = ProxyStats()

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def ttl_policy(self) -> TtlPolicy:
        return self._ttl_policy

    def stats(self) -> dict[str, int]:
        return self._stats.as_dict()

    async def _read(self, cache_key: str) -> CacheEntry | None:
        try:
            return await self._store.get(cache_key)
        except CacheStoreError as e:
            self._stats.store_errors += 1
            logger.warning(f"[CACHE] Read failed for {cache_key}, treating as miss: {e}")
            return None

    async def _write(self, entry: CacheEntry) -> None:
        try:
            await self._store.set(entry)
        except CacheStoreError as e:
            self._stats.store_errors += 1
            logger.warning(f"[CACHE] Write failed for {entry.key}: {e}")

    async def resolve(
        self,
        cache_key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_class: TtlClass = TtlClass.DEFAULT,
        *,
        force: bool = False,
    ) -> Any:
        """Return the payload for ``cache_key``, fetching on miss.

        ``force`` skips the fresh-hit shortcut but keeps write-through and the
        stale fallback. Raises UpstreamFetchError only when upstream failed
        and nothing is cached under the key.
        """
        entry = await self._read(cache_key)
        now = self._clock()

        if entry is not None and not force and not entry.is_expired(now):
            self._stats.hits += 1
            logger.debug(f"[CACHE] Hit for {cache_key}")
            return entry.payload

        self._stats.misses += 1
        logger.debug(
            f"[CACHE] {'Forced refresh' if force else 'Miss'} for {cache_key}, fetching upstream"
        )
        try:
            payload = await fetch()
        except UpstreamFetchError as e:
            self._stats.upstream_errors += 1
            if entry is not None:
                self._stats.stale_served += 1
                age = now - entry.timestamp
                logger.warning(
                    f"[CACHE] Upstream failed for {cache_key}, serving stale entry "
                    f"({age:.0f}s old): {e}"
                )
                return entry.payload
            logger.error(f"[CACHE] Upstream failed for {cache_key}, nothing cached: {e}")
            raise

        ttl = self._ttl_policy.ttl_for(ttl_class)
        await self._write(
            CacheEntry(key=cache_key, payload=payload, timestamp=self._clock(), ttl=ttl)
        )
        return payload

    async def invalidate(self, cache_key: str) -> bool:
        """Unconditionally evict one key. Returns whether an entry existed."""
        try:
            existed = await self._store.delete(cache_key)
        except CacheStoreError as e:
            self._stats.store_errors += 1
            logger.warning(f"[CACHE] Invalidate failed for {cache_key}: {e}")
            return False
        logger.info(f"[CACHE] Invalidated {cache_key} (existed={existed})")
        return existed
