"""Cache-aside stores: memory, JSON file or Redis behind one contract.

Entries carry their own (timestamp, ttl) so expiry is decided by the
caller. Stores physically keep an entry for ``ttl + stale_retention``
seconds, which lets the proxy serve an expired payload when upstream is
down.
"""

import asyncio
import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import settings

REDIS_KEY_PREFIX = "cache:"
SWEEP_INTERVAL_SEC = 60.0


class CacheStoreError(Exception):
    """Serialization or storage failure inside a cache store."""


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    timestamp: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.timestamp + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_json(self) -> str:
        try:
            return json.dumps(asdict(self), separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise CacheStoreError(f"Cannot serialize entry {self.key}: {e}") from e

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        try:
            data = json.loads(raw)
            return cls(
                key=data["key"],
                payload=data["payload"],
                timestamp=float(data["timestamp"]),
                ttl=float(data["ttl"]),
            )
        except (TypeError, ValueError, KeyError) as e:
            raise CacheStoreError(f"Corrupt cache entry: {e}") from e


class CacheStore(Protocol):
    async def get(self, key: str) -> CacheEntry | None: ...

    async def set(self, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class MemoryCacheStore:
    """Process-local store. Entries are kept serialized so callers never
    share mutable payloads with the cache."""

    def __init__(
        self,
        stale_retention: float = 0.0,
        clock=time.time,
        sweep_interval: float = SWEEP_INTERVAL_SEC,
    ) -> None:
        self._data: dict[str, tuple[float, str]] = {}  # key -> (purge_at, json)
        self._stale_retention = stale_retention
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _sweep(self, now: float) -> int:
        """Drop every entry past its retention window."""
        expired = [k for k, (purge_at, _) in self._data.items() if now >= purge_at]
        for key in expired:
            del self._data[key]
        self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug(f"[CACHE] Swept {len(expired)} expired entries from memory")
        return len(expired)

    async def get(self, key: str) -> CacheEntry | None:
        item = self._data.get(key)
        if item is None:
            return None
        purge_at, raw = item
        if self._clock() >= purge_at:
            del self._data[key]
            return None
        return CacheEntry.from_json(raw)

    async def set(self, entry: CacheEntry) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        self._data[entry.key] = (
            entry.expires_at + self._stale_retention,
            entry.to_json(),
        )

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class FileCacheStore:
    """JSON-file store for single-instance deployments without Redis.

    The whole file is rewritten on each mutation; fine for the few hundred
    keys the proxy produces.
    """

    def __init__(self, path: str | Path, stale_retention: float = 0.0, clock=time.time) -> None:
        self._path = Path(path)
        self._stale_retention = stale_retention
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] | None = None
        self._lock = asyncio.Lock()

    def _read_file(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheStoreError(f"Failed to load {self._path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write_file(self, entries: dict[str, dict[str, Any]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(entries), encoding="utf-8")
            tmp.replace(self._path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheStoreError(f"Failed to save {self._path}: {e}") from e

    def _prune(self, entries: dict[str, dict[str, Any]], now: float) -> int:
        expired = [
            key
            for key, raw in entries.items()
            if not isinstance(raw, dict)
            or now >= raw.get("timestamp", 0) + raw.get("ttl", 0) + self._stale_retention
        ]
        for key in expired:
            del entries[key]
        return len(expired)

    async def _load(self) -> dict[str, dict[str, Any]]:
        if self._entries is None:
            self._entries = await asyncio.to_thread(self._read_file)
            logger.debug(f"[CACHE] Loaded {len(self._entries)} entries from {self._path}")
        return self._entries

    async def get(self, key: str) -> CacheEntry | None:
        async with self._lock:
            entries = await self._load()
            raw = entries.get(key)
            if raw is None:
                return None
            entry = CacheEntry.from_json(json.dumps(raw))
            if self._clock() >= entry.expires_at + self._stale_retention:
                del entries[key]
                await asyncio.to_thread(self._write_file, dict(entries))
                return None
            return entry

    async def set(self, entry: CacheEntry) -> None:
        async with self._lock:
            entries = await self._load()
            pruned = self._prune(entries, self._clock())
            if pruned:
                logger.debug(f"[CACHE] Pruned {pruned} expired entries from {self._path}")
            entries[entry.key] = json.loads(entry.to_json())
            await asyncio.to_thread(self._write_file, dict(entries))

    async def delete(self, key: str) -> bool:
        async with self._lock:
            entries = await self._load()
            existed = entries.pop(key, None) is not None
            if existed:
                await asyncio.to_thread(self._write_file, dict(entries))
            return existed

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries = None


class RedisCacheStore:
    """Networked store on redis.asyncio; Redis EX handles physical purge."""

    def __init__(self, redis: Redis, stale_retention: float = 0.0) -> None:
        self._redis = redis
        self._stale_retention = stale_retention

    async def get(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._redis.get(REDIS_KEY_PREFIX + key)
        except RedisError as e:
            raise CacheStoreError(f"Redis GET {key} failed: {e}") from e
        if raw is None:
            return None
        return CacheEntry.from_json(raw)

    async def set(self, entry: CacheEntry) -> None:
        raw = entry.to_json()
        retain = max(1, int(entry.ttl + self._stale_retention))
        try:
            await self._redis.set(REDIS_KEY_PREFIX + entry.key, raw, ex=retain)
        except RedisError as e:
            raise CacheStoreError(f"Redis SET {entry.key} failed: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._redis.delete(REDIS_KEY_PREFIX + key)
        except RedisError as e:
            raise CacheStoreError(f"Redis DEL {key} failed: {e}") from e
        return bool(removed)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()


def build_cache_store(backend: str | None = None) -> CacheStore:
    """Create the store selected by ``settings.cache_backend``."""
    backend = (backend or settings.cache_backend).lower()
    retention = float(settings.cache_stale_retention_sec)
    if backend == "memory":
        return MemoryCacheStore(stale_retention=retention)
    if backend == "file":
        return FileCacheStore(settings.cache_file_path, stale_retention=retention)
    if backend == "redis":
        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisCacheStore(redis, stale_retention=retention)
    raise ValueError(f"Unknown cache backend: {backend}")
