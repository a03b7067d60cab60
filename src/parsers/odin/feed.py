"""Odin.fun resources resolved through the caching proxy.

One place decides the cache key, upstream call and TTL class of every
logical resource. The ``*_payload`` methods return upstream JSON verbatim
(served by the HTTP proxy routes); the ``get_*`` methods parse it into
models and run the activity classifier on every token.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError

from config.settings import settings
from src.cache.proxy import CachingProxy, TtlClass
from src.parsers.activity import with_activity
from src.parsers.odin import endpoints
from src.parsers.odin.client import OdinClient
from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.odin.models import HolderSnapshot, OdinToken, OdinTrade, OdinUser


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _data_list(payload: Any) -> list[Any]:
    """Listing endpoints wrap items as ``{"data": [...], "count": N}``."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data", [])
        return data if isinstance(data, list) else []
    return []


class OdinFeed:
    def __init__(
        self,
        proxy: CachingProxy,
        client: OdinClient,
        now: Callable[[], datetime] = _utc_now,
        min_price_sats: float | None = None,
        max_idle_days: int | None = None,
    ) -> None:
        self._proxy = proxy
        self._client = client
        self._now = now
        self._min_price_sats = (
            settings.activity_min_price_sats if min_price_sats is None else min_price_sats
        )
        self._max_idle_days = (
            settings.activity_max_idle_days if max_idle_days is None else max_idle_days
        )

    @property
    def proxy(self) -> CachingProxy:
        return self._proxy

    # === Raw payloads (cache key + TTL class per resource) ===

    async def tokens_payload(self, sort: str = "marketcap", limit: int = 30) -> Any:
        ttl_class = TtlClass.RECENT if sort == "created_time" else TtlClass.DEFAULT
        return await self._proxy.resolve(
            f"tokens_{sort}_{limit}",
            lambda: self._client.get_tokens(sort=sort, limit=limit),
            ttl_class,
        )

    async def token_payload(self, token_id: str) -> Any:
        return await self._proxy.resolve(
            f"token_{token_id}", lambda: self._client.get_token(token_id)
        )

    async def trades_payload(self, token_id: str, limit: int = 50) -> Any:
        return await self._proxy.resolve(
            f"token_trades_{token_id}_{limit}",
            lambda: self._client.get_token_trades(token_id, limit=limit),
            TtlClass.TRADES,
        )

    async def creator_tokens_payload(
        self, principal: str, limit: int = 20, *, force: bool = False
    ) -> Any:
        return await self._proxy.resolve(
            f"creator_tokens_{principal}_{limit}",
            lambda: self._client.get_creator_tokens(principal, limit=limit),
            TtlClass.DEFAULT,
            force=force,
        )

    async def user_payload(self, principal: str) -> Any:
        return await self._proxy.resolve(
            f"user_{principal}", lambda: self._client.get_user(principal)
        )

    async def user_balances_payload(
        self, principal: str, lp: str = "true", limit: int = 999999
    ) -> Any:
        return await self._proxy.resolve(
            f"user_balances_{principal}",
            lambda: self._client.get_user_balances(principal, lp=lp, limit=limit),
        )

    async def recent_tokens_payload(self, limit: int = 20) -> Any:
        return await self._proxy.resolve(
            f"recent_tokens_{limit}",
            lambda: self._client.get_tokens(sort="created_time", limit=limit),
            TtlClass.RECENT,
        )

    async def newest_tokens_payload(self) -> Any:
        limit = endpoints.NEWEST_TOKENS_LIMIT
        return await self._proxy.resolve(
            f"newest_tokens_{limit}",
            lambda: self._client.get_tokens(sort="created_time", limit=limit),
            TtlClass.NEWEST,
        )

    async def older_recent_tokens_payload(
        self, limit: int = endpoints.OLDER_TOKENS_LIMIT
    ) -> Any:
        return await self._proxy.resolve(
            f"older_recent_tokens_{limit}",
            lambda: self._client.get_tokens(sort="created_time", limit=limit),
            TtlClass.OLDER,
        )

    async def holders_payload(self, token_id: str) -> dict[str, Any]:
        async def _fetch_reduced() -> dict[str, Any]:
            raw = await self._client.get_token(token_id)
            if not isinstance(raw, dict):
                raise UpstreamFetchError(f"Unexpected token payload for {token_id}")
            try:
                snapshot = HolderSnapshot.model_validate(raw)
            except ValidationError as e:
                raise UpstreamFetchError(f"Malformed token payload for {token_id}") from e
            return snapshot.model_dump()

        return await self._proxy.resolve(
            f"token_holders_{token_id}", _fetch_reduced, TtlClass.HOLDERS
        )

    # === Parsed models ===

    def _classify(self, token: OdinToken) -> OdinToken:
        return with_activity(
            token,
            self._now(),
            min_price_sats=self._min_price_sats,
            max_idle_days=self._max_idle_days,
        )

    def _parse_tokens(self, payload: Any, source: str) -> list[OdinToken]:
        tokens: list[OdinToken] = []
        for item in _data_list(payload):
            try:
                tokens.append(self._classify(OdinToken.model_validate(item)))
            except ValidationError as e:
                token_id = item.get("id", "?") if isinstance(item, dict) else "?"
                logger.debug(f"[ODIN] Skipping malformed token {token_id} from {source}: {e}")
        return tokens

    async def get_top_tokens(self, limit: int = 30, sort: str = "marketcap") -> list[OdinToken]:
        return self._parse_tokens(await self.tokens_payload(sort, limit), "tokens")

    async def get_creator_tokens(
        self, principal: str, limit: int = 20, *, force_refresh: bool = False
    ) -> list[OdinToken]:
        payload = await self.creator_tokens_payload(principal, limit, force=force_refresh)
        return self._parse_tokens(payload, f"creator {principal[:12]}")

    async def get_recent_tokens(self, limit: int = 20) -> list[OdinToken]:
        return self._parse_tokens(await self.recent_tokens_payload(limit), "recent")

    async def get_newest_tokens(self) -> list[OdinToken]:
        return self._parse_tokens(await self.newest_tokens_payload(), "newest")

    async def get_older_recent_tokens(
        self, limit: int = endpoints.OLDER_TOKENS_LIMIT
    ) -> list[OdinToken]:
        return self._parse_tokens(await self.older_recent_tokens_payload(limit), "older")

    async def get_token(self, token_id: str) -> OdinToken:
        payload = await self.token_payload(token_id)
        try:
            return self._classify(OdinToken.model_validate(payload))
        except ValidationError as e:
            raise UpstreamFetchError(f"Malformed token payload for {token_id}") from e

    async def get_token_trades(self, token_id: str, limit: int = 50) -> list[OdinTrade]:
        trades: list[OdinTrade] = []
        for item in _data_list(await self.trades_payload(token_id, limit)):
            try:
                trades.append(OdinTrade.model_validate(item))
            except ValidationError:
                continue
        return trades

    async def get_user(self, principal: str) -> OdinUser:
        payload = await self.user_payload(principal)
        try:
            return OdinUser.model_validate(payload)
        except ValidationError as e:
            raise UpstreamFetchError(f"Malformed user payload for {principal}") from e

    async def get_holder_snapshot(self, token_id: str) -> HolderSnapshot:
        return HolderSnapshot.model_validate(await self.holders_payload(token_id))
