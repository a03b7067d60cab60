"""BTC/USD reference price via CoinGecko, cached through the proxy.

Only used to express creator market caps in USD, so a stale or fallback
price is acceptable.
"""

from typing import Any

import httpx
from loguru import logger

from config.settings import settings
from src.cache.proxy import CachingProxy, TtlClass
from src.parsers.odin.exceptions import UpstreamFetchError

CACHE_KEY = "btc_price_usd"


class BtcPriceClient:
    def __init__(
        self,
        proxy: CachingProxy,
        url: str | None = None,
        fallback: float | None = None,
    ) -> None:
        self._proxy = proxy
        self._url = url or settings.btc_price_url
        self._fallback = settings.btc_usd_fallback if fallback is None else fallback
        self._client = httpx.AsyncClient(timeout=10.0)

    async def _fetch(self) -> Any:
        try:
            resp = await self._client.get(
                self._url, params={"ids": "bitcoin", "vs_currencies": "usd"}
            )
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"BTC price fetch failed: {e}") from e

    async def get_price(self) -> float:
        """Current BTC/USD, or the configured fallback when unavailable."""
        try:
            payload = await self._proxy.resolve(CACHE_KEY, self._fetch, TtlClass.BTC_PRICE)
        except UpstreamFetchError as e:
            logger.debug(f"[BTC_PRICE] Using fallback ${self._fallback:.0f}: {e}")
            return self._fallback

        try:
            price = float(payload["bitcoin"]["usd"])
        except (KeyError, TypeError, ValueError):
            logger.debug(f"[BTC_PRICE] Unexpected payload, using fallback: {payload!r}")
            return self._fallback
        return price if price > 0 else self._fallback

    async def close(self) -> None:
        await self._client.aclose()
