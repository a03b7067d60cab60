"""Tests for the cached BTC/USD reference price."""

from unittest.mock import AsyncMock

import httpx
import pytest

from src.parsers.btc_price import CACHE_KEY, BtcPriceClient


@pytest.mark.asyncio
async def test_price_parsed_and_cached(proxy, memory_store):
    client = BtcPriceClient(proxy, url="https://prices.test/simple", fallback=60000)
    client._client.get = AsyncMock(
        return_value=httpx.Response(
            200,
            json={"bitcoin": {"usd": 97123.5}},
            request=httpx.Request("GET", "https://prices.test/simple"),
        )
    )

    assert await client.get_price() == 97123.5
    assert await client.get_price() == 97123.5
    client._client.get.assert_awaited_once()

    entry = await memory_store.get(CACHE_KEY)
    assert entry.ttl == 60


@pytest.mark.asyncio
async def test_fallback_on_http_error(proxy):
    client = BtcPriceClient(proxy, url="https://prices.test/simple", fallback=55000)
    client._client.get = AsyncMock(side_effect=httpx.ConnectError("down"))

    assert await client.get_price() == 55000


@pytest.mark.asyncio
async def test_fallback_on_unexpected_payload(proxy):
    client = BtcPriceClient(proxy, url="https://prices.test/simple", fallback=55000)
    client._client.get = AsyncMock(
        return_value=httpx.Response(
            200,
            json={"ethereum": {"usd": 3000}},
            request=httpx.Request("GET", "https://prices.test/simple"),
        )
    )

    assert await client.get_price() == 55000
