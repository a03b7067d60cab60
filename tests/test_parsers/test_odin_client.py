"""Tests for the Odin.fun HTTP client retry policy."""

from unittest.mock import AsyncMock

import httpx
import pytest

from src.parsers.odin.client import OdinClient
from src.parsers.odin.exceptions import OdinRateLimitError, UpstreamFetchError


@pytest.fixture
def sleep_mock(monkeypatch) -> AsyncMock:
    mock = AsyncMock()
    monkeypatch.setattr("src.parsers.odin.client.asyncio.sleep", mock)
    return mock


@pytest.fixture
def client() -> OdinClient:
    return OdinClient(max_rps=0, retry_base_delay=1.0)


@pytest.mark.asyncio
async def test_success_returns_json_verbatim(client, sleep_mock):
    payload = {"data": [{"id": "2jjj", "price": 1500}], "count": 1}
    client._client.get = AsyncMock(return_value=httpx.Response(200, json=payload))

    result = await client.get_tokens(sort="marketcap", limit=30)

    assert result == payload
    _, kwargs = client._client.get.call_args
    assert kwargs["params"] == {"sort": "marketcap:desc", "page": 1, "limit": 30}
    sleep_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_server_errors_retried_with_linear_backoff(client, sleep_mock):
    client._client.get = AsyncMock(
        side_effect=[
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={"id": "2jjj"}),
        ]
    )

    assert await client.get_token("2jjj") == {"id": "2jjj"}
    assert client._client.get.await_count == 3
    assert [c.args[0] for c in sleep_mock.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_after_three_attempts(client, sleep_mock):
    client._client.get = AsyncMock(return_value=httpx.Response(500))

    with pytest.raises(UpstreamFetchError, match="HTTP 500"):
        await client.get_user("abc")
    assert client._client.get.await_count == 3
    assert sleep_mock.await_count == 2


@pytest.mark.asyncio
async def test_transport_error_retried(client, sleep_mock):
    client._client.get = AsyncMock(
        side_effect=[httpx.ConnectTimeout("slow"), httpx.Response(200, json=[])]
    )
    assert await client.get_token_trades("2jjj") == []
    assert client._client.get.await_count == 2


@pytest.mark.asyncio
async def test_rate_limited_raises_after_retries(client, sleep_mock):
    client._client.get = AsyncMock(return_value=httpx.Response(429))
    with pytest.raises(OdinRateLimitError):
        await client.get_creator_tokens("abc")
    assert client._client.get.await_count == 3


@pytest.mark.asyncio
async def test_client_error_not_retried(client, sleep_mock):
    """404 and other 4xx fail on the first attempt."""
    client._client.get = AsyncMock(return_value=httpx.Response(404))

    with pytest.raises(UpstreamFetchError, match="HTTP 404"):
        await client.get_token("missing")
    assert client._client.get.await_count == 1
    sleep_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_json_is_upstream_error(client, sleep_mock):
    client._client.get = AsyncMock(return_value=httpx.Response(200, content=b"<html>"))
    with pytest.raises(UpstreamFetchError, match="Invalid JSON"):
        await client.get_token("2jjj")


@pytest.mark.asyncio
async def test_user_balances_sends_cache_buster(client, sleep_mock):
    client._client.get = AsyncMock(return_value=httpx.Response(200, json={"data": []}))

    await client.get_user_balances("abc")

    args, kwargs = client._client.get.call_args
    assert args[0] == "/user/abc/balances"
    assert kwargs["params"]["lp"] == "true"
    assert "timestamp" in kwargs["params"]
