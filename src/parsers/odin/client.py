"""Odin.fun REST client with rate limiting and bounded retry."""

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger

from src.parsers.odin import endpoints
from src.parsers.odin.exceptions import OdinRateLimitError, UpstreamFetchError
from src.parsers.rate_limiter import RateLimiter

MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # attempt N waits N * base before the next try


class OdinClient:
    """Async HTTP client for the Odin.fun public API (no auth required).

    Every method returns the decoded JSON payload verbatim; parsing into
    models is the caller's job so the proxy can cache raw responses.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 5.0,
        base_url: str = endpoints.BASE_URL,
        timeout: float = 10.0,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET with retry on transport errors, 429 and 5xx.

        Other 4xx responses fail immediately. Raises UpstreamFetchError once
        all attempts are used up.
        """
        last_error: UpstreamFetchError | None = None
        for attempt in range(1, self._max_retries + 1):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.get(path, params=params)
            except httpx.HTTPError as e:
                logger.warning(
                    f"[ODIN] {type(e).__name__} on {path} (attempt {attempt}/{self._max_retries})"
                )
                last_error = UpstreamFetchError(f"{type(e).__name__}: {path}")
                last_error.__cause__ = e
            else:
                status = response.status_code
                if status == 429:
                    logger.debug(f"[ODIN] 429 rate limited on {path} (attempt {attempt})")
                    last_error = OdinRateLimitError(f"Rate limited: {path}")
                elif status >= 500:
                    logger.warning(f"[ODIN] HTTP {status} on {path} (attempt {attempt})")
                    last_error = UpstreamFetchError(f"HTTP {status}: {path}")
                elif status >= 400:
                    raise UpstreamFetchError(f"HTTP {status}: {path}")
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise UpstreamFetchError(f"Invalid JSON from {path}") from e

            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_base_delay * attempt)

        assert last_error is not None
        logger.error(f"[ODIN] Giving up on {path} after {self._max_retries} attempts")
        raise last_error

    # === Public endpoints ===

    async def get_tokens(self, sort: str = "marketcap", limit: int = 30, page: int = 1) -> Any:
        return await self.get_json(
            endpoints.TOKENS,
            params={"sort": f"{sort}:desc", "page": page, "limit": limit},
        )

    async def get_creator_tokens(self, principal: str, limit: int = 20) -> Any:
        return await self.get_json(
            endpoints.TOKENS, params={"creator": principal, "limit": limit}
        )

    async def get_token(self, token_id: str) -> Any:
        return await self.get_json(endpoints.TOKEN.format(token_id=token_id))

    async def get_token_trades(self, token_id: str, limit: int = 50) -> Any:
        return await self.get_json(
            endpoints.TOKEN_TRADES.format(token_id=token_id), params={"limit": limit}
        )

    async def get_user(self, principal: str) -> Any:
        return await self.get_json(endpoints.USER.format(principal=principal))

    async def get_user_balances(
        self, principal: str, lp: str = "true", limit: int = 999999
    ) -> Any:
        # timestamp defeats the upstream CDN cache; our own cache key ignores it
        return await self.get_json(
            endpoints.USER_BALANCES.format(principal=principal),
            params={
                "lp": lp,
                "limit": limit,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

    async def close(self) -> None:
        await self._client.aclose()
