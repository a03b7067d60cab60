"""Odin.fun proxy routes: upstream payloads served through the cache."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings import settings
from src.api.app import limiter
from src.api.dependencies import get_feed, get_proxy
from src.cache.proxy import CachingProxy
from src.parsers.odin.feed import OdinFeed

router = APIRouter(prefix="/api", tags=["odin"])


class InvalidateRequest(BaseModel):
    key: str | None = None


@router.get("/tokens")
async def list_tokens(
    feed: OdinFeed = Depends(get_feed),
    sort: str = Query("marketcap", max_length=30),
    limit: int = Query(30, ge=1, le=200),
) -> Any:
    """Token listing; ``sort=created_time`` uses the short recent TTL."""
    return await feed.tokens_payload(sort, limit)


@router.get("/token/{token_id}")
async def token_detail(token_id: str, feed: OdinFeed = Depends(get_feed)) -> Any:
    return await feed.token_payload(token_id)


@router.get("/token/{token_id}/trades")
async def token_trades(
    token_id: str,
    feed: OdinFeed = Depends(get_feed),
    limit: int = Query(50, ge=1, le=500),
) -> Any:
    return await feed.trades_payload(token_id, limit)


@router.get("/token/{token_id}/holders")
async def token_holders(token_id: str, feed: OdinFeed = Depends(get_feed)) -> Any:
    """Holder snapshot only (id, name, holder_count, holder_top, holder_dev)."""
    return await feed.holders_payload(token_id)


@router.get("/creator/{principal}/tokens")
async def creator_tokens(
    principal: str,
    feed: OdinFeed = Depends(get_feed),
    limit: int = Query(20, ge=1, le=200),
) -> Any:
    return await feed.creator_tokens_payload(principal, limit)


@router.get("/user/{principal}")
async def user_detail(principal: str, feed: OdinFeed = Depends(get_feed)) -> Any:
    return await feed.user_payload(principal)


@router.get("/user/{principal}/balances")
async def user_balances(
    principal: str,
    feed: OdinFeed = Depends(get_feed),
    lp: str = Query("true", pattern="^(true|false)$"),
    limit: int = Query(999999, ge=1),
) -> Any:
    return await feed.user_balances_payload(principal, lp, limit)


@router.get("/recent-tokens")
async def recent_tokens(
    feed: OdinFeed = Depends(get_feed),
    limit: int = Query(20, ge=1, le=200),
) -> Any:
    return await feed.recent_tokens_payload(limit)


@router.get("/newest-tokens")
async def newest_tokens(feed: OdinFeed = Depends(get_feed)) -> Any:
    return await feed.newest_tokens_payload()


@router.get("/older-recent-tokens")
async def older_recent_tokens(
    feed: OdinFeed = Depends(get_feed),
    limit: int = Query(20, ge=1, le=200),
) -> Any:
    return await feed.older_recent_tokens_payload(limit)


@router.post("/invalidate-cache")
@limiter.limit(settings.invalidate_rate_limit)
async def invalidate_cache(
    request: Request,
    body: InvalidateRequest | None = None,
    proxy: CachingProxy = Depends(get_proxy),
) -> Any:
    """Evict one cache entry by key (administrative cache-busting)."""
    if body is None or not body.key:
        return JSONResponse(status_code=400, content={"error": "Cache key is required"})
    await proxy.invalidate(body.key)
    return {"success": True, "message": f"Cache invalidated for key: {body.key}"}
