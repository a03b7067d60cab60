"""FastAPI dependency injection: shared runtime services."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.api.service_registry import ServiceRegistry
from src.cache.proxy import CachingProxy
from src.parsers.creator_performance import CreatorAggregator
from src.parsers.odin.feed import OdinFeed
from src.parsers.recent_sync import RecentTokensSync


def get_services(request: Request) -> ServiceRegistry:
    """Return the registry attached by ``create_app``."""
    return request.app.state.services


def get_proxy(request: Request) -> CachingProxy:
    return get_services(request).proxy


def get_feed(request: Request) -> OdinFeed:
    return get_services(request).feed


def get_aggregator(request: Request) -> CreatorAggregator:
    return get_services(request).aggregator


def get_sync(request: Request) -> RecentTokensSync:
    """The recent-tokens pipeline, or 503 when it is disabled."""
    sync = get_services(request).sync
    if sync is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recent tokens sync is disabled",
        )
    return sync
