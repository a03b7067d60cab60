"""Creator leaderboard and live recent-tokens feed."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_aggregator, get_feed, get_sync
from src.parsers.creator_performance import CreatorAggregator
from src.parsers.odin.feed import OdinFeed
from src.parsers.ranking import find_top_creators
from src.parsers.recent_sync import RecentTokensSync

router = APIRouter(prefix="/api", tags=["creators"])

TIER_PATTERN = "^(all|legendary|epic|great|okay|neutral|meh|scam)$"
SORT_PATTERN = "^(confidence|volume|active|weighted|success|tokens|holders)$"


@router.get("/creators")
async def list_creators(
    feed: OdinFeed = Depends(get_feed),
    aggregator: CreatorAggregator = Depends(get_aggregator),
    sort: str = Query("confidence", pattern=SORT_PATTERN),
    limit: int = Query(30, ge=1, le=200),
    tier: str = Query("all", pattern=TIER_PATTERN),
    force: bool = Query(False, description="Bypass cached creator token sets"),
) -> dict[str, Any]:
    """Creators behind the top tokens, ranked by the selected metric."""
    creators = await find_top_creators(
        feed, aggregator, limit=limit, sort_by=sort, tier=tier, force_refresh=force
    )
    return {
        "data": [c.model_dump(mode="json", by_alias=True) for c in creators],
        "count": len(creators),
    }


@router.get("/live-tokens")
async def live_tokens(
    sync: RecentTokensSync = Depends(get_sync),
    tier: str = Query("all", pattern=TIER_PATTERN),
) -> dict[str, Any]:
    """Last committed merged view of recently launched tokens."""
    snapshot = sync.snapshot
    items = snapshot.filtered(tier)
    return {
        "cycle": snapshot.cycle,
        "lastUpdated": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
        "newTokenIds": sorted(snapshot.new_token_ids),
        "data": [item.model_dump(mode="json", by_alias=True) for item in items],
        "count": len(items),
    }
