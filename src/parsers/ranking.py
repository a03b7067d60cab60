"""Creator ranking and tier filtering over already-aggregated data."""

from collections.abc import Callable, Iterable

from loguru import logger

from src.parsers.creator_performance import CreatorAggregator, confidence_tier
from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.odin.feed import OdinFeed
from src.parsers.odin.models import CreatorPerformance

SORT_KEYS: dict[str, Callable[[CreatorPerformance], float]] = {
    "confidence": lambda c: c.confidence_score,
    "volume": lambda c: c.total_volume,
    "active": lambda c: c.active_tokens,
    "weighted": lambda c: c.weighted_score,
    "success": lambda c: c.success_rate,
    "tokens": lambda c: c.total_tokens,
    "holders": lambda c: c.total_holders,
}
DEFAULT_SORT = "confidence"


def rank_creators(
    creators: Iterable[CreatorPerformance],
    sort_by: str = DEFAULT_SORT,
    limit: int | None = None,
) -> list[CreatorPerformance]:
    """Sort descending by ``sort_by`` and assign contiguous 1-based ranks."""
    key = SORT_KEYS.get(sort_by, SORT_KEYS[DEFAULT_SORT])
    ordered = sorted(creators, key=key, reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    return [c.model_copy(update={"rank": i}) for i, c in enumerate(ordered, start=1)]


def filter_by_tier(
    creators: Iterable[CreatorPerformance], tier: str = "all"
) -> list[CreatorPerformance]:
    if tier == "all":
        return list(creators)
    return [c for c in creators if confidence_tier(c.confidence_score) == tier]


async def find_top_creators(
    feed: OdinFeed,
    aggregator: CreatorAggregator,
    *,
    limit: int = 200,
    sort_by: str = DEFAULT_SORT,
    tier: str = "all",
    source_limit: int = 20,
    force_refresh: bool = False,
) -> list[CreatorPerformance]:
    """Rank the creators behind the current top tokens by market cap.

    Each distinct creator is aggregated once; creators without data are
    left out. Tier filtering happens before ranking so ranks stay
    contiguous within the returned list.
    """
    try:
        tokens = await feed.get_top_tokens(limit=source_limit, sort="marketcap")
    except UpstreamFetchError as e:
        logger.warning(f"[RANKING] Top tokens unavailable: {e}")
        return []

    creators: list[CreatorPerformance] = []
    for principal in dict.fromkeys(t.creator for t in tokens if t.creator):
        perf = await aggregator.aggregate(principal, force_refresh=force_refresh)
        if perf is not None:
            creators.append(perf)

    ranked = rank_creators(filter_by_tier(creators, tier), sort_by, limit)
    logger.info(f"[RANKING] {len(ranked)} creators ranked by {sort_by} (tier={tier})")
    return ranked
