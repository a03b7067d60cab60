"""Tests for creator ranking and tier filtering."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.ranking import filter_by_tier, find_top_creators, rank_creators


def test_rank_by_confidence(make_creator):
    creators = [
        make_creator("low", confidence=20),
        make_creator("high", confidence=95),
        make_creator("mid", confidence=65),
    ]
    ranked = rank_creators(creators)

    assert [c.principal for c in ranked] == ["high", "mid", "low"]
    assert [c.rank for c in ranked] == [1, 2, 3]
    assert creators[0].rank is None


def test_rank_by_volume_with_limit(make_creator):
    creators = [make_creator(f"c{i}", volume=i * 100) for i in range(5)]
    ranked = rank_creators(creators, sort_by="volume", limit=2)
    assert [c.principal for c in ranked] == ["c4", "c3"]


def test_unknown_sort_falls_back_to_confidence(make_creator):
    creators = [make_creator("a", confidence=10), make_creator("b", confidence=90)]
    assert rank_creators(creators, sort_by="bogus")[0].principal == "b"


def test_filter_by_tier(make_creator):
    creators = [
        make_creator("legend", confidence=100),
        make_creator("okay", confidence=72),
        make_creator("scam", confidence=10),
    ]
    assert [c.principal for c in filter_by_tier(creators, "okay")] == ["okay"]
    assert len(filter_by_tier(creators, "all")) == 3
    assert filter_by_tier(creators, "epic") == []


@pytest.mark.asyncio
async def test_find_top_creators_aggregates_each_creator_once(make_token, make_creator):
    feed = MagicMock()
    feed.get_top_tokens = AsyncMock(
        return_value=[
            make_token("t1", "alice"),
            make_token("t2", "bob"),
            make_token("t3", "alice"),
            make_token("t4", "ghost"),
        ]
    )
    records = {
        "alice": make_creator("alice", confidence=50),
        "bob": make_creator("bob", confidence=85),
        "ghost": None,
    }
    aggregator = MagicMock()
    aggregator.aggregate = AsyncMock(side_effect=lambda p, force_refresh=False: records[p])

    ranked = await find_top_creators(feed, aggregator, limit=10)

    assert [c.principal for c in ranked] == ["bob", "alice"]
    assert [c.rank for c in ranked] == [1, 2]
    assert aggregator.aggregate.await_count == 3


@pytest.mark.asyncio
async def test_find_top_creators_tier_ranks_contiguous(make_token, make_creator):
    feed = MagicMock()
    feed.get_top_tokens = AsyncMock(
        return_value=[make_token("t1", "a"), make_token("t2", "b"), make_token("t3", "c")]
    )
    records = {
        "a": make_creator("a", confidence=92),
        "b": make_creator("b", confidence=30),
        "c": make_creator("c", confidence=95),
    }
    aggregator = MagicMock()
    aggregator.aggregate = AsyncMock(side_effect=lambda p, force_refresh=False: records[p])

    ranked = await find_top_creators(feed, aggregator, tier="epic")

    assert [(c.principal, c.rank) for c in ranked] == [("c", 1), ("a", 2)]


@pytest.mark.asyncio
async def test_find_top_creators_empty_on_upstream_error():
    feed = MagicMock()
    feed.get_top_tokens = AsyncMock(side_effect=UpstreamFetchError("HTTP 503"))
    assert await find_top_creators(feed, MagicMock()) == []
