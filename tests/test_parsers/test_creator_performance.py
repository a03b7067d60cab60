"""Tests for creator aggregation, confidence scoring and tiers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.parsers.creator_performance import (
    RETAINED_TOKENS,
    CreatorAggregator,
    ScoreWeights,
    compute_confidence_score,
    compute_creator_performance,
    confidence_tier,
)
from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.odin.models import OdinUser


def test_single_active_token_without_volume(make_token):
    perf = compute_creator_performance("alice", [make_token("t1", "alice", volume=0)])

    assert perf is not None
    assert perf.success_rate == 100
    assert perf.active_tokens == 1
    assert perf.confidence_score == pytest.approx(70.0)


def test_empty_token_set_returns_none():
    assert compute_creator_performance("alice", []) is None


def test_totals_and_weighted_score(make_token):
    tokens = [
        make_token("t1", "alice", volume=1000, holder_count=10, buy_count=5, sell_count=3),
        make_token("t2", "alice", volume=3000, holder_count=5, buy_count=2),
        make_token("t3", "alice", price=10, volume=0),  # inactive: low price
    ]
    perf = compute_creator_performance("alice", tokens)

    assert perf.total_tokens == 3
    assert perf.active_tokens == 2
    assert perf.total_volume == 4000
    assert perf.total_holders == 15
    assert perf.total_trades == 10
    assert perf.success_rate == pytest.approx(200 / 3)
    assert perf.weighted_score == pytest.approx(0.6 * (4000 / 3000) + 0.4 * (2 / 3))


def test_weighted_score_guards_zero_volume(make_token):
    perf = compute_creator_performance("alice", [make_token("t1", "alice", price=10)])
    assert perf.weighted_score == 0.0


@pytest.mark.parametrize(
    "args",
    [
        (0, 0, 0, 0),
        (100, 1e30, 10**9, 10**9),
        (250, 1e12, 5, 5),
        (-5, -100, -1, -1),
    ],
)
def test_confidence_score_bounded(args):
    assert 0 <= compute_confidence_score(*args) <= 100


def test_confidence_score_weights():
    # 10**5 volume -> volume sub-score 50; 99 holders -> ~66.6; 0 trades
    score = compute_confidence_score(50, 99999, 99, 0)
    assert score == pytest.approx(50 * 0.7 + 50 * 0.2 + 66.6 * 0.08)


def test_custom_weights():
    weights = ScoreWeights(success=1.0, volume=0, holders=0, trades=0)
    assert compute_confidence_score(42, 10**6, 10, 10, weights) == pytest.approx(42)


@pytest.mark.parametrize(
    ("score", "tier"),
    [
        (100, "legendary"),
        (99.9, "epic"),
        (90, "epic"),
        (80, "great"),
        (70, "okay"),
        (69.99, "neutral"),
        (60, "neutral"),
        (45, "meh"),
        (44.9, "scam"),
        (0, "scam"),
    ],
)
def test_confidence_tier_boundaries(score, tier):
    assert confidence_tier(score) == tier


def test_retains_top_tokens_by_price(make_token):
    tokens = [make_token(f"t{i}", "alice", price=1000 + i) for i in range(30)]
    perf = compute_creator_performance("alice", tokens)

    assert perf.total_tokens == 30
    assert len(perf.tokens) == RETAINED_TOKENS
    assert perf.tokens[0].id == "t29"


def test_identity_and_marketcap(make_token):
    user = OdinUser(principal="alice-principal", username="alice", image="img.png")
    perf = compute_creator_performance(
        "alice-principal",
        [make_token("t1", "alice-principal", marketcap=2e11)],
        user,
        btc_usd=50000,
    )
    assert perf.username == "alice"
    assert perf.image == "img.png"
    assert perf.generated_marketcap_btc == pytest.approx(2.0)
    assert perf.generated_marketcap_usd == pytest.approx(100000)

    dumped = perf.model_dump(by_alias=True)
    assert dumped["generatedMarketcapBTC"] == pytest.approx(2.0)
    assert "confidenceScore" in dumped


def test_username_falls_back_to_principal_prefix(make_token):
    perf = compute_creator_performance(
        "abcdefghijkl", [make_token("t1", "abcdefghijkl")], OdinUser(principal="abcdefghijkl")
    )
    assert perf.username == "abcdefgh"


def _feed(tokens=None, user=None, tokens_error=None, user_error=None) -> MagicMock:
    feed = MagicMock()
    feed.get_creator_tokens = AsyncMock(return_value=tokens or [], side_effect=tokens_error)
    feed.get_user = AsyncMock(return_value=user, side_effect=user_error)
    return feed


@pytest.mark.asyncio
async def test_aggregator_scores_creator(make_token):
    feed = _feed(tokens=[make_token("t1", "alice")], user=OdinUser(principal="alice"))
    btc = MagicMock()
    btc.get_price = AsyncMock(return_value=70000.0)
    aggregator = CreatorAggregator(feed, btc, tokens_limit=50)

    perf = await aggregator.aggregate("alice", force_refresh=True)

    assert perf is not None
    assert perf.principal == "alice"
    feed.get_creator_tokens.assert_awaited_once_with("alice", 50, force_refresh=True)


@pytest.mark.asyncio
async def test_aggregator_none_without_tokens():
    aggregator = CreatorAggregator(_feed(tokens=[]))
    assert await aggregator.aggregate("alice") is None


@pytest.mark.asyncio
async def test_aggregator_none_on_upstream_failure(make_token):
    failing_tokens = CreatorAggregator(_feed(tokens_error=UpstreamFetchError("HTTP 503")))
    assert await failing_tokens.aggregate("alice") is None

    failing_user = CreatorAggregator(
        _feed(tokens=[make_token("t1", "alice")], user_error=UpstreamFetchError("HTTP 404"))
    )
    assert await failing_user.aggregate("alice") is None


@pytest.mark.asyncio
async def test_aggregator_ignores_blank_principal():
    feed = _feed()
    assert await CreatorAggregator(feed).aggregate("") is None
    feed.get_creator_tokens.assert_not_awaited()
