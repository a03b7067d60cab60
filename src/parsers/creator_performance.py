"""Creator performance aggregation and confidence scoring.

Confidence score (0-100) blends four sub-scores:
- Success: share of the creator's tokens that are still active (70%)
- Volume: log10-dampened total raw volume (20%)
- Holders: log10-dampened total holder count (8%)
- Trades: log10-dampened buy+sell count (2%)

Volume, holders and trades are heavy-tailed, hence the log scaling.
"""

import math
from dataclasses import dataclass

from loguru import logger

from config.settings import settings
from src.parsers.btc_price import BtcPriceClient
from src.parsers.odin.exceptions import UpstreamFetchError
from src.parsers.odin.feed import OdinFeed
from src.parsers.odin.models import CreatorPerformance, OdinToken, OdinUser

RETAINED_TOKENS = 25
SATS_PER_BTC = 100_000_000
RAW_PER_SAT = 1000

TIER_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (100, "legendary"),
    (90, "epic"),
    (80, "great"),
    (70, "okay"),
    (60, "neutral"),
    (45, "meh"),
)
LOWEST_TIER = "scam"
CONFIDENCE_TIERS: tuple[str, ...] = tuple(name for _, name in TIER_THRESHOLDS) + (LOWEST_TIER,)


@dataclass(frozen=True)
class ScoreWeights:
    success: float = 0.70
    volume: float = 0.20
    holders: float = 0.08
    trades: float = 0.02

    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        return cls(
            success=settings.score_weight_success,
            volume=settings.score_weight_volume,
            holders=settings.score_weight_holders,
            trades=settings.score_weight_trades,
        )


def confidence_tier(score: float) -> str:
    """Map a confidence score to its tier name (lower bounds inclusive)."""
    for threshold, name in TIER_THRESHOLDS:
        if score >= threshold:
            return name
    return LOWEST_TIER


def raw_to_btc(raw: float) -> float:
    return raw / SATS_PER_BTC / RAW_PER_SAT


def compute_confidence_score(
    success_rate: float,
    total_volume: float,
    total_holders: int,
    total_trades: int,
    weights: ScoreWeights | None = None,
) -> float:
    w = weights or ScoreWeights()
    success_score = min(100.0, success_rate)
    volume_score = min(100.0, math.log10(max(total_volume, 0) + 1) * 10)
    holders_score = min(100.0, math.log10(max(total_holders, 0) + 1) * 33.3)
    trades_score = min(100.0, math.log10(max(total_trades, 0) + 1) * 33.3)

    score = (
        success_score * w.success
        + volume_score * w.volume
        + holders_score * w.holders
        + trades_score * w.trades
    )
    return max(0.0, min(100.0, score))


def compute_creator_performance(
    principal: str,
    tokens: list[OdinToken],
    user: OdinUser | None = None,
    *,
    btc_usd: float = 60000.0,
    weights: ScoreWeights | None = None,
) -> CreatorPerformance | None:
    """Aggregate a creator's (already classified) tokens.

    Returns None for an empty token set.
    """
    if not tokens:
        return None

    total_tokens = len(tokens)
    active_tokens = sum(1 for t in tokens if t.is_active)
    total_volume = sum(t.volume for t in tokens if t.volume > 0)
    max_token_volume = max((t.volume for t in tokens), default=0)
    total_holders = sum(t.holder_count for t in tokens)
    total_trades = sum(t.buy_count + t.sell_count for t in tokens)
    total_marketcap = sum(t.marketcap for t in tokens)

    success_rate = active_tokens / total_tokens * 100
    weighted_score = 0.6 * (total_volume / max(max_token_volume, 1)) + 0.4 * (
        active_tokens / total_tokens
    )
    confidence_score = compute_confidence_score(
        success_rate, total_volume, total_holders, total_trades, weights
    )

    generated_btc = raw_to_btc(total_marketcap)
    retained = sorted(tokens, key=lambda t: t.price_in_sats, reverse=True)[:RETAINED_TOKENS]

    username = (user.username if user else None) or principal[:8]
    return CreatorPerformance(
        principal=principal,
        username=username,
        image=user.image if user else None,
        total_tokens=total_tokens,
        active_tokens=active_tokens,
        total_volume=total_volume,
        btc_volume=raw_to_btc(total_volume),
        success_rate=success_rate,
        weighted_score=weighted_score,
        confidence_score=confidence_score,
        total_holders=total_holders,
        total_trades=total_trades,
        last_token_created=max(t.created_time for t in tokens),
        total_marketcap=total_marketcap,
        generated_marketcap_btc=generated_btc,
        generated_marketcap_usd=generated_btc * btc_usd,
        tokens=retained,
    )


class CreatorAggregator:
    """Fetches a creator's tokens and identity through the feed and scores them.

    ``aggregate`` never raises for missing data: no tokens, a failed
    identity lookup, or an upstream error all yield None.
    """

    def __init__(
        self,
        feed: OdinFeed,
        btc_price: BtcPriceClient | None = None,
        *,
        weights: ScoreWeights | None = None,
        tokens_limit: int | None = None,
    ) -> None:
        self._feed = feed
        self._btc_price = btc_price
        self._weights = weights or ScoreWeights.from_settings()
        self._tokens_limit = tokens_limit or settings.creator_tokens_limit

    async def aggregate(
        self, principal: str, *, force_refresh: bool = False
    ) -> CreatorPerformance | None:
        if not principal:
            return None

        try:
            tokens = await self._feed.get_creator_tokens(
                principal, self._tokens_limit, force_refresh=force_refresh
            )
        except UpstreamFetchError as e:
            logger.warning(f"[CREATOR] Token fetch failed for {principal[:12]}: {e}")
            return None
        if not tokens:
            logger.debug(f"[CREATOR] No tokens for {principal[:12]}")
            return None

        try:
            user = await self._feed.get_user(principal)
        except UpstreamFetchError as e:
            logger.debug(f"[CREATOR] Identity lookup failed for {principal[:12]}: {e}")
            return None

        btc_usd = (
            await self._btc_price.get_price()
            if self._btc_price
            else settings.btc_usd_fallback
        )
        perf = compute_creator_performance(
            principal, tokens, user, btc_usd=btc_usd, weights=self._weights
        )
        if perf is not None:
            logger.debug(
                f"[CREATOR] {principal[:12]} tokens={perf.total_tokens} "
                f"active={perf.active_tokens} confidence={perf.confidence_score:.1f}"
            )
        return perf
