"""Token activity classification.

A token is active when its price is above a dust floor and it has traded
recently. Applied to every token the feed returns, so activity state is
the same whichever endpoint the token came from.
"""

from datetime import datetime, timedelta

from src.parsers.odin.models import OdinToken

RAW_PRICE_PER_SAT = 1000
MIN_PRICE_SATS = 0.15
MAX_IDLE_DAYS = 8

REASON_LOW_PRICE = "Low price"
REASON_NO_RECENT_ACTIVITY = "No recent activity"


def price_in_sats(raw_price: float) -> float:
    return raw_price / RAW_PRICE_PER_SAT


def price_change_24h(price: float, price_1d: float) -> float:
    if price_1d > 0:
        return (price - price_1d) / price_1d * 100
    return 0.0


def classify(
    token: OdinToken,
    now: datetime,
    *,
    min_price_sats: float = MIN_PRICE_SATS,
    max_idle_days: int = MAX_IDLE_DAYS,
) -> tuple[bool, str]:
    """Return (is_active, reason). Reason is empty iff the token is active."""
    reasons: list[str] = []
    if price_in_sats(token.price) < min_price_sats:
        reasons.append(REASON_LOW_PRICE)

    cutoff = now - timedelta(days=max_idle_days)
    if token.last_action_time is None or token.last_action_time <= cutoff:
        reasons.append(REASON_NO_RECENT_ACTIVITY)

    return not reasons, " & ".join(reasons)


def with_activity(
    token: OdinToken,
    now: datetime,
    *,
    min_price_sats: float = MIN_PRICE_SATS,
    max_idle_days: int = MAX_IDLE_DAYS,
) -> OdinToken:
    """Copy of ``token`` with the derived price and activity fields filled in."""
    is_active, reason = classify(
        token, now, min_price_sats=min_price_sats, max_idle_days=max_idle_days
    )
    return token.model_copy(
        update={
            "price_in_sats": price_in_sats(token.price),
            "price_change_24h": price_change_24h(token.price, token.price_1d),
            "is_active": is_active,
            "inactive_reason": reason,
        }
    )
