"""Shared test fixtures."""

from collections.abc import Callable
from typing import Any

import pytest

from src.cache.proxy import CachingProxy, TtlPolicy
from src.cache.store import MemoryCacheStore
from src.parsers.activity import with_activity
from src.parsers.odin.models import CreatorPerformance, OdinToken
from tests.factories import NOW, FakeClock, token_payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryCacheStore:
    """Keeps expired entries for an hour so stale fallback can be exercised."""
    return MemoryCacheStore(stale_retention=3600, clock=clock)


@pytest.fixture
def proxy(memory_store: MemoryCacheStore, clock: FakeClock) -> CachingProxy:
    return CachingProxy(memory_store, TtlPolicy(), clock=clock)


@pytest.fixture
def make_token() -> Callable[..., OdinToken]:
    """Build a classified OdinToken relative to NOW."""

    def _make(token_id: str, creator: str = "creator-a", **kwargs: Any) -> OdinToken:
        token = OdinToken.model_validate(token_payload(token_id, creator, **kwargs))
        return with_activity(token, NOW)

    return _make


@pytest.fixture
def make_creator(make_token) -> Callable[..., CreatorPerformance]:
    """Build a CreatorPerformance with a given score and token-list length."""

    def _make(
        principal: str,
        *,
        confidence: float = 50.0,
        token_count: int = 1,
        volume: float = 0.0,
    ) -> CreatorPerformance:
        tokens = [make_token(f"{principal}-{i}", principal) for i in range(token_count)]
        return CreatorPerformance(
            principal=principal,
            username=principal,
            total_tokens=token_count,
            active_tokens=token_count,
            total_volume=volume,
            btc_volume=0.0,
            success_rate=100.0,
            weighted_score=0.4,
            confidence_score=confidence,
            tokens=tokens,
        )

    return _make
