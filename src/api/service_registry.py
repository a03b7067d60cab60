"""Runtime objects shared between the sync pipeline and the HTTP API.

Built once in ``main`` (or by a test) and attached to ``app.state``;
endpoints reach it through the dependencies in ``src.api.dependencies``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.cache.proxy import CachingProxy
    from src.parsers.creator_performance import CreatorAggregator
    from src.parsers.odin.feed import OdinFeed
    from src.parsers.recent_sync import RecentTokensSync


@dataclass
class ServiceRegistry:
    proxy: CachingProxy
    feed: OdinFeed
    aggregator: CreatorAggregator
    sync: RecentTokensSync | None = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_sec(self) -> int:
        return int(time.monotonic() - self.started_at)
