"""
Yield provider factory (config-driven).
"""

from __future__ import annotations

from app.config import Settings
from app.infrastructure.market_data.yield_provider import (
    HttpYieldProvider,
    MockYieldProvider,
    StaticYieldProvider,
)


def get_yield_provider(settings: Settings):
    if settings.MOCK_MARKET_DATA:
        return MockYieldProvider(apy_min=settings.MOCK_APY_MIN, apy_max=settings.MOCK_APY_MAX)

    feed_url = (settings.YIELD_FEED_URL or "").strip()
    if feed_url:
        return HttpYieldProvider(feed_url, timeout=settings.HTTP_TIMEOUT_SECONDS)

    return StaticYieldProvider(apy=settings.STATIC_APY)
