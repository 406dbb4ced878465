"""
Yield providers.
Every provider returns a validated YieldQuote or raises MarketDataError.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Optional

import httpx

from app.domain.errors import MarketDataError
from app.domain.models import YieldQuote

logger = logging.getLogger(__name__)


def validated_quote(apy: Any, source: Any) -> YieldQuote:
    if isinstance(apy, bool):
        raise MarketDataError(f"APY must be a number, got {apy!r}")
    try:
        value = float(apy)
    except (TypeError, ValueError) as exc:
        raise MarketDataError(f"APY must be a number, got {apy!r}") from exc
    if not math.isfinite(value):
        raise MarketDataError(f"APY must be finite, got {apy!r}")
    if not isinstance(source, str) or not source.strip():
        raise MarketDataError("Yield quote source missing")
    return YieldQuote(apy=value, source=source)


class MockYieldProvider:
    """Uniformly random APY inside a fixed band (demo / testing)."""

    def __init__(self, apy_min: float = 3.5, apy_max: float = 8.5, rng: Optional[random.Random] = None):
        if apy_min > apy_max:
            raise ValueError("apy_min must be <= apy_max")
        self.apy_min = apy_min
        self.apy_max = apy_max
        self._rng = rng or random.Random()

    async def get_yield(self) -> YieldQuote:
        apy = round(self._rng.uniform(self.apy_min, self.apy_max), 2)
        return validated_quote(apy, "MockMarket")


class StaticYieldProvider:
    """Fixed APY stub used until a real feed is configured."""

    def __init__(self, apy: float = 4.5, source: str = "RealMarketStub"):
        self.apy = apy
        self.source = source

    async def get_yield(self) -> YieldQuote:
        return validated_quote(self.apy, self.source)


class HttpYieldProvider:
    """JSON feed returning {"apy": <percent>, "source": <label>}."""

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def get_yield(self) -> YieldQuote:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise MarketDataError(f"Yield feed request failed: {type(exc).__name__}: {exc}") from exc

        if not isinstance(payload, dict):
            raise MarketDataError("Yield feed returned unexpected payload")
        return validated_quote(payload.get("apy"), payload.get("source") or "YieldFeed")
