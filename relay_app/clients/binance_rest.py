"""Binance spot REST client (market data only)."""

import asyncio
from typing import Any

import httpx
import orjson

from relay_core.models import CachedTicker, Candle

PROVIDER_NAME = "binance"


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class BinanceRestClient:
    """Binance spot market-data client.

    Raises ``httpx.HTTPError`` on transport errors and non-2xx responses;
    callers decide whether that means "no data this tick".
    """

    DEFAULT_BASE_URL = "https://data-api.binance.vision"

    def __init__(self, base_url: str | None = None, timeout: float = 10.0):
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.timeout = timeout
        self.rate_limiter = RateLimiter()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_klines(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
    ) -> list[Candle]:
        """
        Fetch the most recent candles, oldest first.

        Args:
            symbol: Trading pair (e.g., "XAUTUSDT")
            interval: Candle interval (e.g., "15m")
            limit: Number of candles (max 1000)
        """
        params = {
            "symbol": symbol.upper(),
            "interval": interval,
            "limit": max(1, min(limit, 1000)),
        }
        data = await self._request("GET", "/api/v3/klines", params)

        return [
            Candle(
                open_time=int(item[0]),
                open=float(item[1]),
                high=float(item[2]),
                low=float(item[3]),
                close=float(item[4]),
                volume=float(item[5]),
                close_time=int(item[6]),
            )
            for item in data
        ]

    async def get_24h_tickers(self, symbols: list[str]) -> list[CachedTicker]:
        """Fetch bid/ask/last for several symbols in one call."""
        if not symbols:
            return []
        params = {"symbols": orjson.dumps([s.upper() for s in symbols]).decode()}
        data = await self._request("GET", "/api/v3/ticker/24hr", params)

        tickers = []
        for item in data:
            tickers.append(
                CachedTicker(
                    provider=PROVIDER_NAME,
                    symbol=item["symbol"],
                    bid=to_float(item.get("bidPrice")),
                    ask=to_float(item.get("askPrice")),
                    last=to_float(item.get("lastPrice")),
                    ts=int(item.get("closeTime") or 0),
                )
            )
        return tickers
