"""OKX spot REST client (tickers only)."""

import time
from typing import Any

import httpx

from relay_app.clients.binance_rest import RateLimiter, to_float
from relay_core.models import CachedTicker
from relay_core.prices import normalize_symbol

PROVIDER_NAME = "okx"

QUOTE_ASSETS = ("USDT", "USDC", "USD", "BTC", "ETH")


def to_okx_symbol(symbol: str) -> str:
    """BTCUSDT -> BTC-USDT. Symbols already dashed or with no known quote pass through."""
    upper = normalize_symbol(symbol)
    if "-" in upper:
        return upper
    for quote in QUOTE_ASSETS:
        if upper.endswith(quote) and len(upper) > len(quote):
            return f"{upper[:-len(quote)]}-{quote}"
    return upper


def from_okx_symbol(inst_id: str) -> str:
    return normalize_symbol(inst_id.replace("-", ""))


class OkxRestClient:
    """OKX public market-data client.

    Raises ``httpx.HTTPError`` on transport errors and non-2xx responses.
    """

    DEFAULT_BASE_URL = "https://www.okx.com"

    def __init__(self, base_url: str | None = None, timeout: float = 10.0):
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.timeout = timeout
        # Public endpoints allow 20 requests per 2 seconds
        self.rate_limiter = RateLimiter(calls_per_minute=600)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, endpoint: str, params: dict[str, Any] | None = None) -> list[dict]:
        """GET an endpoint and unwrap OKX's ``{"code", "msg", "data"}`` envelope."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.get(endpoint, params=params)
        response.raise_for_status()
        body = response.json()
        if str(body.get("code", "0")) != "0":
            raise httpx.HTTPStatusError(
                f"OKX error {body.get('code')}: {body.get('msg')}",
                request=response.request,
                response=response,
            )
        return body.get("data") or []

    async def get_tickers(self, symbols: list[str]) -> list[CachedTicker]:
        """Fetch bid/ask/last for the requested symbols from the spot ticker list."""
        wanted = {normalize_symbol(s) for s in symbols}
        if not wanted:
            return []
        data = await self._request("/api/v5/market/tickers", {"instType": "SPOT"})

        now_ms = int(time.time() * 1000)
        tickers = []
        for item in data:
            symbol = from_okx_symbol(str(item.get("instId", "")))
            if symbol not in wanted:
                continue
            ts = to_float(item.get("ts"))
            tickers.append(
                CachedTicker(
                    provider=PROVIDER_NAME,
                    symbol=symbol,
                    bid=to_float(item.get("bidPx")),
                    ask=to_float(item.get("askPx")),
                    last=to_float(item.get("last")),
                    ts=int(ts) if ts is not None else now_ms,
                )
            )
        return tickers
