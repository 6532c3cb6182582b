"""Multi-provider ticker cache.

Data structure:
- md:ticker:{provider-lower}:{SYMBOL} -> JSON {provider, symbol, bid, ask, last, ts}

Entries are replaced on every upstream fetch and expire after the ticker TTL.
Unreadable entries are treated as misses.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Awaitable, Callable, Sequence

import orjson
from pydantic import ValidationError

from relay_app.config import get_settings
from relay_app.storage import cache
from relay_core.models import CachedTicker
from relay_core.prices import PriceAggregation, aggregate_best_prices, normalize_symbol

logger = logging.getLogger(__name__)

TickerFetcher = Callable[[list[str]], Awaitable[list[CachedTicker]]]


def ticker_key(provider: str, symbol: str) -> str:
    """Get the cache key for a provider's ticker."""
    return f"{cache.KEY_PREFIX_TICKER}{provider.strip().lower()}:{normalize_symbol(symbol)}"


def _ttl(ttl: int | None) -> int:
    return ttl if ttl is not None else get_settings().ticker_cache_ttl_seconds


def _to_cached(ticker: CachedTicker) -> dict:
    return {
        "provider": ticker.provider.strip().lower(),
        "symbol": normalize_symbol(ticker.symbol),
        "bid": ticker.bid,
        "ask": ticker.ask,
        "last": ticker.last,
        "ts": ticker.ts,
    }


def _parse(raw: bytes | None) -> CachedTicker | None:
    if raw is None:
        return None
    try:
        ticker = CachedTicker.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError) as e:
        logger.debug(f"Dropping unreadable ticker entry: {e}")
        return None
    return ticker


async def set_ticker(ticker: CachedTicker, ttl: int | None = None) -> bool:
    """Store (replace) a ticker."""
    return await cache.set_json(ticker_key(ticker.provider, ticker.symbol), _to_cached(ticker), _ttl(ttl))


async def get_ticker(provider: str, symbol: str) -> CachedTicker | None:
    return _parse(await cache.get(ticker_key(provider, symbol)))


async def get_tickers(provider: str, symbols: Sequence[str]) -> list[CachedTicker]:
    """Batch read; missing or unreadable entries are dropped."""
    if not symbols:
        return []
    raw_values = await cache.mget([ticker_key(provider, s) for s in symbols])
    tickers = []
    for raw in raw_values:
        ticker = _parse(raw)
        if ticker is not None:
            tickers.append(ticker)
    return tickers


async def get_aggregated_prices(
    symbols: Sequence[str],
    providers: Sequence[str],
    max_age_ms: int | None = None,
) -> list[PriceAggregation]:
    """Read every provider concurrently and aggregate per symbol."""
    results = await asyncio.gather(*(get_tickers(p, symbols) for p in providers))
    provider_tickers = dict(zip(providers, results))
    if max_age_ms is None:
        max_age_ms = get_settings().ticker_cache_ttl_seconds * 1000
    return aggregate_best_prices(
        symbols,
        provider_tickers,
        now_ms=int(time.time() * 1000),
        max_age_ms=max_age_ms,
    )


def _last_rank(ticker: CachedTicker) -> float:
    if ticker.last is None or not math.isfinite(ticker.last):
        return -math.inf
    return ticker.last


async def get_best_across_providers(symbol: str, providers: Sequence[str]) -> CachedTicker | None:
    """The cached ticker with the highest ``last`` across providers.

    Tickers without a finite ``last`` still count as hits but rank below any
    that have one. None only when no provider has the symbol cached.
    """
    hits = await asyncio.gather(*(get_ticker(p, symbol) for p in providers))
    best: CachedTicker | None = None
    for ticker in hits:
        if ticker is None:
            continue
        if best is None or _last_rank(ticker) > _last_rank(best):
            best = ticker
    return best


async def warm_up(
    provider: str,
    symbols: Sequence[str],
    fetcher: TickerFetcher,
    timeout: float = 5.0,
    ttl: int | None = None,
) -> int:
    """Fetch tickers from upstream and write them to the cache.

    Returns:
        Number of tickers written (0 on fetch failure or timeout)
    """
    if not symbols:
        return 0

    try:
        tickers = await asyncio.wait_for(fetcher([normalize_symbol(s) for s in symbols]), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Ticker warm-up for {provider} timed out after {timeout}s")
        return 0
    except Exception as e:
        logger.warning(f"Ticker warm-up for {provider} failed: {e}")
        return 0

    mapping = {ticker_key(provider, t.symbol): _to_cached(t) for t in tickers}
    written = await cache.set_many_json(mapping, _ttl(ttl))
    logger.debug("Warmed %d %s tickers", written, provider)
    return written
