"""Single-provider last-price cache.

Data structure:
- price:last:{SYMBOL} -> JSON {price, timestamp}

Consulted by the alert evaluator before hitting a candle feed.
"""

from __future__ import annotations

import math
import time

from relay_app.config import get_settings
from relay_app.storage import cache
from relay_core.prices import normalize_symbol


def _price_key(symbol: str) -> str:
    """Get the cache key for a symbol's price."""
    return f"{cache.KEY_PREFIX_PRICE}{normalize_symbol(symbol)}"


async def set_last_price(symbol: str, price: float, ttl: int | None = None) -> bool:
    if not math.isfinite(price):
        return False
    ttl = ttl if ttl is not None else get_settings().price_last_ttl_seconds
    return await cache.set_json(
        _price_key(symbol),
        {"price": price, "timestamp": time.time()},
        ttl,
    )


async def get_last_price(symbol: str) -> float | None:
    """Latest cached price, or None on miss/unreadable entry."""
    data = await cache.get_json(_price_key(symbol))
    if not isinstance(data, dict):
        return None
    value = data.get("price")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None
