"""Cross-provider price resolution and aggregation (pure)."""

import html
import math
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from relay_core.models import CachedTicker


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def resolve_price(ticker: CachedTicker) -> float | None:
    """Pick a single price for a ticker.

    Precedence: last, then mid of bid/ask, then bid, then ask.
    """
    if _finite(ticker.last):
        return ticker.last
    if _finite(ticker.bid) and _finite(ticker.ask):
        return (ticker.bid + ticker.ask) / 2
    if _finite(ticker.bid):
        return ticker.bid
    if _finite(ticker.ask):
        return ticker.ask
    return None


@dataclass(frozen=True)
class ProviderPrice:
    provider: str
    price: float
    ts: int
    stale: bool = False


@dataclass(frozen=True)
class PriceAggregation:
    """Resolved prices for one symbol across providers."""

    symbol: str
    entries: list[ProviderPrice] = field(default_factory=list)
    spread_pct: float | None = None

    @property
    def best(self) -> ProviderPrice | None:
        return max(self.entries, key=lambda e: e.price, default=None)

    @property
    def worst(self) -> ProviderPrice | None:
        return min(self.entries, key=lambda e: e.price, default=None)

    @property
    def stale_providers(self) -> list[str]:
        return [e.provider for e in self.entries if e.stale]


def spread_pct(prices: Sequence[float]) -> float | None:
    """(max - min) / min * 100, or None with fewer than two prices."""
    if len(prices) < 2:
        return None
    low, high = min(prices), max(prices)
    if low <= 0:
        return None
    return (high - low) / low * 100


def aggregate_best_prices(
    symbols: Sequence[str],
    provider_tickers: Mapping[str, Sequence[CachedTicker]],
    now_ms: int | None = None,
    max_age_ms: int | None = None,
) -> list[PriceAggregation]:
    """Aggregate per-provider tickers by symbol.

    Each provider contributes at most one entry per symbol (its first
    resolvable ticker). Providers whose ticker ``ts`` is older than
    ``max_age_ms`` are kept but flagged stale. Symbols with no priced entry
    still appear, with an empty entry list.
    """
    aggregations = []
    for raw_symbol in symbols:
        symbol = normalize_symbol(raw_symbol)
        entries = []
        for provider, tickers in provider_tickers.items():
            for ticker in tickers:
                if normalize_symbol(ticker.symbol) != symbol:
                    continue
                price = resolve_price(ticker)
                if price is None:
                    continue
                stale = (
                    now_ms is not None
                    and max_age_ms is not None
                    and now_ms - ticker.ts > max_age_ms
                )
                entries.append(ProviderPrice(provider=provider, price=price, ts=ticker.ts, stale=stale))
                break

        aggregations.append(PriceAggregation(
            symbol=symbol,
            entries=entries,
            spread_pct=spread_pct([e.price for e in entries]),
        ))
    return aggregations


@dataclass(frozen=True)
class SpreadAlert:
    """A symbol whose fresh provider prices diverge past the threshold."""

    symbol: str
    low: ProviderPrice
    high: ProviderPrice
    spread_pct: float
    stale_providers: list[str] = field(default_factory=list)


def find_spread_alerts(
    aggregations: Sequence[PriceAggregation],
    min_spread_pct: float,
) -> list[SpreadAlert]:
    """Symbols whose spread across non-stale providers is >= ``min_spread_pct``.

    Stale entries are left out of the spread so an old quote cannot fake a
    divergence; they are reported alongside instead.
    """
    alerts = []
    for agg in aggregations:
        fresh = [e for e in agg.entries if not e.stale]
        spread = spread_pct([e.price for e in fresh])
        if spread is None or spread < min_spread_pct:
            continue
        alerts.append(SpreadAlert(
            symbol=agg.symbol,
            low=min(fresh, key=lambda e: e.price),
            high=max(fresh, key=lambda e: e.price),
            spread_pct=spread,
            stale_providers=agg.stale_providers,
        ))
    return alerts


def render_spread_message(alert: SpreadAlert) -> str:
    """HTML message for a spread alert."""
    lines = [
        "⚖️ <b>Price spread</b>",
        f"<b>{html.escape(alert.symbol)}</b> {alert.spread_pct:.2f}%",
        f"High: {alert.high.provider} {alert.high.price:.4f}",
        f"Low: {alert.low.provider} {alert.low.price:.4f}",
    ]
    if alert.stale_providers:
        lines.append(f"Stale: {', '.join(alert.stale_providers)}")
    return "\n".join(lines)
