"""Helpers shared by the built-in strategies."""

import math

from relay_core.models import Signal, SignalKind, SignalSide, SignalSource
from relay_core.strategy.protocol import StrategyContext


def is_nan(value: float | None) -> bool:
    """Check if a value is missing or NaN."""
    return value is None or math.isnan(value)


def crossed_above(prev_a: float, prev_b: float, curr_a: float, curr_b: float) -> bool:
    """a was <= b on the prior bar and > b on the current bar."""
    return prev_a <= prev_b and curr_a > curr_b


def crossed_below(prev_a: float, prev_b: float, curr_a: float, curr_b: float) -> bool:
    """a was >= b on the prior bar and < b on the current bar."""
    return prev_a >= prev_b and curr_a < curr_b


def build_entry_signal(
    context: StrategyContext,
    strategy: str,
    side: SignalSide,
    confidence: float,
    tags: list[str],
    reason: str,
) -> Signal:
    """Build an ENTRY signal priced at the latest close."""
    latest = context.candles[-1]
    return Signal(
        source=SignalSource.BINANCE,
        asset_type=context.asset_type,
        instrument=context.instrument,
        interval=context.interval,
        strategy=strategy,
        kind=SignalKind.ENTRY,
        side=side,
        price=latest.close,
        time=latest.close_time,
        confidence=confidence,
        tags=list(tags),
        reason=reason,
    )
