"""Technical indicators (pure math, no I/O)."""

from relay_core.indicators.indicators import (
    MacdResult,
    atr,
    ema,
    highest,
    lowest,
    macd,
    rsi,
    true_range,
)

__all__ = [
    "MacdResult",
    "atr",
    "ema",
    "highest",
    "lowest",
    "macd",
    "rsi",
    "true_range",
]
