"""Technical indicators for signal generation.

Pure NumPy implementations. Every function returns a list with the same
length as its input; positions where the indicator is not yet defined hold NaN.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


def _to_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    Seeded with the first value (no SMA warm-up), smoothing factor
    k = 2 / (period + 1).

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (same length as input)
    """
    arr = _to_array(values)
    if arr.size == 0:
        return []

    k = 2.0 / (period + 1)
    result = np.empty_like(arr)
    result[0] = arr[0]

    for i in range(1, arr.size):
        result[i] = arr[i] * k + result[i - 1] * (1 - k)

    return result.tolist()


def rsi(values: Sequence[float], period: int = 14) -> list[float]:
    """
    Calculate Relative Strength Index with Wilder's smoothing.

    The value at index ``period`` comes from the simple average of the first
    ``period`` gains/losses; later values use
    avg = (prev_avg * (period - 1) + current) / period.

    Args:
        values: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100] (NaN before index ``period``)
    """
    arr = _to_array(values)
    result = np.full(arr.size, np.nan)
    if arr.size <= period:
        return result.tolist()

    deltas = np.diff(arr)
    gains = np.clip(deltas, 0, None)
    losses = np.clip(-deltas, 0, None)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, arr.size):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result.tolist()


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # Flat series is neutral, pure gains saturate
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


@dataclass(frozen=True)
class MacdResult:
    """MACD series, all aligned with the input."""

    macd_line: list[float]
    signal_line: list[float]
    histogram: list[float]


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdResult:
    """
    Calculate MACD.

    macd_line = EMA(fast) - EMA(slow)
    signal_line = EMA(macd_line, signal_period)
    histogram = macd_line - signal_line

    Args:
        values: Sequence of close prices
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal EMA period

    Returns:
        MacdResult with three series of the input's length
    """
    fast = _to_array(ema(values, fast_period))
    slow = _to_array(ema(values, slow_period))
    macd_line = fast - slow
    signal_line = _to_array(ema(macd_line.tolist(), signal_period))
    histogram = macd_line - signal_line

    return MacdResult(
        macd_line=macd_line.tolist(),
        signal_line=signal_line.tolist(),
        histogram=histogram.tolist(),
    )


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    The first bar has no previous close, so TR = high - low.
    """
    h = _to_array(highs)
    l = _to_array(lows)
    c = _to_array(closes)
    if h.size == 0:
        return []

    tr = h - l
    if h.size > 1:
        prev_close = c[:-1]
        tr[1:] = np.maximum.reduce([
            h[1:] - l[1:],
            np.abs(h[1:] - prev_close),
            np.abs(l[1:] - prev_close),
        ])
    return tr.tolist()


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate Average True Range (ATR).

    Uses RMA (Relative Moving Average) / Wilder's smoothing, seeded with the
    simple mean of the first ``period`` true ranges.

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        closes: Sequence of close prices
        period: ATR period

    Returns:
        List of ATR values (NaN before index ``period - 1``)
    """
    tr = _to_array(true_range(highs, lows, closes))
    result = np.full(tr.size, np.nan)
    if tr.size < period:
        return result.tolist()

    result[period - 1] = np.mean(tr[:period])
    alpha = 1.0 / period
    for i in range(period, tr.size):
        result[i] = alpha * tr[i] + (1 - alpha) * result[i - 1]

    return result.tolist()


def highest(values: Sequence[float]) -> float:
    """Highest value of a window (NaN for an empty window)."""
    arr = _to_array(values)
    return float(np.max(arr)) if arr.size else float("nan")


def lowest(values: Sequence[float]) -> float:
    """Lowest value of a window (NaN for an empty window)."""
    arr = _to_array(values)
    return float(np.min(arr)) if arr.size else float("nan")
