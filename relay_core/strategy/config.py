"""Shared strategy parameters."""

from pydantic import BaseModel


class StrategyParams(BaseModel):
    """Periods and thresholds consumed by the built-in strategies."""

    rsi_period: int = 14
    rsi_buy_threshold: float = 30
    rsi_sell_threshold: float = 70

    ema_fast_period: int = 12
    ema_slow_period: int = 26

    breakout_lookback: int = 20

    macd_fast_period: int = 12
    macd_slow_period: int = 26
    macd_signal_period: int = 9
