"""EMA cross with RSI filter.

- Fast EMA crosses above slow EMA while RSI is below the sell threshold -> BUY
- Fast EMA crosses below slow EMA while RSI is above the buy threshold -> SELL
"""

from pydantic import BaseModel

from relay_core.indicators import ema, rsi
from relay_core.models import Signal, SignalSide
from relay_core.strategy.base import (
    build_entry_signal,
    crossed_above,
    crossed_below,
    is_nan,
)
from relay_core.strategy.config import StrategyParams
from relay_core.strategy.protocol import StrategyContext
from relay_core.strategy.registry import register_strategy

EMA_RSI_STRATEGY_NAME = "ema_rsi"


class EmaRsiConfig(BaseModel):
    """Configuration for the EMA/RSI cross strategy."""

    fast_period: int = 12
    slow_period: int = 26
    rsi_period: int = 14
    rsi_buy_threshold: float = 30
    rsi_sell_threshold: float = 70


@register_strategy(EMA_RSI_STRATEGY_NAME)
class EmaRsiStrategy:
    """Trend entry on an EMA crossover, filtered by RSI extremes."""

    confidence = 78
    tags = ["ema_cross", "rsi_filter", "trend"]

    def __init__(self, config: EmaRsiConfig | None = None):
        self.config = config or EmaRsiConfig()

    @classmethod
    def from_params(cls, params: StrategyParams) -> "EmaRsiStrategy":
        return cls(EmaRsiConfig(
            fast_period=params.ema_fast_period,
            slow_period=params.ema_slow_period,
            rsi_period=params.rsi_period,
            rsi_buy_threshold=params.rsi_buy_threshold,
            rsi_sell_threshold=params.rsi_sell_threshold,
        ))

    @property
    def name(self) -> str:
        return EMA_RSI_STRATEGY_NAME

    @property
    def display_name(self) -> str:
        return "EMA + RSI"

    @property
    def required_indicators(self) -> list[str]:
        return [
            f"ema{self.config.fast_period}",
            f"ema{self.config.slow_period}",
            "rsi",
        ]

    @property
    def min_candles(self) -> int:
        cfg = self.config
        return max(cfg.fast_period, cfg.slow_period, cfg.rsi_period) + 1

    def evaluate(self, context: StrategyContext) -> Signal | None:
        if len(context.candles) < self.min_candles:
            return None

        cfg = self.config
        closes = context.closes
        fast = ema(closes, cfg.fast_period)
        slow = ema(closes, cfg.slow_period)
        rsi_values = rsi(closes, cfg.rsi_period)

        prev_fast, curr_fast = fast[-2], fast[-1]
        prev_slow, curr_slow = slow[-2], slow[-1]
        curr_rsi = rsi_values[-1]
        if is_nan(curr_rsi):
            return None

        if (
            crossed_above(prev_fast, prev_slow, curr_fast, curr_slow)
            and curr_rsi < cfg.rsi_sell_threshold
        ):
            return build_entry_signal(
                context,
                self.name,
                SignalSide.BUY,
                self.confidence,
                self.tags,
                f"EMA{cfg.fast_period} crossed above EMA{cfg.slow_period} "
                f"({curr_fast:.4f} > {curr_slow:.4f}) with RSI {curr_rsi:.2f}.",
            )

        if (
            crossed_below(prev_fast, prev_slow, curr_fast, curr_slow)
            and curr_rsi > cfg.rsi_buy_threshold
        ):
            return build_entry_signal(
                context,
                self.name,
                SignalSide.SELL,
                self.confidence,
                self.tags,
                f"EMA{cfg.fast_period} crossed below EMA{cfg.slow_period} "
                f"({curr_fast:.4f} < {curr_slow:.4f}) with RSI {curr_rsi:.2f}.",
            )

        return None
