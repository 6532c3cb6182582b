"""MACD / signal line crossover strategy."""

from pydantic import BaseModel

from relay_core.indicators import macd
from relay_core.models import Signal, SignalSide
from relay_core.strategy.base import build_entry_signal, crossed_above, crossed_below
from relay_core.strategy.config import StrategyParams
from relay_core.strategy.protocol import StrategyContext
from relay_core.strategy.registry import register_strategy

MACD_STRATEGY_NAME = "macd"


class MacdConfig(BaseModel):
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9


@register_strategy(MACD_STRATEGY_NAME)
class MacdStrategy:
    confidence = 74
    tags = ["macd", "momentum"]

    def __init__(self, config: MacdConfig | None = None):
        self.config = config or MacdConfig()

    @classmethod
    def from_params(cls, params: StrategyParams) -> "MacdStrategy":
        return cls(MacdConfig(
            fast_period=params.macd_fast_period,
            slow_period=params.macd_slow_period,
            signal_period=params.macd_signal_period,
        ))

    @property
    def name(self) -> str:
        return MACD_STRATEGY_NAME

    @property
    def display_name(self) -> str:
        return "MACD Crossover"

    @property
    def required_indicators(self) -> list[str]:
        return ["macd", "signal"]

    @property
    def min_candles(self) -> int:
        cfg = self.config
        return max(cfg.fast_period, cfg.slow_period, cfg.signal_period) + 1

    def evaluate(self, context: StrategyContext) -> Signal | None:
        if len(context.candles) < self.min_candles:
            return None

        cfg = self.config
        result = macd(context.closes, cfg.fast_period, cfg.slow_period, cfg.signal_period)
        prev_macd, curr_macd = result.macd_line[-2], result.macd_line[-1]
        prev_signal, curr_signal = result.signal_line[-2], result.signal_line[-1]

        if crossed_above(prev_macd, prev_signal, curr_macd, curr_signal):
            return build_entry_signal(
                context,
                self.name,
                SignalSide.BUY,
                self.confidence,
                self.tags,
                f"MACD crossed above signal ({curr_macd:.4f} > {curr_signal:.4f}).",
            )

        if crossed_below(prev_macd, prev_signal, curr_macd, curr_signal):
            return build_entry_signal(
                context,
                self.name,
                SignalSide.SELL,
                self.confidence,
                self.tags,
                f"MACD crossed below signal ({curr_macd:.4f} < {curr_signal:.4f}).",
            )

        return None
