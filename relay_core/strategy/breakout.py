"""Channel breakout strategy.

Fires when the latest close leaves the high/low channel of the preceding
``lookback`` candles (the latest candle is not part of the channel).
"""

from pydantic import BaseModel

from relay_core.indicators import highest, lowest
from relay_core.models import Signal, SignalSide
from relay_core.strategy.base import build_entry_signal
from relay_core.strategy.config import StrategyParams
from relay_core.strategy.protocol import StrategyContext
from relay_core.strategy.registry import register_strategy

BREAKOUT_STRATEGY_NAME = "breakout"


class BreakoutConfig(BaseModel):
    lookback: int = 20


@register_strategy(BREAKOUT_STRATEGY_NAME)
class BreakoutStrategy:
    confidence = 72
    tags = ["breakout", "momentum"]

    def __init__(self, config: BreakoutConfig | None = None):
        self.config = config or BreakoutConfig()

    @classmethod
    def from_params(cls, params: StrategyParams) -> "BreakoutStrategy":
        return cls(BreakoutConfig(lookback=params.breakout_lookback))

    @property
    def name(self) -> str:
        return BREAKOUT_STRATEGY_NAME

    @property
    def display_name(self) -> str:
        return "Breakout"

    @property
    def required_indicators(self) -> list[str]:
        return ["high", "low"]

    @property
    def min_candles(self) -> int:
        return self.config.lookback + 1

    def evaluate(self, context: StrategyContext) -> Signal | None:
        if len(context.candles) < self.min_candles:
            return None

        lookback = self.config.lookback
        window = context.candles[-(lookback + 1):-1]
        channel_high = highest([c.high for c in window])
        channel_low = lowest([c.low for c in window])
        latest = context.candles[-1]

        if latest.close > channel_high:
            return build_entry_signal(
                context,
                self.name,
                SignalSide.BUY,
                self.confidence,
                self.tags,
                f"Close {latest.close:.4f} broke above {lookback}-period high {channel_high:.4f}.",
            )

        if latest.close < channel_low:
            return build_entry_signal(
                context,
                self.name,
                SignalSide.SELL,
                self.confidence,
                self.tags,
                f"Close {latest.close:.4f} broke below {lookback}-period low {channel_low:.4f}.",
            )

        return None
