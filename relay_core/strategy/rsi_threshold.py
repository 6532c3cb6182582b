"""RSI threshold (mean reversion) strategy."""

from pydantic import BaseModel

from relay_core.indicators import rsi
from relay_core.models import Signal, SignalSide
from relay_core.strategy.base import build_entry_signal, is_nan
from relay_core.strategy.config import StrategyParams
from relay_core.strategy.protocol import StrategyContext
from relay_core.strategy.registry import register_strategy

RSI_THRESHOLD_STRATEGY_NAME = "rsi_threshold"


class RsiThresholdConfig(BaseModel):
    rsi_period: int = 14
    rsi_buy_threshold: float = 30
    rsi_sell_threshold: float = 70


@register_strategy(RSI_THRESHOLD_STRATEGY_NAME)
class RsiThresholdStrategy:
    """BUY when RSI is oversold, SELL when overbought."""

    confidence = 66
    tags = ["rsi", "mean_reversion"]

    def __init__(self, config: RsiThresholdConfig | None = None):
        self.config = config or RsiThresholdConfig()

    @classmethod
    def from_params(cls, params: StrategyParams) -> "RsiThresholdStrategy":
        return cls(RsiThresholdConfig(
            rsi_period=params.rsi_period,
            rsi_buy_threshold=params.rsi_buy_threshold,
            rsi_sell_threshold=params.rsi_sell_threshold,
        ))

    @property
    def name(self) -> str:
        return RSI_THRESHOLD_STRATEGY_NAME

    @property
    def display_name(self) -> str:
        return "RSI Threshold"

    @property
    def required_indicators(self) -> list[str]:
        return ["rsi"]

    @property
    def min_candles(self) -> int:
        return self.config.rsi_period + 1

    def evaluate(self, context: StrategyContext) -> Signal | None:
        if len(context.candles) < self.min_candles:
            return None

        cfg = self.config
        curr_rsi = rsi(context.closes, cfg.rsi_period)[-1]
        if is_nan(curr_rsi):
            return None

        if curr_rsi <= cfg.rsi_buy_threshold:
            return build_entry_signal(
                context,
                self.name,
                SignalSide.BUY,
                self.confidence,
                self.tags,
                f"RSI {curr_rsi:.2f} is at or below buy threshold {cfg.rsi_buy_threshold:g}.",
            )

        if curr_rsi >= cfg.rsi_sell_threshold:
            return build_entry_signal(
                context,
                self.name,
                SignalSide.SELL,
                self.confidence,
                self.tags,
                f"RSI {curr_rsi:.2f} is at or above sell threshold {cfg.rsi_sell_threshold:g}.",
            )

        return None
