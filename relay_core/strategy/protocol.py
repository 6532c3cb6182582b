"""Strategy protocol defining the interface all strategies must implement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from relay_core.models import AssetType, Candle, Signal


@dataclass(frozen=True)
class StrategyContext:
    """Candle window plus the identity of the series it belongs to."""

    candles: Sequence[Candle]
    instrument: str
    interval: str
    asset_type: AssetType

    @property
    def closes(self) -> list[float]:
        return [c.close for c in self.candles]


@runtime_checkable
class Strategy(Protocol):
    """Protocol that all strategy evaluators must implement.

    ``evaluate`` is a pure function of the candle window: it returns at most
    one signal and returns None (never raises) when the window is too short.
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier (e.g., 'ema_rsi')."""
        ...

    @property
    def display_name(self) -> str:
        ...

    @property
    def required_indicators(self) -> list[str]:
        ...

    @property
    def min_candles(self) -> int:
        """Smallest window the strategy can evaluate."""
        ...

    def evaluate(self, context: StrategyContext) -> Signal | None:
        ...
