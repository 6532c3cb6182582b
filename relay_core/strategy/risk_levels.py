"""ATR-based stop-loss / take-profit levels for entry signals."""

import math

from pydantic import BaseModel

from relay_core.indicators import atr
from relay_core.models import Candle, Signal, SignalLevels, SignalSide


class RiskLevelConfig(BaseModel):
    atr_period: int = 14
    sl_atr_mult: float = 1.5
    tp1_atr_mult: float = 2.0
    tp2_atr_mult: float = 3.0


def attach_risk_levels(
    signal: Signal,
    candles: list[Candle],
    config: RiskLevelConfig | None = None,
) -> Signal:
    """Return a copy of ``signal`` with levels derived from the last ATR.

    BUY: sl below entry, targets above. SELL: mirrored. The signal is returned
    unchanged when the side is NEUTRAL, the price is missing, or the ATR is
    not yet defined.
    """
    config = config or RiskLevelConfig()
    if signal.side == SignalSide.NEUTRAL or signal.price is None:
        return signal
    if not math.isfinite(signal.price) or not candles:
        return signal

    atr_values = atr(
        [c.high for c in candles],
        [c.low for c in candles],
        [c.close for c in candles],
        config.atr_period,
    )
    last_atr = atr_values[-1]
    if math.isnan(last_atr) or last_atr <= 0:
        return signal

    price = signal.price
    direction = 1 if signal.side == SignalSide.BUY else -1
    levels = SignalLevels(
        entry=price,
        sl=price - direction * last_atr * config.sl_atr_mult,
        tp1=price + direction * last_atr * config.tp1_atr_mult,
        tp2=price + direction * last_atr * config.tp2_atr_mult,
    )
    return signal.model_copy(update={"levels": levels})
