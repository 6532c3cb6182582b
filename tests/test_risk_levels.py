"""Tests for ATR-based risk levels."""

from relay_core.models import AssetType, Candle, Signal, SignalKind, SignalSide
from relay_core.strategy import RiskLevelConfig, attach_risk_levels


def flat_candles(count: int, close: float = 100.0) -> list[Candle]:
    """Candles with a constant true range of 1."""
    return [
        Candle(open_time=i, open=close, high=close + 0.5, low=close - 0.5, close=close, close_time=i)
        for i in range(count)
    ]


def make_signal(side: SignalSide = SignalSide.BUY, price: float | None = 100.0) -> Signal:
    return Signal(
        asset_type=AssetType.GOLD,
        instrument="XAUTUSDT",
        interval="15m",
        strategy="breakout",
        kind=SignalKind.ENTRY,
        side=side,
        price=price,
        time=0,
    )


class TestAttachRiskLevels:
    """Tests for attach_risk_levels."""

    config = RiskLevelConfig(atr_period=3, sl_atr_mult=1.5, tp1_atr_mult=2.0, tp2_atr_mult=3.0)

    def test_buy_levels(self):
        result = attach_risk_levels(make_signal(SignalSide.BUY), flat_candles(10), self.config)

        assert result.levels is not None
        assert result.levels.entry == 100.0
        assert result.levels.sl == 98.5
        assert result.levels.tp1 == 102.0
        assert result.levels.tp2 == 103.0

    def test_sell_levels_mirrored(self):
        result = attach_risk_levels(make_signal(SignalSide.SELL), flat_candles(10), self.config)

        assert result.levels.sl == 101.5
        assert result.levels.tp1 == 98.0
        assert result.levels.tp2 == 97.0

    def test_original_signal_untouched(self):
        signal = make_signal()
        result = attach_risk_levels(signal, flat_candles(10), self.config)

        assert signal.levels is None
        assert result is not signal

    def test_neutral_unchanged(self):
        signal = make_signal(SignalSide.NEUTRAL)
        assert attach_risk_levels(signal, flat_candles(10), self.config) is signal

    def test_missing_price_unchanged(self):
        signal = make_signal(price=None)
        assert attach_risk_levels(signal, flat_candles(10), self.config) is signal

    def test_atr_undefined_unchanged(self):
        signal = make_signal()
        assert attach_risk_levels(signal, flat_candles(2), self.config).levels is None
