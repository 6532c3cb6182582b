"""Tests for technical indicators."""

import math

import pytest

from relay_core.indicators import atr, ema, highest, lowest, macd, rsi, true_range


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeded_with_first_value(self):
        """EMA starts at the first value and smooths with k = 2 / (period + 1)."""
        result = ema([10.0, 20.0], 3)

        assert result[0] == 10.0
        assert result[1] == pytest.approx(15.0)

    def test_ema_constant_series(self):
        """EMA of a flat series is the series."""
        assert ema([5.0] * 10, 4) == pytest.approx([5.0] * 10)

    def test_ema_empty(self):
        assert ema([], 5) == []


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_insufficient_data(self):
        """RSI is NaN everywhere when there are not more than `period` values."""
        result = rsi([1.0, 2.0, 3.0], 3)

        assert len(result) == 3
        assert all(math.isnan(v) for v in result)

    def test_rsi_first_value_at_period(self):
        values = [float(i) for i in range(1, 17)]
        result = rsi(values, 14)

        assert all(math.isnan(v) for v in result[:14])
        assert result[14] == 100.0

    def test_rsi_flat_series_is_neutral(self):
        assert rsi([100.0] * 20, 14)[-1] == 50.0

    def test_rsi_falling_series_is_zero(self):
        values = [float(100 - i) for i in range(20)]
        assert rsi(values, 14)[-1] == pytest.approx(0.0)

    def test_rsi_wilder_smoothing(self):
        """Seed from simple averages, then (prev * (p - 1) + current) / p."""
        result = rsi([10, 9, 8, 7, 6, 5, 9], 3)

        # gains/losses after smoothing: 4/3 and 2/3 -> RS = 2
        assert result[-1] == pytest.approx(100 - 100 / 3)


class TestMACD:
    """Tests for MACD calculation."""

    def test_macd_flat_series(self):
        result = macd([50.0] * 40)

        assert result.macd_line == pytest.approx([0.0] * 40)
        assert result.signal_line == pytest.approx([0.0] * 40)
        assert result.histogram == pytest.approx([0.0] * 40)

    def test_macd_aligned_with_input(self):
        values = [float(i) for i in range(30)]
        result = macd(values, 3, 6, 4)

        assert len(result.macd_line) == len(result.signal_line) == len(result.histogram) == 30
        # Rising series: fast EMA leads slow EMA
        assert result.macd_line[-1] > 0
        assert result.histogram[-1] == pytest.approx(result.macd_line[-1] - result.signal_line[-1])


class TestATR:
    """Tests for True Range and ATR."""

    def test_true_range_uses_previous_close(self):
        tr = true_range([10.0, 12.0], [8.0, 11.0], [9.0, 11.5])

        assert tr[0] == 2.0
        assert tr[1] == 3.0  # |12 - 9|

    def test_atr_wilder(self):
        highs = [10.0, 12.0, 13.0]
        lows = [8.0, 11.0, 12.0]
        closes = [9.0, 11.5, 12.5]

        result = atr(highs, lows, closes, 2)

        assert math.isnan(result[0])
        assert result[1] == pytest.approx(2.5)
        assert result[2] == pytest.approx(2.0)

    def test_atr_insufficient_data(self):
        result = atr([10.0], [9.0], [9.5], 14)
        assert len(result) == 1
        assert math.isnan(result[0])


class TestHighestLowest:

    def test_highest_lowest(self):
        values = [3.0, 7.0, 1.0, 5.0]
        assert highest(values) == 7.0
        assert lowest(values) == 1.0

    def test_empty_window(self):
        assert math.isnan(highest([]))
        assert math.isnan(lowest([]))
