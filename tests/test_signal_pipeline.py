"""Tests for the strategy tick and the signal dispatcher."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from relay_app.config import Settings
from relay_app.services.signal_pipeline import (
    MonitoringTarget,
    SignalDispatcher,
    SignalPipeline,
    build_monitoring_plan,
)
from relay_app.storage.signal_repo import StoredSignal
from relay_core.dedupe import build_dedupe_key
from relay_core.models import AssetType, Candle, Destination, DestinationType, Signal, SignalKind, SignalSide
from relay_core.strategy import BreakoutConfig, BreakoutStrategy, RiskLevelConfig

BREAKOUT_CLOSES = [100, 101, 102, 103, 104, 105, 106, 115]


def make_candles(closes) -> list[Candle]:
    return [
        Candle(open_time=i * 60_000, open=c, high=c + 0.5, low=c - 0.5, close=c, close_time=(i + 1) * 60_000 - 1)
        for i, c in enumerate(closes)
    ]


def make_signal() -> Signal:
    return Signal(
        asset_type=AssetType.GOLD,
        instrument="XAUTUSDT",
        interval="15m",
        strategy="breakout",
        kind=SignalKind.ENTRY,
        side=SignalSide.BUY,
        price=2000.0,
        time=0,
    )


def single_target_settings(**overrides) -> Settings:
    fields = dict(
        _env_file=None,
        assets_enabled="GOLD",
        gold_instruments="XAUTUSDT",
        default_timeframes="15m",
        binance_klines_limit=50,
    )
    fields.update(overrides)
    return Settings(**fields)


class TestMonitoringPlan:

    def test_cartesian_plan(self):
        settings = Settings(
            _env_file=None,
            assets_enabled="GOLD,CRYPTO",
            gold_instruments="XAUTUSDT",
            crypto_instruments="BTCUSDT",
            default_timeframes="15m,1h",
        )

        assert build_monitoring_plan(settings) == [
            MonitoringTarget(AssetType.GOLD, "XAUTUSDT", "15m"),
            MonitoringTarget(AssetType.GOLD, "XAUTUSDT", "1h"),
            MonitoringTarget(AssetType.CRYPTO, "BTCUSDT", "15m"),
            MonitoringTarget(AssetType.CRYPTO, "BTCUSDT", "1h"),
        ]

    def test_disabled_asset_type(self):
        settings = Settings(_env_file=None, assets_enabled="CRYPTO", crypto_instruments="BTCUSDT", default_timeframes="15m")
        assert [t.asset_type for t in build_monitoring_plan(settings)] == [AssetType.CRYPTO]


class TestSignalDispatcher:
    """Tests for SignalDispatcher.dispatch."""

    @pytest.fixture
    def parts(self):
        guard = MagicMock()
        guard.is_allowed = AsyncMock(return_value=True)
        guard.release = AsyncMock()
        routing = MagicMock()
        routing.resolve_destinations = AsyncMock(return_value=[
            Destination(id="d1", destination_type=DestinationType.GROUP, chat_id="-1"),
        ])
        emitter = MagicMock()
        emitter.emit_signal = AsyncMock(return_value=1)
        signal_repo = MagicMock()
        signal_repo.store = AsyncMock(
            side_effect=lambda signal, key: StoredSignal(id="s1", dedupe_key=key, signal=signal)
        )
        return guard, routing, emitter, signal_repo

    @pytest.mark.asyncio
    async def test_dispatch(self, parts):
        guard, routing, emitter, signal_repo = parts
        signal = make_signal()

        assert await SignalDispatcher(*parts).dispatch(signal) is True

        signal_repo.store.assert_awaited_once_with(signal, build_dedupe_key(signal))
        emitter.emit_signal.assert_awaited_once_with("s1", signal, routing.resolve_destinations.return_value)

    @pytest.mark.asyncio
    async def test_duplicate_not_stored(self, parts):
        guard, routing, emitter, signal_repo = parts
        guard.is_allowed.return_value = False

        assert await SignalDispatcher(*parts).dispatch(make_signal()) is False
        signal_repo.store.assert_not_called()
        emitter.emit_signal.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_stored_not_routed(self, parts):
        guard, routing, emitter, signal_repo = parts
        signal_repo.store = AsyncMock(return_value=None)

        assert await SignalDispatcher(*parts).dispatch(make_signal()) is False
        routing.resolve_destinations.assert_not_called()

    @pytest.mark.asyncio
    async def test_bypass_dedupe(self, parts):
        guard, _, emitter, _ = parts

        assert await SignalDispatcher(*parts).dispatch(make_signal(), bypass_dedupe=True) is True
        guard.is_allowed.assert_not_called()
        emitter.emit_signal.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_routing_failure_releases_claim(self, parts):
        """A failed route must not leave the signal suppressed for the next tick."""
        guard, routing, emitter, signal_repo = parts
        destinations = routing.resolve_destinations.return_value
        routing.resolve_destinations = AsyncMock(side_effect=[RuntimeError("db down"), destinations])
        dispatcher = SignalDispatcher(*parts)
        signal = make_signal()

        with pytest.raises(RuntimeError):
            await dispatcher.dispatch(signal)
        guard.release.assert_awaited_once_with(signal)
        emitter.emit_signal.assert_not_called()

        assert await dispatcher.dispatch(signal) is True
        assert routing.resolve_destinations.await_count == 2
        emitter.emit_signal.assert_awaited_once_with("s1", signal, destinations)

    @pytest.mark.asyncio
    async def test_emit_failure_releases_claim(self, parts):
        guard, _, emitter, _ = parts
        emitter.emit_signal.side_effect = ConnectionError("redis refused")

        with pytest.raises(ConnectionError):
            await SignalDispatcher(*parts).dispatch(make_signal())
        guard.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_failure_releases_claim(self, parts):
        guard, routing, _, signal_repo = parts
        signal_repo.store = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await SignalDispatcher(*parts).dispatch(make_signal())
        guard.release.assert_awaited_once()
        routing.resolve_destinations.assert_not_called()

    @pytest.mark.asyncio
    async def test_bypass_failure_does_not_release(self, parts):
        guard, routing, _, _ = parts
        routing.resolve_destinations = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await SignalDispatcher(*parts).dispatch(make_signal(), bypass_dedupe=True)
        guard.release.assert_not_called()


class TestSignalPipeline:
    """Tests for SignalPipeline.run_tick."""

    @pytest.fixture
    def feed(self):
        feed = MagicMock()
        feed.get_candles = AsyncMock(return_value=make_candles(BREAKOUT_CLOSES))
        return feed

    @pytest.fixture
    def feeds(self, feed):
        feeds = MagicMock()
        feeds.get_feed.return_value = feed
        return feeds

    @pytest.fixture
    def dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(return_value=True)
        return dispatcher

    @pytest.mark.asyncio
    async def test_breakout_dispatched(self, feeds, feed, dispatcher):
        pipeline = SignalPipeline(
            single_target_settings(),
            feeds,
            [BreakoutStrategy(BreakoutConfig(lookback=5))],
            dispatcher,
        )

        assert await pipeline.run_tick() == 1

        feed.get_candles.assert_awaited_once_with("XAUTUSDT", "15m", 50)
        signal = dispatcher.dispatch.call_args.args[0]
        assert signal.strategy == "breakout"
        assert signal.side == SignalSide.BUY
        assert signal.instrument == "XAUTUSDT"
        assert signal.asset_type == AssetType.GOLD
        assert signal.levels is None

    @pytest.mark.asyncio
    async def test_risk_levels_attached(self, feeds, dispatcher):
        pipeline = SignalPipeline(
            single_target_settings(),
            feeds,
            [BreakoutStrategy(BreakoutConfig(lookback=5))],
            dispatcher,
            risk_config=RiskLevelConfig(atr_period=3),
        )

        await pipeline.run_tick()

        signal = dispatcher.dispatch.call_args.args[0]
        assert signal.levels is not None
        assert signal.levels.entry == 115
        assert signal.levels.sl < 115 < signal.levels.tp1 < signal.levels.tp2

    @pytest.mark.asyncio
    async def test_candle_limit_covers_strategies(self, feeds, feed, dispatcher):
        pipeline = SignalPipeline(
            single_target_settings(binance_klines_limit=10),
            feeds,
            [BreakoutStrategy(BreakoutConfig(lookback=30))],
            dispatcher,
            risk_config=RiskLevelConfig(atr_period=40),
        )

        await pipeline.run_tick()

        feed.get_candles.assert_awaited_once_with("XAUTUSDT", "15m", 41)

    @pytest.mark.asyncio
    async def test_http_error_skips_target(self, feeds, feed, dispatcher):
        feed.get_candles.side_effect = httpx.ConnectError("boom")
        pipeline = SignalPipeline(single_target_settings(), feeds, [BreakoutStrategy(BreakoutConfig(lookback=5))], dispatcher)

        assert await pipeline.run_tick() == 0
        dispatcher.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_isolated_per_target(self, feeds, feed, dispatcher):
        feed.get_candles.side_effect = [RuntimeError("bad payload"), make_candles(BREAKOUT_CLOSES)]
        settings = single_target_settings(default_timeframes="15m,1h")
        pipeline = SignalPipeline(settings, feeds, [BreakoutStrategy(BreakoutConfig(lookback=5))], dispatcher)

        assert await pipeline.run_tick() == 1
        assert dispatcher.dispatch.call_args.args[0].interval == "1h"

    @pytest.mark.asyncio
    async def test_no_strategies(self, feeds, feed, dispatcher):
        pipeline = SignalPipeline(single_target_settings(), feeds, [], dispatcher)

        assert await pipeline.run_tick() == 0
        feed.get_candles.assert_not_called()
