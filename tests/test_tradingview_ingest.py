"""Tests for the TradingView ingest worker."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from relay_app.config import Settings
from relay_app.services.job_queue import (
    INGEST_TRADINGVIEW_ALERT,
    SEND_TELEGRAM_TEXT,
    IngestTradingViewAlertPayload,
    Job,
)
from relay_app.services import tradingview_ingest
from relay_app.services.tradingview_ingest import TradingViewIngestWorker, enqueue_tradingview_alert
from relay_core.models import AssetType, CachedTicker, Candle, SignalSide


def make_job(payload_raw, name: str = INGEST_TRADINGVIEW_ALERT) -> Job:
    data = IngestTradingViewAlertPayload(
        received_at="2024-01-01T00:00:00Z",
        ip="52.89.214.238",
        payload_raw=payload_raw,
    ).model_dump(mode="json", by_alias=True)
    return Job(id="job-1", name=name, data=data, enqueued_at=0)


def make_candle(close: float) -> Candle:
    return Candle(open_time=0, open=close, high=close, low=close, close=close, close_time=59_999)


class SlowFeed:
    async def get_candles(self, instrument, interval, limit):
        await asyncio.sleep(1)
        return [make_candle(1.0)]


@pytest.fixture
def feed():
    feed = MagicMock()
    feed.get_candles = AsyncMock(return_value=[make_candle(2001.0)])
    return feed


@pytest.fixture
def feeds(feed):
    feeds = MagicMock()
    feeds.get_feed.return_value = feed
    return feeds


@pytest.fixture
def dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=True)
    return dispatcher


class TestTradingViewIngestWorker:
    """Tests for TradingViewIngestWorker.handle."""

    @pytest.mark.asyncio
    async def test_payload_with_price(self, feeds, feed, dispatcher):
        worker = TradingViewIngestWorker(Settings(_env_file=None), feeds, dispatcher)

        assert await worker.handle(make_job('{"signal":"buy","price":"101.5"}')) is True

        signal = dispatcher.dispatch.call_args.args[0]
        assert signal.side == SignalSide.BUY
        assert signal.price == 101.5
        assert dispatcher.dispatch.call_args.kwargs == {"bypass_dedupe": False}
        feed.get_candles.assert_not_called()

    @pytest.mark.asyncio
    async def test_price_fallback_from_feed(self, feeds, feed, dispatcher):
        worker = TradingViewIngestWorker(Settings(_env_file=None), feeds, dispatcher)

        await worker.handle(make_job({"signal": "sell", "symbol": "BTCUSDT", "assetType": "CRYPTO"}))

        feeds.get_feed.assert_called_once_with(AssetType.CRYPTO)
        feed.get_candles.assert_awaited_once_with("BTCUSDT", "15m", 1)
        signal = dispatcher.dispatch.call_args.args[0]
        assert signal.price == 2001.0
        assert "(price unavailable)" not in signal.reason

    @pytest.mark.asyncio
    async def test_price_fallback_timeout(self, feeds, dispatcher):
        feeds.get_feed.return_value = SlowFeed()
        settings = Settings(_env_file=None, tradingview_price_fallback_timeout_ms=10)
        worker = TradingViewIngestWorker(settings, feeds, dispatcher)

        await worker.handle(make_job('{"signal":"buy"}'))

        signal = dispatcher.dispatch.call_args.args[0]
        assert signal.price is None
        assert signal.reason.endswith("(price unavailable)")

    @pytest.mark.asyncio
    async def test_price_fallback_error(self, feeds, feed, dispatcher):
        feed.get_candles.side_effect = RuntimeError("upstream down")
        worker = TradingViewIngestWorker(Settings(_env_file=None), feeds, dispatcher)

        await worker.handle(make_job('{"signal":"buy"}'))

        assert dispatcher.dispatch.call_args.args[0].price is None

    @pytest.mark.asyncio
    async def test_price_fallback_prefers_cached_ticker(self, feeds, feed, dispatcher):
        worker = TradingViewIngestWorker(Settings(_env_file=None, market_data_providers="binance,okx"), feeds, dispatcher)
        best = CachedTicker(provider="okx", symbol="XAUTUSDT", bid=2050.0, ask=2052.0, ts=1)

        with patch.object(tradingview_ingest.market_data_cache, 'get_best_across_providers', new_callable=AsyncMock, return_value=best) as mock_best:
            await worker.handle(make_job('{"signal":"buy"}'))

            mock_best.assert_awaited_once_with("XAUTUSDT", ["binance", "okx"])

        # Mid of bid/ask when the cached ticker has no last
        assert dispatcher.dispatch.call_args.args[0].price == 2051.0
        feed.get_candles.assert_not_called()

    @pytest.mark.asyncio
    async def test_plain_text_still_dispatched(self, feeds, dispatcher):
        worker = TradingViewIngestWorker(Settings(_env_file=None), feeds, dispatcher)

        await worker.handle(make_job("XAU looks heavy"))

        signal = dispatcher.dispatch.call_args.args[0]
        assert "parse_error" in signal.tags
        assert signal.price == 2001.0

    @pytest.mark.asyncio
    async def test_bypass_dedupe_setting(self, feeds, dispatcher):
        settings = Settings(_env_file=None, tradingview_bypass_dedupe=True)
        worker = TradingViewIngestWorker(settings, feeds, dispatcher)

        await worker.handle(make_job({"price": 1}))

        assert dispatcher.dispatch.call_args.kwargs == {"bypass_dedupe": True}

    @pytest.mark.asyncio
    async def test_other_job_ignored(self, feeds, dispatcher):
        worker = TradingViewIngestWorker(Settings(_env_file=None), feeds, dispatcher)
        job = Job(id="job-2", name=SEND_TELEGRAM_TEXT, data={}, enqueued_at=0)

        assert await worker.handle(job) is False
        dispatcher.dispatch.assert_not_called()


class TestEnqueueTradingViewAlert:

    @pytest.mark.asyncio
    async def test_enqueue(self):
        queue = MagicMock()
        queue.add = AsyncMock()

        await enqueue_tradingview_alert(queue, '{"signal":"buy"}', ip="1.2.3.4", headers_subset={"user-agent": "Go"})

        name, payload = queue.add.call_args.args
        assert name == INGEST_TRADINGVIEW_ALERT
        assert payload.payload_raw == '{"signal":"buy"}'
        assert payload.ip == "1.2.3.4"
        assert payload.received_at.endswith("Z")
