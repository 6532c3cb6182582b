"""Tests for the Binance REST client and candle feeds."""

import orjson
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from relay_app.clients.binance_rest import BinanceRestClient
from relay_app.feeds import BINANCE_SPOT, BinanceSpotCandleFeed, FeedRegistry
from relay_core.models import AssetType

KLINE = [
    1704067200000, "2050.10", "2055.00", "2049.50", "2053.25", "12.5",
    1704068099999, "25665.0", 100, "6.0", "12320.0", "0",
]


class TestBinanceRestClient:
    """Tests for BinanceRestClient parsing."""

    @pytest.mark.asyncio
    async def test_get_klines(self):
        client = BinanceRestClient()
        with patch.object(client, '_request', new_callable=AsyncMock, return_value=[KLINE]) as mock_request:
            candles = await client.get_klines("xautusdt", "15m", limit=5000)

            method, endpoint, params = mock_request.call_args.args
            assert (method, endpoint) == ("GET", "/api/v3/klines")
            assert params == {"symbol": "XAUTUSDT", "interval": "15m", "limit": 1000}

        [candle] = candles
        assert candle.open_time == 1704067200000
        assert candle.high == 2055.0
        assert candle.close == 2053.25
        assert candle.close_time == 1704068099999

    @pytest.mark.asyncio
    async def test_get_24h_tickers(self):
        client = BinanceRestClient()
        data = [{
            "symbol": "BTCUSDT",
            "bidPrice": "42000.10",
            "askPrice": "42000.20",
            "lastPrice": "42000.15",
            "closeTime": 1704067200000,
        }]
        with patch.object(client, '_request', new_callable=AsyncMock, return_value=data) as mock_request:
            [ticker] = await client.get_24h_tickers(["btcusdt"])

            params = mock_request.call_args.args[2]
            assert orjson.loads(params["symbols"]) == ["BTCUSDT"]
            # Compact JSON array, as the endpoint expects
            assert params["symbols"] == '["BTCUSDT"]'

        assert ticker.provider == "binance"
        assert ticker.bid == 42000.10
        assert ticker.last == 42000.15
        assert ticker.ts == 1704067200000

    @pytest.mark.asyncio
    async def test_get_24h_tickers_empty(self):
        client = BinanceRestClient()
        with patch.object(client, '_request', new_callable=AsyncMock) as mock_request:
            assert await client.get_24h_tickers([]) == []
            mock_request.assert_not_called()


class TestFeedRegistry:

    def test_feed_per_asset_type(self):
        feed = BinanceSpotCandleFeed(MagicMock())
        registry = FeedRegistry({AssetType.GOLD: BINANCE_SPOT}, {BINANCE_SPOT: feed})

        assert registry.get_feed(AssetType.GOLD) is feed
        # Unconfigured asset types default to Binance spot
        assert registry.get_feed(AssetType.CRYPTO) is feed

    def test_unknown_provider(self):
        registry = FeedRegistry({AssetType.GOLD: "OANDA"}, {})
        with pytest.raises(KeyError):
            registry.get_feed(AssetType.GOLD)

    @pytest.mark.asyncio
    async def test_binance_feed_delegates(self):
        client = MagicMock()
        client.get_klines = AsyncMock(return_value=[])

        await BinanceSpotCandleFeed(client).get_candles("BTCUSDT", "1h", 3)

        client.get_klines.assert_awaited_once_with("BTCUSDT", "1h", 3)
