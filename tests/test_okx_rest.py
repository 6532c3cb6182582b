"""Tests for the OKX REST client."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from relay_app.clients.okx_rest import OkxRestClient, from_okx_symbol, to_okx_symbol

TICKERS = [
    {"instId": "BTC-USDT", "last": "42000.5", "bidPx": "42000.1", "askPx": "42000.9", "ts": "1704067200000"},
    {"instId": "ETH-USDT", "last": "2200", "bidPx": "2199.9", "askPx": "2200.1", "ts": "1704067200000"},
    {"instId": "XAUT-USDT", "last": "", "bidPx": "2050.0", "askPx": "2051.0", "ts": ""},
]


class TestOkxSymbols:

    def test_to_okx_symbol(self):
        assert to_okx_symbol("btcusdt") == "BTC-USDT"
        assert to_okx_symbol("ETHBTC") == "ETH-BTC"
        assert to_okx_symbol("BTC-USDT") == "BTC-USDT"
        assert to_okx_symbol("USDT") == "USDT"

    def test_from_okx_symbol(self):
        assert from_okx_symbol("btc-usdt") == "BTCUSDT"


class TestOkxRestClient:
    """Tests for OkxRestClient.get_tickers."""

    @pytest.mark.asyncio
    async def test_get_tickers_filters_requested(self):
        client = OkxRestClient()
        with patch.object(client, '_request', new_callable=AsyncMock, return_value=TICKERS) as mock_request:
            tickers = await client.get_tickers(["btcusdt", "XAUTUSDT"])

            mock_request.assert_awaited_once_with("/api/v5/market/tickers", {"instType": "SPOT"})

        btc, xaut = tickers
        assert btc.provider == "okx"
        assert btc.symbol == "BTCUSDT"
        assert btc.last == 42000.5
        assert btc.bid == 42000.1
        assert btc.ts == 1704067200000
        # Blank fields become None; missing ts falls back to fetch time
        assert xaut.last is None
        assert xaut.ask == 2051.0
        assert xaut.ts > 1704067200000

    @pytest.mark.asyncio
    async def test_get_tickers_empty(self):
        client = OkxRestClient()
        with patch.object(client, '_request', new_callable=AsyncMock) as mock_request:
            assert await client.get_tickers([]) == []
            mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_envelope_raises(self):
        client = OkxRestClient()
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json.return_value = {"code": "50011", "msg": "Too Many Requests", "data": []}
        http = MagicMock()
        http.get = AsyncMock(return_value=response)

        with patch.object(client, '_get_client', new_callable=AsyncMock, return_value=http):
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_tickers(["BTCUSDT"])

    @pytest.mark.asyncio
    async def test_data_unwrapped(self):
        client = OkxRestClient()
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json.return_value = {"code": "0", "msg": "", "data": TICKERS[:1]}
        http = MagicMock()
        http.get = AsyncMock(return_value=response)

        with patch.object(client, '_get_client', new_callable=AsyncMock, return_value=http):
            [ticker] = await client.get_tickers(["BTCUSDT"])

        assert ticker.last == 42000.5
        http.get.assert_awaited_once_with("/api/v5/market/tickers", params={"instType": "SPOT"})
