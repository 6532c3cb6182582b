"""Candle feeds, selected per asset type."""

from typing import Protocol, runtime_checkable

from relay_app.clients.binance_rest import BinanceRestClient
from relay_core.models import AssetType, Candle

BINANCE_SPOT = "BINANCE_SPOT"


@runtime_checkable
class CandleFeed(Protocol):
    """Ordered (oldest first) candles for an instrument/interval."""

    async def get_candles(self, instrument: str, interval: str, limit: int) -> list[Candle]:
        ...


class BinanceSpotCandleFeed:
    def __init__(self, client: BinanceRestClient):
        self.client = client

    async def get_candles(self, instrument: str, interval: str, limit: int) -> list[Candle]:
        return await self.client.get_klines(instrument, interval, limit)


class FeedRegistry:
    """Maps an asset type to the feed of its configured price provider."""

    def __init__(self, providers: dict[AssetType, str], feeds: dict[str, CandleFeed]):
        self._providers = providers
        self._feeds = feeds

    def get_feed(self, asset_type: AssetType) -> CandleFeed:
        provider = self._providers.get(asset_type, BINANCE_SPOT)
        feed = self._feeds.get(provider)
        if feed is None:
            raise KeyError(f"Unsupported price provider {provider} for {asset_type.value}")
        return feed
