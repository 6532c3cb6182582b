"""Periodic ticker warm-up into the market data cache."""

import logging

from relay_app.config import Settings
from relay_app.storage import market_data_cache
from relay_app.storage.market_data_cache import TickerFetcher

logger = logging.getLogger(__name__)


class TickerWarmup:
    """Fetch 24h tickers for tracked symbols from every configured provider."""

    def __init__(self, settings: Settings, fetchers: dict[str, TickerFetcher]):
        self.settings = settings
        self.fetchers = fetchers

    async def run_tick(self) -> int:
        """Returns the total number of tickers written."""
        symbols = self.settings.tracked_symbols
        timeout = self.settings.ticker_warmup_timeout_ms / 1000
        total = 0
        for provider in self.settings.provider_list:
            fetcher = self.fetchers.get(provider)
            if fetcher is None:
                logger.warning(f"No ticker fetcher for provider '{provider}'")
                continue
            total += await market_data_cache.warm_up(provider, symbols, fetcher, timeout=timeout)
        return total
