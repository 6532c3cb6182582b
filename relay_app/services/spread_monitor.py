"""Cross-provider spread and staleness watch.

Per tick: read every configured provider's cached ticker for each tracked
symbol, flag providers whose ticker is older than the staleness window, and
post a text alert for symbols whose fresh prices diverge past the threshold.
A per-symbol cooldown key keeps a persistent spread from re-alerting every
tick.
"""

import logging
from dataclasses import dataclass, field

from relay_app.config import Settings
from relay_app.services.delivery_emitter import DeliveryJobEmitter
from relay_app.storage import cache, market_data_cache
from relay_core.prices import SpreadAlert, find_spread_alerts, render_spread_message

logger = logging.getLogger(__name__)


@dataclass
class SpreadScan:
    alerts: list[SpreadAlert] = field(default_factory=list)
    notified: list[str] = field(default_factory=list)
    stale: dict[str, list[str]] = field(default_factory=dict)


def cooldown_key(symbol: str) -> str:
    return f"{cache.KEY_PREFIX_SPREAD}{symbol}"


class SpreadMonitor:

    def __init__(self, settings: Settings, emitter: DeliveryJobEmitter):
        self.settings = settings
        self.emitter = emitter

    async def run_tick(self) -> SpreadScan:
        providers = self.settings.provider_list
        symbols = self.settings.tracked_symbols
        scan = SpreadScan()
        if len(providers) < 2 or not symbols:
            return scan

        aggregations = await market_data_cache.get_aggregated_prices(
            symbols, providers, max_age_ms=self.settings.spread_stale_ms,
        )
        for agg in aggregations:
            if agg.stale_providers:
                scan.stale[agg.symbol] = agg.stale_providers
                logger.warning(f"Stale tickers for {agg.symbol}: {', '.join(agg.stale_providers)}")

        scan.alerts = find_spread_alerts(aggregations, self.settings.spread_alert_min_pct)
        for alert in scan.alerts:
            if await self.notify(alert):
                scan.notified.append(alert.symbol)
        return scan

    async def notify(self, alert: SpreadAlert) -> bool:
        """Post one spread alert unless the symbol is cooling down."""
        chat_ids = self.settings.spread_alert_chat_id_list
        if not chat_ids:
            logger.debug("Spread alert for %s has no destination", alert.symbol)
            return False

        key = cooldown_key(alert.symbol)
        claimed = await cache.set_nx(key, b"1", self.settings.spread_alert_cooldown_seconds)
        if claimed is False:
            return False

        text = render_spread_message(alert)
        try:
            for chat_id in chat_ids:
                await self.emitter.emit_text(chat_id, text)
        except Exception as e:
            await cache.delete(key)
            logger.error(f"Spread alert for {alert.symbol} failed: {e}")
            return False

        logger.info(
            "Spread %.2f%% on %s (%s %s / %s %s)",
            alert.spread_pct, alert.symbol,
            alert.high.provider, alert.high.price, alert.low.provider, alert.low.price,
        )
        return True
