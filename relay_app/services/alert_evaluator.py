"""One-shot price alerts.

Per tick:
1. Drain outbox rows left unsent by earlier ticks.
2. Load active, unexpired rules.
3. For each rule resolve the instrument's price (shared per tick), test the
   trigger, and on trigger flip the rule inactive together with an outbox row
   in one transaction; enqueue the message and mark the row sent.

A rule that fails is logged and skipped; the rest of the batch continues.
"""

import logging
from datetime import datetime, timezone

from relay_app.config import Settings
from relay_app.feeds import FeedRegistry
from relay_app.services.job_queue import SEND_TELEGRAM_TEXT, JobQueue, SendTelegramTextPayload
from relay_app.storage import price_cache
from relay_app.storage.alert_repo import AlertRepository, OutboxEntry
from relay_core.alerts import InstrumentCatalog, is_triggered, render_alert_message
from relay_core.models import AlertRule

logger = logging.getLogger(__name__)


class AlertEvaluator:

    def __init__(
        self,
        settings: Settings,
        feeds: FeedRegistry,
        catalog: InstrumentCatalog,
        queue: JobQueue,
        repo: AlertRepository | None = None,
    ):
        self.settings = settings
        self.feeds = feeds
        self.catalog = catalog
        self.queue = queue
        self.repo = repo or AlertRepository()

    async def run_tick(self, now: datetime | None = None) -> int:
        """Returns the number of rules triggered this tick."""
        now = now or datetime.now(timezone.utc)

        await self.drain_outbox()

        rules = await self.repo.get_active(now)
        if not rules:
            return 0

        prices: dict[str, float | None] = {}
        triggered = 0
        for rule in rules:
            try:
                if await self.evaluate_rule(rule, prices):
                    triggered += 1
            except Exception as e:
                logger.warning(f"Alert evaluation failed for {rule.instrument}: {e}")
        return triggered

    async def evaluate_rule(self, rule: AlertRule, prices: dict[str, float | None]) -> bool:
        price = await self.get_current_price(rule.instrument, prices)
        if price is None:
            return False
        if not is_triggered(rule, price):
            return False

        payload = SendTelegramTextPayload(
            chat_id=rule.user_id,
            text=render_alert_message(rule, price),
            parse_mode="HTML",
        ).model_dump(mode="json", by_alias=True)

        entry = await self.repo.deactivate_with_outbox(rule.id, SEND_TELEGRAM_TEXT, payload)
        if entry is None:
            logger.debug("Alert %s already deactivated elsewhere", rule.id)
            return False

        await self._send(entry)
        logger.info("Alert %s triggered for %s at %.4f", rule.id, rule.instrument, price)
        return True

    async def get_current_price(self, instrument: str, prices: dict[str, float | None]) -> float | None:
        """Per-tick dict, then the last-price cache, then the candle feed."""
        if instrument in prices:
            return prices[instrument]

        price = await price_cache.get_last_price(instrument)
        if price is None:
            feed = self.feeds.get_feed(self.catalog.resolve(instrument))
            candles = await feed.get_candles(instrument, self.settings.binance_interval, 1)
            if candles:
                price = candles[-1].close
                await price_cache.set_last_price(instrument, price)

        prices[instrument] = price
        return price

    async def drain_outbox(self) -> int:
        """Enqueue outbox rows that were written but never sent."""
        sent = 0
        for entry in await self.repo.get_unsent_outbox():
            try:
                await self._send(entry)
                sent += 1
            except Exception as e:
                logger.warning(f"Outbox entry {entry.id} not sent: {e}")
        return sent

    async def _send(self, entry: OutboxEntry) -> None:
        await self.queue.add(entry.job_name, entry.payload)
        await self.repo.mark_outbox_sent(entry.id)
