"""Consumer for ``ingestTradingViewAlert`` jobs."""

import asyncio
import logging
from typing import Any

from relay_app.config import Settings
from relay_app.feeds import FeedRegistry
from relay_app.services.job_queue import (
    INGEST_TRADINGVIEW_ALERT,
    IngestTradingViewAlertPayload,
    Job,
    JobQueue,
    utc_now_iso,
)
from relay_app.services.signal_pipeline import SignalDispatcher
from relay_app.storage import market_data_cache
from relay_core.models import AssetType
from relay_core.prices import resolve_price
from relay_core.tradingview import (
    TradingViewDefaults,
    UnparsedPayload,
    has_price,
    map_to_signal,
    parse_payload,
)

logger = logging.getLogger(__name__)


async def enqueue_tradingview_alert(
    queue: JobQueue,
    payload_raw: Any,
    ip: str | None = None,
    headers_subset: dict[str, str] | None = None,
) -> Job:
    """Producer side, called by the inbound webhook surface."""
    return await queue.add(
        INGEST_TRADINGVIEW_ALERT,
        IngestTradingViewAlertPayload(
            received_at=utc_now_iso(),
            ip=ip,
            headers_subset=headers_subset,
            payload_raw=payload_raw,
        ),
    )


class TradingViewIngestWorker:

    def __init__(
        self,
        settings: Settings,
        feeds: FeedRegistry,
        dispatcher: SignalDispatcher,
        defaults: TradingViewDefaults | None = None,
    ):
        self.settings = settings
        self.feeds = feeds
        self.dispatcher = dispatcher
        self.defaults = defaults or settings.tradingview_defaults()

    async def handle(self, job: Job) -> bool:
        """Process one ingest job. Returns True when a signal was dispatched."""
        if job.name != INGEST_TRADINGVIEW_ALERT:
            return False

        payload = IngestTradingViewAlertPayload.model_validate(job.data)
        parsed = parse_payload(payload.payload_raw)
        if isinstance(parsed, UnparsedPayload):
            logger.warning(f"TradingView payload parse error for job {job.id}: {parsed.error}")

        price_fallback = None
        if not has_price(parsed.fields):
            price_fallback = await self.resolve_price_fallback(parsed.fields)

        signal = map_to_signal(parsed, self.defaults, price_fallback)
        if signal.price is None:
            logger.warning(
                f"TradingView price unavailable for job {job.id} "
                f"({signal.instrument} {signal.interval})"
            )

        return await self.dispatcher.dispatch(
            signal,
            bypass_dedupe=self.settings.tradingview_bypass_dedupe,
        )

    async def resolve_price_fallback(self, fields: dict[str, Any]) -> float | None:
        """Best cached ticker across providers, else the last candle close.

        The candle fetch is bounded by the fallback timeout.
        """
        try:
            asset_type = AssetType(str(fields.get("assetType") or self.defaults.asset_type.value).upper())
        except ValueError:
            asset_type = self.defaults.asset_type
        instrument = str(fields.get("instrument") or fields.get("symbol") or self.defaults.instrument)
        interval = str(fields.get("interval") or fields.get("timeframe") or self.defaults.interval)

        cached = await market_data_cache.get_best_across_providers(instrument, self.settings.provider_list)
        if cached is not None:
            price = resolve_price(cached)
            if price is not None:
                return price

        timeout = self.settings.tradingview_price_fallback_timeout_ms / 1000

        try:
            feed = self.feeds.get_feed(asset_type)
            candles = await asyncio.wait_for(feed.get_candles(instrument, interval, 1), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"TradingView price fallback timed out for {instrument} {interval}")
            return None
        except Exception as e:
            logger.warning(f"Failed to resolve TradingView price fallback: {e}")
            return None

        if not candles:
            return None
        return candles[-1].close
