"""Main application entry point.

Runs each tick-driven component in its own asyncio loop at a fixed cadence
plus a consumer for the TradingView ingest queue. A failing tick is logged
and the next one retries.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Awaitable, Callable

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from relay_app.clients.binance_rest import PROVIDER_NAME as BINANCE, BinanceRestClient
from relay_app.clients.okx_rest import PROVIDER_NAME as OKX, OkxRestClient
from relay_app.config import Settings, get_settings
from relay_app.feeds import BINANCE_SPOT, BinanceSpotCandleFeed, FeedRegistry
from relay_app.instrument_config import build_instrument_catalog
from relay_app.services.alert_evaluator import AlertEvaluator
from relay_app.services.dedupe_guard import SignalDedupeGuard
from relay_app.services.delivery_emitter import DeliveryJobEmitter
from relay_app.services.digest_builder import DigestBuilder
from relay_app.services.job_queue import JobQueue
from relay_app.services.routing_engine import RoutingEngine
from relay_app.services.signal_pipeline import SignalDispatcher, SignalPipeline
from relay_app.services.spread_monitor import SpreadMonitor
from relay_app.services.ticker_warmup import TickerWarmup
from relay_app.services.tradingview_ingest import TradingViewIngestWorker
from relay_app.storage import cache
from relay_app.storage.database import close_database, init_database
from relay_core.models import AssetType
from relay_core.strategy import build_strategies

logger = logging.getLogger(__name__)

DIGEST_CHECK_SECONDS = 30


@dataclass
class App:
    settings: Settings
    binance: BinanceRestClient
    okx: OkxRestClient
    signals_queue: JobQueue
    ingest_queue: JobQueue
    pipeline: SignalPipeline
    ingest_worker: TradingViewIngestWorker
    alerts: AlertEvaluator
    digest: DigestBuilder
    warmup: TickerWarmup
    spread: SpreadMonitor


def build_app(settings: Settings) -> App:
    """Wire every component from settings."""
    binance = BinanceRestClient(
        base_url=settings.binance_base_url,
        timeout=settings.binance_request_timeout_ms / 1000,
    )
    okx = OkxRestClient(
        base_url=settings.okx_base_url,
        timeout=settings.okx_request_timeout_ms / 1000,
    )
    feeds = FeedRegistry(
        providers={
            AssetType.GOLD: settings.price_provider_gold.upper(),
            AssetType.CRYPTO: settings.price_provider_crypto.upper(),
        },
        feeds={BINANCE_SPOT: BinanceSpotCandleFeed(binance)},
    )
    catalog = build_instrument_catalog(settings)

    signals_queue = JobQueue(
        settings.queue_signals_name,
        attempts=settings.signals_telegram_job_attempts,
        backoff_ms=settings.signals_telegram_job_backoff_delay_ms,
    )
    ingest_queue = JobQueue(settings.queue_ingest_name, attempts=1, backoff_ms=0)

    emitter = DeliveryJobEmitter(signals_queue)
    dispatcher = SignalDispatcher(
        guard=SignalDedupeGuard(
            dedupe_ttl_seconds=settings.signal_dedupe_ttl_seconds,
            cooldown_seconds=settings.signal_cooldown_seconds,
        ),
        routing=RoutingEngine(settings),
        emitter=emitter,
    )

    pipeline = SignalPipeline(
        settings,
        feeds,
        build_strategies(settings.strategy_params(), settings.strategy_list),
        dispatcher,
        risk_config=settings.risk_level_config() if settings.enable_risk_levels else None,
    )

    return App(
        settings=settings,
        binance=binance,
        okx=okx,
        signals_queue=signals_queue,
        ingest_queue=ingest_queue,
        pipeline=pipeline,
        ingest_worker=TradingViewIngestWorker(settings, feeds, dispatcher),
        alerts=AlertEvaluator(settings, feeds, catalog, signals_queue),
        digest=DigestBuilder(settings, emitter),
        warmup=TickerWarmup(settings, {
            BINANCE: binance.get_24h_tickers,
            OKX: okx.get_tickers,
        }),
        spread=SpreadMonitor(settings, emitter),
    )


async def run_periodic(name: str, interval: float, tick: Callable[[], Awaitable[object]]) -> None:
    """Await ``tick`` every ``interval`` seconds until cancelled."""
    logger.info("Starting %s loop (every %ss)", name, interval)
    while True:
        try:
            await tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{name} tick failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


async def consume_ingest_queue(app: App) -> None:
    """Reserve, handle and ack TradingView ingest jobs.

    Run one ingest consumer per queue name; see ``JobQueue.recover``.
    """
    await app.ingest_queue.recover()
    while True:
        reserved = await app.ingest_queue.reserve(timeout=1.0)
        if reserved is None:
            if not cache.is_cache_available():
                await asyncio.sleep(1.0)
            continue
        try:
            await app.ingest_worker.handle(reserved.job)
        except Exception as e:
            # Left in the active list; recovered on next start
            logger.error(f"TradingView ingest failed for job {reserved.job.id}: {e}", exc_info=True)
            continue
        await app.ingest_queue.ack(reserved)


async def run(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    await init_database()
    await cache.init_cache()
    app = build_app(settings)

    tasks = []
    if settings.monitoring_enabled and settings.signal_engine_enabled:
        tasks.append(asyncio.create_task(run_periodic(
            "signal pipeline", settings.signal_engine_interval_seconds, app.pipeline.run_tick,
        )))
    if settings.alerts_enabled:
        tasks.append(asyncio.create_task(run_periodic(
            "alert evaluator", settings.alerts_interval_seconds, app.alerts.run_tick,
        )))
    if settings.digest_enabled:
        tasks.append(asyncio.create_task(run_periodic(
            "digest builder", DIGEST_CHECK_SECONDS, app.digest.run_tick,
        )))
    if settings.ticker_warmup_enabled:
        tasks.append(asyncio.create_task(run_periodic(
            "ticker warm-up", settings.ticker_warmup_interval_seconds, app.warmup.run_tick,
        )))
    if settings.spread_monitor_enabled:
        tasks.append(asyncio.create_task(run_periodic(
            "spread monitor", settings.spread_monitor_interval_seconds, app.spread.run_tick,
        )))
    tasks.append(asyncio.create_task(consume_ingest_queue(app)))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows

    logger.info("signal-relay started with %d loops", len(tasks))
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await app.binance.close()
        await app.okx.close()
        await cache.close_cache()
        await close_database()
        logger.info("Shutdown complete")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
