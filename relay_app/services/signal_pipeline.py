"""Strategy tick and the shared dedupe -> store -> route -> emit chain."""

import logging
from dataclasses import dataclass

import httpx

from relay_app.config import Settings
from relay_app.feeds import FeedRegistry
from relay_app.services.dedupe_guard import SignalDedupeGuard
from relay_app.services.delivery_emitter import DeliveryJobEmitter
from relay_app.services.routing_engine import RoutingEngine
from relay_app.storage.signal_repo import SignalRepository
from relay_core.dedupe import build_dedupe_key
from relay_core.models import AssetType, Signal, SignalKind
from relay_core.strategy import RiskLevelConfig, StrategyContext, attach_risk_levels

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitoringTarget:
    asset_type: AssetType
    instrument: str
    interval: str


def build_monitoring_plan(settings: Settings) -> list[MonitoringTarget]:
    """Enabled asset types x their instruments x configured timeframes."""
    plan = []
    seen = set()
    for asset_type in settings.enabled_asset_types:
        for instrument in settings.instruments_for(asset_type):
            for interval in settings.timeframe_list:
                target = MonitoringTarget(asset_type, instrument, interval)
                if target in seen:
                    continue
                seen.add(target)
                plan.append(target)
    return plan


class SignalDispatcher:
    """Dedupe, persist, route and emit one signal."""

    def __init__(
        self,
        guard: SignalDedupeGuard,
        routing: RoutingEngine,
        emitter: DeliveryJobEmitter,
        signal_repo: SignalRepository | None = None,
    ):
        self.guard = guard
        self.routing = routing
        self.emitter = emitter
        self.signal_repo = signal_repo or SignalRepository()

    async def dispatch(self, signal: Signal, bypass_dedupe: bool = False) -> bool:
        """Returns True when the signal was stored and routed.

        A failure after the dedupe claim releases it and re-raises, so the
        next tick retries the signal instead of suppressing it.
        """
        if not bypass_dedupe and not await self.guard.is_allowed(signal):
            return False

        try:
            return await self._store_and_route(signal)
        except Exception:
            if not bypass_dedupe:
                await self.guard.release(signal)
            raise

    async def _store_and_route(self, signal: Signal) -> bool:
        dedupe_key = build_dedupe_key(signal)
        stored = await self.signal_repo.store(signal, dedupe_key)
        if stored is None:
            logger.debug("Signal already stored, skipping: %s", dedupe_key)
            return False

        destinations = await self.routing.resolve_destinations(signal)
        await self.emitter.emit_signal(stored.id, signal, destinations)
        return True


class SignalPipeline:
    """Per tick: fetch candles once per target, run every enabled strategy."""

    def __init__(
        self,
        settings: Settings,
        feeds: FeedRegistry,
        strategies: list,
        dispatcher: SignalDispatcher,
        risk_config: RiskLevelConfig | None = None,
    ):
        self.settings = settings
        self.feeds = feeds
        self.strategies = strategies
        self.dispatcher = dispatcher
        self.risk_config = risk_config

    def _candle_limit(self) -> int:
        needed = max((s.min_candles for s in self.strategies), default=1)
        if self.risk_config is not None:
            needed = max(needed, self.risk_config.atr_period + 1)
        return max(self.settings.binance_klines_limit, needed)

    async def run_tick(self) -> int:
        """Returns the number of signals dispatched."""
        if not self.strategies:
            return 0

        dispatched = 0
        for target in build_monitoring_plan(self.settings):
            try:
                dispatched += await self.process_target(target)
            except Exception as e:
                logger.error(
                    f"Signal tick failed for {target.instrument} {target.interval}: {e}",
                    exc_info=True,
                )
        return dispatched

    async def process_target(self, target: MonitoringTarget) -> int:
        feed = self.feeds.get_feed(target.asset_type)
        try:
            candles = await feed.get_candles(target.instrument, target.interval, self._candle_limit())
        except httpx.HTTPError as e:
            logger.warning(f"Candle fetch failed for {target.instrument} {target.interval}: {e}")
            return 0

        if not candles:
            return 0

        context = StrategyContext(
            candles=candles,
            instrument=target.instrument,
            interval=target.interval,
            asset_type=target.asset_type,
        )

        dispatched = 0
        for strategy in self.strategies:
            signal = strategy.evaluate(context)
            if signal is None:
                continue
            if self.risk_config is not None and signal.kind == SignalKind.ENTRY:
                signal = attach_risk_levels(signal, candles, self.risk_config)
            if await self.dispatcher.dispatch(signal):
                dispatched += 1
        return dispatched
