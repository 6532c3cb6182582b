"""Resolve a signal's destinations from routing rules.

No active rule at all -> fallback destinations from settings, upserted in one
transaction. Otherwise every matching rule contributes its destination,
deduplicated by id in first-seen order.
"""

import asyncio
import logging

from relay_app.config import Settings
from relay_app.storage.routing_repo import DestinationTarget, RoutingRepository
from relay_core.models import Destination, DestinationType, Signal
from relay_core.routing import RoutingContext, matches_routing_rule, unique_destinations

logger = logging.getLogger(__name__)


def fallback_targets(settings: Settings) -> list[DestinationTarget]:
    """Default destinations from TELEGRAM_* settings."""
    targets = []

    direct_chat_id = settings.telegram_chat_id.strip()
    if direct_chat_id:
        targets.append(DestinationTarget(
            destination_type=settings.telegram_chat_type,
            chat_id=direct_chat_id,
        ))

    channel_id = settings.telegram_signal_channel_id.strip()
    if channel_id:
        targets.append(DestinationTarget(
            destination_type=DestinationType.CHANNEL,
            chat_id=channel_id,
            title=settings.telegram_signal_channel_title or None,
        ))

    group_id = settings.telegram_signal_group_id.strip()
    if group_id:
        targets.append(DestinationTarget(
            destination_type=DestinationType.GROUP,
            chat_id=group_id,
            title=settings.telegram_signal_group_title or None,
        ))

    return targets


class RoutingEngine:

    def __init__(self, settings: Settings, repo: RoutingRepository | None = None):
        self.settings = settings
        self.repo = repo or RoutingRepository()

    async def resolve_destinations(self, signal: Signal) -> list[Destination]:
        instrument_id, strategy_id, rules = await asyncio.gather(
            self.repo.find_instrument_id(signal.instrument, signal.asset_type),
            self.repo.find_strategy_id(signal.strategy),
            self.repo.get_active_rules(),
        )

        if not rules:
            return await self.ensure_fallback_destinations()

        context = RoutingContext(instrument_id=instrument_id, strategy_id=strategy_id)
        return unique_destinations(
            destination
            for rule, destination in rules
            if matches_routing_rule(rule, signal, context)
        )

    async def ensure_fallback_destinations(self) -> list[Destination]:
        targets = fallback_targets(self.settings)
        if not targets:
            logger.warning("No routing rules or fallback Telegram destinations configured.")
            return []
        return await self.repo.upsert_destinations(targets)
