"""Routing rule matching (pure).

Instrument and strategy are stored on rules by id; the caller resolves the
signal's symbolic instrument/strategy to ids and passes them in a
RoutingContext.
"""

from dataclasses import dataclass
from typing import Iterable

from relay_core.models import Destination, RoutingRule, Signal


@dataclass(frozen=True)
class RoutingContext:
    instrument_id: str | None = None
    strategy_id: str | None = None


def matches_routing_rule(rule: RoutingRule, signal: Signal, context: RoutingContext) -> bool:
    """Return True when every non-null field of ``rule`` matches the signal."""
    if rule.asset_type is not None and rule.asset_type != signal.asset_type:
        return False
    if rule.instrument_id is not None and rule.instrument_id != context.instrument_id:
        return False
    if rule.strategy_id is not None and rule.strategy_id != context.strategy_id:
        return False
    if rule.interval is not None and rule.interval != signal.interval:
        return False
    if rule.min_confidence is not None and signal.confidence < rule.min_confidence:
        return False
    return True


def unique_destinations(destinations: Iterable[Destination]) -> list[Destination]:
    """Drop repeated destination ids, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for destination in destinations:
        if destination.id in seen:
            continue
        seen.add(destination.id)
        result.append(destination)
    return result
