"""Alert rule predicates, asset-type resolution and alert messages (pure)."""

import html
from typing import Iterable, Mapping

from relay_core.models import AlertRule, AlertType, AssetType


def is_triggered(rule: AlertRule, price: float) -> bool:
    """Check whether ``price`` satisfies the rule's trigger condition.

    UP_PCT:   price >= base * (1 + threshold / 100)
    DOWN_PCT: price <= base * (1 - threshold / 100)
    TP1:      a target below base triggers on the way down, otherwise up.

    Rules missing the values their type needs never trigger.
    """
    base, threshold = rule.base_price, rule.threshold

    if rule.type == AlertType.UP_PCT:
        if not base or threshold is None:
            return False
        return price >= base * (1 + threshold / 100)

    if rule.type == AlertType.DOWN_PCT:
        if not base or threshold is None:
            return False
        return price <= base * (1 - threshold / 100)

    if rule.type == AlertType.TP1:
        if threshold is None:
            return False
        if base and threshold < base:
            return price <= threshold
        return price >= threshold

    return False


class InstrumentCatalog:
    """Explicit instrument -> asset type lookup.

    Symbols missing from the table fall back to name matching: anything
    containing ``XAU`` or listed in the gold allowlist is GOLD, the rest is
    CRYPTO.
    """

    def __init__(
        self,
        entries: Mapping[str, AssetType] | None = None,
        gold_allowlist: Iterable[str] = (),
    ):
        self._entries = {k.strip().upper(): v for k, v in (entries or {}).items()}
        self._gold = {s.strip().upper() for s in gold_allowlist if s.strip()}

    def register(self, symbol: str, asset_type: AssetType) -> None:
        self._entries[symbol.strip().upper()] = asset_type

    def __contains__(self, symbol: str) -> bool:
        return symbol.strip().upper() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, symbol: str) -> AssetType:
        normalized = symbol.strip().upper()
        known = self._entries.get(normalized)
        if known is not None:
            return known
        return fallback_asset_type(normalized, self._gold)


def fallback_asset_type(symbol: str, gold_allowlist: Iterable[str]) -> AssetType:
    normalized = symbol.strip().upper()
    if "XAU" in normalized or normalized in {s.upper() for s in gold_allowlist}:
        return AssetType.GOLD
    return AssetType.CRYPTO


def threshold_label(rule: AlertRule) -> str:
    threshold = rule.threshold if rule.threshold is not None else 0
    if rule.type == AlertType.UP_PCT:
        return f"+{threshold:g}%"
    if rule.type == AlertType.DOWN_PCT:
        return f"-{threshold:g}%"
    return "TP1"


def render_alert_message(rule: AlertRule, price: float) -> str:
    """HTML message sent to the rule's owner when it triggers."""
    return (
        "🔔 <b>Alert triggered</b>\n"
        f"<b>{html.escape(rule.instrument)}</b> {threshold_label(rule)}\n"
        f"Price: {price:.4f}"
    )
