"""Data models."""

from relay_core.models.candle import Candle
from relay_core.models.signal import (
    AssetType,
    Signal,
    SignalKind,
    SignalLevels,
    SignalSide,
    SignalSource,
)
from relay_core.models.alert import AlertRule, AlertType
from relay_core.models.routing import Destination, DestinationType, RoutingRule
from relay_core.models.market import CachedTicker
from relay_core.models.chat import ChatConfig

__all__ = [
    "Candle",
    "AssetType",
    "Signal",
    "SignalKind",
    "SignalLevels",
    "SignalSide",
    "SignalSource",
    "AlertRule",
    "AlertType",
    "Destination",
    "DestinationType",
    "RoutingRule",
    "CachedTicker",
    "ChatConfig",
]
