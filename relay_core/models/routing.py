"""Routing rule and destination models."""

from enum import Enum

from pydantic import BaseModel

from relay_core.models.signal import AssetType


class DestinationType(str, Enum):
    GROUP = "GROUP"
    CHANNEL = "CHANNEL"


class Destination(BaseModel):
    """An addressable outbound chat (group or channel)."""

    id: str
    destination_type: DestinationType
    chat_id: str
    title: str | None = None
    is_active: bool = True


class RoutingRule(BaseModel):
    """Maps signal attributes to a destination.

    Every ``None`` field is a wildcard.
    """

    id: str | None = None
    asset_type: AssetType | None = None
    instrument_id: str | None = None
    strategy_id: str | None = None
    interval: str | None = None
    min_confidence: float | None = None
    destination_id: str
    is_active: bool = True
