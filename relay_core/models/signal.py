"""Signal data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SignalSource(str, Enum):
    """Where a signal came from."""

    BINANCE = "BINANCE"
    TRADINGVIEW = "TRADINGVIEW"


class AssetType(str, Enum):
    """Asset class used to pick a candle feed and routing rules."""

    GOLD = "GOLD"
    CRYPTO = "CRYPTO"


class SignalKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    ALERT = "ALERT"


class SignalSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class SignalLevels(BaseModel):
    """Risk levels attached to an entry signal."""

    model_config = ConfigDict(frozen=True)

    entry: float | None = None
    sl: float | None = None
    tp1: float | None = None
    tp2: float | None = None


class Signal(BaseModel):
    """Canonical directional signal.

    Produced by a strategy evaluator or the TradingView mapper and never
    mutated afterwards; use ``model_copy(update=...)`` to derive a new one.
    Serializes to camelCase (``assetType``, ``externalId``...) for job payloads.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    source: SignalSource = SignalSource.BINANCE
    asset_type: AssetType
    instrument: str
    interval: str
    strategy: str
    kind: SignalKind
    side: SignalSide
    price: float | None = None
    time: int  # epoch ms
    confidence: float = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    reason: str = ""
    levels: SignalLevels | None = None
    external_id: str | None = None
    raw_payload: Any = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape used on the job queue."""
        return self.model_dump(mode="json", by_alias=True)
