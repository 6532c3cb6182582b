"""TradingView alert payload -> canonical Signal.

Inbound alerts are whatever the user typed into the TradingView alert box:
usually JSON, sometimes plain text. Parsing yields a tagged result so the
mapper handles both shapes explicitly, and mapping never raises.
"""

import math
import time as _time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import orjson

from relay_core.models import AssetType, Signal, SignalKind, SignalSide, SignalSource

PARSE_ERROR_TAG = "parse_error"
DEFAULT_TAGS = ["tradingview"]
DEFAULT_REASON = "TradingView alert"
PRICE_UNAVAILABLE_SUFFIX = " (price unavailable)"
MAX_TIME_MS = 253_402_300_799_999  # 9999-12-31T23:59:59.999Z


@dataclass(frozen=True)
class TradingViewDefaults:
    """Values used when the payload does not name them."""

    asset_type: AssetType = AssetType.GOLD
    instrument: str = "XAUTUSDT"
    interval: str = "15m"
    strategy: str = "tradingview"


@dataclass(frozen=True)
class ParsedPayload:
    fields: dict[str, Any]
    raw_text: str | None = None


@dataclass(frozen=True)
class UnparsedPayload:
    raw_text: str
    error: str

    @property
    def fields(self) -> dict[str, Any]:
        return {"message": self.raw_text.strip()}


PayloadResult = ParsedPayload | UnparsedPayload


def parse_payload(raw: Any) -> PayloadResult:
    """Parse a raw inbound payload.

    Strings are trimmed and parsed as JSON; a JSON object is Parsed, anything
    else is Unparsed. Mappings are used as-is. Other values yield an empty
    Parsed payload.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return ParsedPayload(fields={}, raw_text=raw)
        try:
            parsed = orjson.loads(trimmed)
        except orjson.JSONDecodeError:
            return UnparsedPayload(raw_text=raw, error="Invalid JSON")
        if not isinstance(parsed, dict):
            return UnparsedPayload(raw_text=raw, error="Expected a JSON object")
        return ParsedPayload(fields=parsed, raw_text=raw)

    if isinstance(raw, dict):
        return ParsedPayload(fields=dict(raw))

    return ParsedPayload(fields={})


def _first(fields: dict[str, Any], *names: str) -> Any:
    for name in names:
        value = fields.get(name)
        if value is not None:
            return value
    return None


def _parse_side(value: Any) -> SignalSide:
    if not isinstance(value, str):
        return SignalSide.NEUTRAL
    normalized = value.strip().upper()
    if normalized in ("BUY", "LONG"):
        return SignalSide.BUY
    if normalized in ("SELL", "SHORT"):
        return SignalSide.SELL
    return SignalSide.NEUTRAL


def _parse_kind(value: Any) -> SignalKind:
    if isinstance(value, str):
        try:
            return SignalKind(value.strip().upper())
        except ValueError:
            pass
    return SignalKind.ALERT


def _parse_asset_type(value: Any, default: AssetType) -> AssetType:
    if isinstance(value, str):
        try:
            return AssetType(value.strip().upper())
        except ValueError:
            pass
    return default


def parse_number(value: Any) -> float | None:
    """Finite number from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _epoch_ms(value: float) -> int | None:
    # NaN fails both comparisons
    if not 0 <= value <= MAX_TIME_MS:
        return None
    return int(value)


def _parse_time(value: Any) -> int | None:
    """Epoch ms from a number or date string; None when unusable.

    Values outside 1970..9999 cannot be formatted as a UTC timestamp and are
    treated as missing.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _epoch_ms(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.lstrip("-").isdigit():
            return _epoch_ms(int(text))
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        try:
            return _epoch_ms(dt.timestamp() * 1000)
        except (OverflowError, ValueError):
            return None
    return None


def _normalize_tags(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(tag) for tag in value if str(tag)]
    if isinstance(value, str) and value.strip():
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return []


def has_price(fields: dict[str, Any]) -> bool:
    """True when the payload carries a non-blank ``price`` field."""
    value = fields.get("price")
    return value is not None and str(value).strip() != ""


def map_to_signal(
    raw: Any,
    defaults: TradingViewDefaults,
    price_fallback: float | None = None,
    now_ms: int | None = None,
) -> Signal:
    """Map a raw inbound payload to a TRADINGVIEW Signal."""
    result = raw if isinstance(raw, (ParsedPayload, UnparsedPayload)) else parse_payload(raw)
    fields = result.fields

    parsed_price = parse_number(fields.get("price"))
    price = parsed_price if parsed_price is not None else price_fallback

    reason = str(_first(fields, "reason", "message") or DEFAULT_REASON)
    if parsed_price is None and price_fallback is None:
        reason += PRICE_UNAVAILABLE_SUFFIX

    tags = _normalize_tags(fields.get("tags")) or list(DEFAULT_TAGS)
    if isinstance(result, UnparsedPayload):
        tags.append(PARSE_ERROR_TAG)

    confidence = parse_number(fields.get("confidence")) or 0.0
    confidence = min(max(confidence, 0.0), 100.0)

    time_ms = _parse_time(_first(fields, "time", "timestamp"))
    if time_ms is None:
        time_ms = now_ms if now_ms is not None else int(_time.time() * 1000)

    external_id = _first(fields, "externalId", "id")

    return Signal(
        source=SignalSource.TRADINGVIEW,
        asset_type=_parse_asset_type(fields.get("assetType"), defaults.asset_type),
        instrument=str(_first(fields, "instrument", "symbol") or defaults.instrument),
        interval=str(_first(fields, "interval", "timeframe") or defaults.interval),
        strategy=str(fields.get("strategy") or defaults.strategy),
        kind=_parse_kind(fields.get("kind")),
        side=_parse_side(_first(fields, "signal", "side", "direction")),
        price=price,
        time=time_ms,
        confidence=confidence,
        tags=tags,
        reason=reason,
        external_id=str(external_id) if external_id is not None else None,
        raw_payload=result.raw_text if result.raw_text is not None else fields,
    )
