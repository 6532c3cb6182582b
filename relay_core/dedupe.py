"""Deterministic, time-bucketed dedupe keys for signals.

The key is built from the signal's own fields only, so two producers that see
the same signal (a strategy tick and an inbound webhook, say) compute the same
key without sharing state.
"""

import re
from datetime import datetime, timezone

from relay_core.models import Signal

DEFAULT_BUCKET_MS = 60_000

_INTERVAL_RE = re.compile(r"^(\d+)([smhdw])$")

_UNIT_MS = {
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
    "w": 604_800_000,
}


def interval_to_ms(interval: str | None) -> int:
    """Parse ``<integer><s|m|h|d|w>`` into milliseconds.

    Trimmed and case-insensitive. Anything else (missing, zero, unknown
    unit) falls back to a one-minute bucket.
    """
    if not interval:
        return DEFAULT_BUCKET_MS
    match = _INTERVAL_RE.match(interval.strip().lower())
    if not match:
        return DEFAULT_BUCKET_MS
    amount = int(match.group(1))
    if amount <= 0:
        return DEFAULT_BUCKET_MS
    return amount * _UNIT_MS[match.group(2)]


def floor_signal_time(time_ms: int, interval: str | None) -> int:
    bucket = interval_to_ms(interval)
    return (int(time_ms) // bucket) * bucket


def to_iso_ms(time_ms: int) -> str:
    """Format epoch ms as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{time_ms % 1000:03d}Z"


def _key_prefix(signal: Signal) -> str:
    return ":".join([
        signal.source.value,
        signal.asset_type.value,
        signal.instrument,
        signal.interval,
        signal.strategy,
        signal.kind.value,
        signal.side.value,
    ])


def build_dedupe_key(signal: Signal) -> str:
    floored = floor_signal_time(signal.time, signal.interval)
    return f"{_key_prefix(signal)}:{to_iso_ms(floored)}"


def build_cooldown_key(signal: Signal) -> str:
    """Un-bucketed key shared by every repeat of the same signal series."""
    return f"cooldown:{_key_prefix(signal)}"
