"""Daily digest summary and quiet-hours helpers (pure)."""

import html
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable

from relay_core.models import Signal, SignalSide

DIGEST_MAX_LENGTH = 3800
TOP_INSTRUMENTS = 3

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def parse_hhmm(value: str | None) -> time | None:
    """Parse ``HH:MM`` (24h). Returns None when malformed."""
    if not value:
        return None
    match = _HHMM_RE.match(value.strip())
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(moment: datetime | time) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}"


def is_in_quiet_hours(now: datetime | time, start: str | None, end: str | None) -> bool:
    """True when ``now`` (UTC) falls in ``[start, end)``.

    ``start > end`` wraps past midnight. ``start == end`` or a malformed
    bound never suppresses.
    """
    start_t, end_t = parse_hhmm(start), parse_hhmm(end)
    if start_t is None or end_t is None or start_t == end_t:
        return False

    current = time(now.hour, now.minute)
    if start_t < end_t:
        return start_t <= current < end_t
    return current >= start_t or current < end_t


@dataclass(frozen=True)
class DigestSummary:
    total: int = 0
    buy_count: int = 0
    sell_count: int = 0
    top_instruments: list[tuple[str, int]] = field(default_factory=list)
    average_confidence: float | None = None


def summarize_signals(signals: Iterable[Signal]) -> DigestSummary:
    """Count, BUY/SELL tally, top-3 instruments, average confidence.

    Ties in instrument frequency keep first-seen order.
    """
    signals = list(signals)
    if not signals:
        return DigestSummary()

    instruments = Counter(s.instrument for s in signals)
    return DigestSummary(
        total=len(signals),
        buy_count=sum(1 for s in signals if s.side == SignalSide.BUY),
        sell_count=sum(1 for s in signals if s.side == SignalSide.SELL),
        top_instruments=instruments.most_common(TOP_INSTRUMENTS),
        average_confidence=sum(s.confidence for s in signals) / len(signals),
    )


def render_digest(summary: DigestSummary, day: date) -> str:
    lines = [
        f"🧾 <b>Daily digest</b> {day.isoformat()} (UTC)",
        f"Signals: {summary.total} | BUY: {summary.buy_count} | SELL: {summary.sell_count}",
    ]
    if summary.average_confidence is not None:
        lines.append(f"Average confidence: {summary.average_confidence:.1f}")
    if summary.top_instruments:
        lines.append("Top instruments:")
        for instrument, count in summary.top_instruments:
            lines.append(f"• <b>{html.escape(instrument)}</b>: {count}")
    return "\n".join(lines)


def strip_html(text: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub("", text)).strip()


def truncate_digest_message(text: str, max_length: int = DIGEST_MAX_LENGTH) -> str:
    """Strip tags and collapse whitespace; cut to ``max_length`` with an ellipsis."""
    stripped = strip_html(text)
    if len(stripped) <= max_length:
        return stripped
    return stripped[: max(0, max_length - 1)] + "…"
