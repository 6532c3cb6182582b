"""Daily signal digest.

Fires on the tick whose UTC ``HH:MM`` equals the configured target time, at
most once per UTC date. The in-memory date cursor avoids a database round
trip on every later tick of the day; the ``digest_runs`` claim makes the
once-per-day guarantee hold across restarts and instances. Both are only
kept once every chat has been sent to: a failed send releases the claim.
"""

import logging
from datetime import date, datetime, time, timezone

from relay_app.config import Settings
from relay_app.services.delivery_emitter import DeliveryJobEmitter
from relay_app.storage.chat_repo import ChatConfigRepository
from relay_app.storage.digest_repo import DigestRunRepository
from relay_app.storage.signal_repo import SignalRepository
from relay_core.digest import (
    DIGEST_MAX_LENGTH,
    format_hhmm,
    is_in_quiet_hours,
    parse_hhmm,
    render_digest,
    strip_html,
    summarize_signals,
    truncate_digest_message,
)
from relay_core.models import ChatConfig

logger = logging.getLogger(__name__)


def chat_destination(config: ChatConfig) -> str | None:
    """Chat id a digest goes to for this config, or None to skip it."""
    chat_type = config.chat_type.lower()
    if chat_type == "group":
        return config.chat_id if config.send_to_group else None
    if chat_type == "channel":
        return config.chat_id if config.send_to_channel else None
    return config.chat_id


class DigestBuilder:

    def __init__(
        self,
        settings: Settings,
        emitter: DeliveryJobEmitter,
        signal_repo: SignalRepository | None = None,
        chat_repo: ChatConfigRepository | None = None,
        digest_repo: DigestRunRepository | None = None,
    ):
        self.settings = settings
        self.emitter = emitter
        self.signal_repo = signal_repo or SignalRepository()
        self.chat_repo = chat_repo or ChatConfigRepository()
        self.digest_repo = digest_repo or DigestRunRepository()
        self.last_digest_date: date | None = None
        self._sent_date: date | None = None
        self._sent_chat_ids: set[str] = set()
        self._warned_bad_time = False

    def is_due(self, now: datetime) -> bool:
        if not self.settings.digest_enabled:
            return False
        target = parse_hhmm(self.settings.digest_time_utc)
        if target is None:
            if not self._warned_bad_time:
                logger.warning(f"Invalid DIGEST_TIME_UTC '{self.settings.digest_time_utc}', digest disabled")
                self._warned_bad_time = True
            return False
        if format_hhmm(now) != format_hhmm(target):
            return False
        return self.last_digest_date != now.date()

    async def run_tick(self, now: datetime | None = None) -> bool:
        """Returns True when a digest was sent on this tick."""
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        if not self.is_due(now):
            return False

        today = now.date()
        if not await self.digest_repo.claim(today):
            logger.info("Digest for %s already claimed", today)
            self.last_digest_date = today
            return False

        try:
            sent, total = await self._send(now, today)
        except Exception:
            # Let the next tick in the target minute (here or elsewhere) retry
            await self.digest_repo.release(today)
            raise

        self.last_digest_date = today
        logger.info("Digest for %s sent to %d chats (%d signals)", today, sent, total)
        return True

    async def _send(self, now: datetime, today: date) -> tuple[int, int]:
        if self._sent_date != today:
            self._sent_date = today
            self._sent_chat_ids = set()

        start_of_day = datetime.combine(today, time.min, tzinfo=timezone.utc)
        signals = await self.signal_repo.get_since(start_of_day)
        summary = summarize_signals(signals)
        text, parse_mode = self._message(render_digest(summary, today))

        chat_ids = await self.resolve_chat_ids(now)
        for chat_id in chat_ids:
            # Chats reached before a failed attempt are not sent to twice
            if chat_id in self._sent_chat_ids:
                continue
            await self.emitter.emit_text(chat_id, text, parse_mode)
            self._sent_chat_ids.add(chat_id)
        return len(chat_ids), summary.total

    async def resolve_chat_ids(self, now: datetime) -> list[str]:
        configs = await self.chat_repo.get_enabled()
        if not configs and await self.chat_repo.count() == 0:
            return self._fallback_chat_ids()

        chat_ids = []
        for config in configs:
            if config.quiet_hours_enabled and is_in_quiet_hours(
                now, config.quiet_hours_start, config.quiet_hours_end
            ):
                logger.debug("Digest skipped for %s (quiet hours)", config.chat_id)
                continue
            chat_id = chat_destination(config)
            if chat_id and chat_id not in chat_ids:
                chat_ids.append(chat_id)
        return chat_ids

    def _fallback_chat_ids(self) -> list[str]:
        chat_ids = []
        group_id = self.settings.telegram_signal_group_id.strip()
        channel_id = self.settings.telegram_signal_channel_id.strip()
        if self.settings.digest_post_to_group and group_id:
            chat_ids.append(group_id)
        if self.settings.digest_post_to_channel and channel_id and channel_id not in chat_ids:
            chat_ids.append(channel_id)
        return chat_ids

    @staticmethod
    def _message(html_text: str) -> tuple[str, str | None]:
        """HTML as-is when short enough, else truncated plain text."""
        if len(strip_html(html_text)) <= DIGEST_MAX_LENGTH:
            return html_text, "HTML"
        return truncate_digest_message(html_text), None
