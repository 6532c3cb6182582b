"""Turn resolved destinations into outbound delivery jobs."""

import logging

from relay_app.services.job_queue import (
    SEND_TELEGRAM_SIGNAL,
    SEND_TELEGRAM_TEXT,
    JobQueue,
    SendTelegramSignalPayload,
    SendTelegramTextPayload,
)
from relay_app.storage.delivery_repo import DeliveryRepository
from relay_core.models import Destination, Signal

logger = logging.getLogger(__name__)


class DeliveryJobEmitter:
    """One job per destination, submitted to the signals queue."""

    def __init__(self, queue: JobQueue, repo: DeliveryRepository | None = None):
        self.queue = queue
        self.repo = repo or DeliveryRepository()

    async def emit_signal(
        self,
        signal_id: str,
        signal: Signal,
        destinations: list[Destination],
    ) -> int:
        """Create pending deliveries, then enqueue one job per delivery.

        Returns the number of jobs enqueued.
        """
        if not destinations:
            return 0

        by_id = {d.id: d for d in destinations}
        deliveries = await self.repo.create_pending(signal_id, destinations)

        for delivery in deliveries:
            destination = by_id[delivery.destination_id]
            await self.queue.add(
                SEND_TELEGRAM_SIGNAL,
                SendTelegramSignalPayload(
                    chat_id=destination.chat_id,
                    destination_id=destination.id,
                    delivery_id=delivery.id,
                    signal=signal,
                ),
            )

        logger.info(
            "Signal %s %s %s %s routed to %d destinations",
            signal.instrument, signal.interval, signal.strategy, signal.side.value,
            len(deliveries),
        )
        return len(deliveries)

    async def emit_text(self, chat_id: str | int, text: str, parse_mode: str | None = "HTML") -> None:
        await self.queue.add(
            SEND_TELEGRAM_TEXT,
            SendTelegramTextPayload(chat_id=chat_id, text=text, parse_mode=parse_mode),
        )
