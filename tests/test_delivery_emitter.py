"""Tests for DeliveryJobEmitter."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from relay_app.services.delivery_emitter import DeliveryJobEmitter
from relay_app.services.job_queue import SEND_TELEGRAM_SIGNAL, SEND_TELEGRAM_TEXT
from relay_app.storage.delivery_repo import PendingDelivery
from relay_core.models import AssetType, Destination, DestinationType, Signal, SignalKind, SignalSide


@pytest.fixture
def signal():
    return Signal(
        asset_type=AssetType.CRYPTO,
        instrument="ETHUSDT",
        interval="1h",
        strategy="macd",
        kind=SignalKind.ENTRY,
        side=SignalSide.SELL,
        price=2300.0,
        time=0,
    )


@pytest.fixture
def queue():
    queue = MagicMock()
    queue.add = AsyncMock()
    return queue


class TestDeliveryJobEmitter:

    @pytest.mark.asyncio
    async def test_one_job_per_delivery(self, signal, queue):
        destinations = [
            Destination(id="d1", destination_type=DestinationType.GROUP, chat_id="-1"),
            Destination(id="d2", destination_type=DestinationType.CHANNEL, chat_id="-2"),
        ]
        repo = MagicMock()
        repo.create_pending = AsyncMock(return_value=[
            PendingDelivery(id="x1", signal_id="s1", destination_id="d1", status="PENDING"),
            PendingDelivery(id="x2", signal_id="s1", destination_id="d2", status="PENDING"),
        ])
        emitter = DeliveryJobEmitter(queue, repo=repo)

        assert await emitter.emit_signal("s1", signal, destinations) == 2

        repo.create_pending.assert_awaited_once_with("s1", destinations)
        names = [c.args[0] for c in queue.add.call_args_list]
        payloads = [c.args[1] for c in queue.add.call_args_list]
        assert names == [SEND_TELEGRAM_SIGNAL, SEND_TELEGRAM_SIGNAL]
        assert [(p.chat_id, p.destination_id, p.delivery_id) for p in payloads] == [
            ("-1", "d1", "x1"),
            ("-2", "d2", "x2"),
        ]
        assert payloads[0].signal == signal

    @pytest.mark.asyncio
    async def test_no_destinations(self, signal, queue):
        repo = MagicMock()
        repo.create_pending = AsyncMock()
        emitter = DeliveryJobEmitter(queue, repo=repo)

        assert await emitter.emit_signal("s1", signal, []) == 0
        repo.create_pending.assert_not_called()
        queue.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_emit_text(self, queue):
        emitter = DeliveryJobEmitter(queue, repo=MagicMock())

        await emitter.emit_text("-100", "<b>hi</b>")

        name, payload = queue.add.call_args.args
        assert name == SEND_TELEGRAM_TEXT
        assert payload.chat_id == "-100"
        assert payload.parse_mode == "HTML"
