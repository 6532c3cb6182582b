"""Tests for the Redis list job queue."""

import orjson
import pytest
from unittest.mock import AsyncMock, patch

from relay_app.services import job_queue
from relay_app.services.job_queue import (
    SEND_TELEGRAM_SIGNAL,
    SEND_TELEGRAM_TEXT,
    Job,
    JobQueue,
    ReservedJob,
    SendTelegramSignalPayload,
    validate_payload,
)
from relay_core.models import AssetType, Signal, SignalKind, SignalSide


def make_signal() -> Signal:
    return Signal(
        asset_type=AssetType.GOLD,
        instrument="XAUTUSDT",
        interval="15m",
        strategy="breakout",
        kind=SignalKind.ENTRY,
        side=SignalSide.BUY,
        price=2000.0,
        time=0,
    )


class TestValidatePayload:
    """Tests for validate_payload."""

    def test_text_payload(self):
        data = validate_payload(SEND_TELEGRAM_TEXT, {"chatId": "-100", "text": "hi", "parseMode": "HTML"})
        assert data == {"chatId": "-100", "text": "hi", "parseMode": "HTML"}

    def test_empty_text_rejected(self):
        with pytest.raises(ValueError):
            validate_payload(SEND_TELEGRAM_TEXT, {"chatId": "-100", "text": ""})

    def test_blank_chat_id_rejected(self):
        with pytest.raises(ValueError):
            validate_payload(SEND_TELEGRAM_TEXT, {"chatId": "  ", "text": "hi"})

    def test_bad_parse_mode_rejected(self):
        with pytest.raises(ValueError):
            validate_payload(SEND_TELEGRAM_TEXT, {"chatId": 1, "text": "hi", "parseMode": "BBCode"})

    def test_unknown_job(self):
        with pytest.raises(KeyError):
            validate_payload("sendCarrierPigeon", {})

    def test_signal_payload_camel_case(self):
        payload = SendTelegramSignalPayload(chat_id="-100", destination_id="d1", delivery_id="x1", signal=make_signal())

        data = validate_payload(SEND_TELEGRAM_SIGNAL, payload)

        assert data["destinationId"] == "d1"
        assert data["deliveryId"] == "x1"
        assert data["signal"]["assetType"] == "GOLD"
        assert data["signal"]["price"] == 2000.0
        assert data["signal"]["levels"] is None


class TestJobQueue:
    """Tests for JobQueue."""

    @pytest.fixture
    def queue(self):
        return JobQueue("signals", attempts=5, backoff_ms=3000)

    @pytest.mark.asyncio
    async def test_add(self, queue):
        with patch.object(job_queue.cache, 'rpush', new_callable=AsyncMock, return_value=1) as mock_rpush:
            job = await queue.add(SEND_TELEGRAM_TEXT, {"chatId": "-100", "text": "hi"})

            key, raw = mock_rpush.call_args.args
            assert key == "queue:signals:wait"
            envelope = orjson.loads(raw)
            assert envelope["id"] == job.id
            assert envelope["name"] == SEND_TELEGRAM_TEXT
            assert envelope["data"] == {"chatId": "-100", "text": "hi", "parseMode": None}
            assert envelope["attempts"] == 5
            assert envelope["backoffMs"] == 3000
            assert envelope["enqueuedAt"] > 0

    @pytest.mark.asyncio
    async def test_add_invalid_not_pushed(self, queue):
        with patch.object(job_queue.cache, 'rpush', new_callable=AsyncMock) as mock_rpush:
            with pytest.raises(ValueError):
                await queue.add(SEND_TELEGRAM_TEXT, {"chatId": "-100", "text": ""})
            mock_rpush.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_cache_unavailable(self, queue):
        with patch.object(job_queue.cache, 'rpush', new_callable=AsyncMock, return_value=0):
            with pytest.raises(RuntimeError):
                await queue.add(SEND_TELEGRAM_TEXT, {"chatId": "-100", "text": "hi"})

    @pytest.mark.asyncio
    async def test_reserve(self, queue):
        job = Job(id="j1", name=SEND_TELEGRAM_TEXT, data={"chatId": "1", "text": "x"}, enqueued_at=1)
        raw = orjson.dumps(job.model_dump(by_alias=True))

        with patch.object(job_queue.cache, 'blmove', new_callable=AsyncMock, return_value=raw) as mock_blmove:
            reserved = await queue.reserve(timeout=2.0)

            mock_blmove.assert_awaited_once_with("queue:signals:wait", "queue:signals:active", 2.0)
            assert reserved.job == job
            assert reserved.raw == raw

    @pytest.mark.asyncio
    async def test_reserve_empty(self, queue):
        with patch.object(job_queue.cache, 'blmove', new_callable=AsyncMock, return_value=None):
            assert await queue.reserve() is None

    @pytest.mark.asyncio
    async def test_reserve_malformed_dropped(self, queue):
        with patch.object(job_queue.cache, 'blmove', new_callable=AsyncMock, return_value=b"garbage"):
            with patch.object(job_queue.cache, 'lrem', new_callable=AsyncMock, return_value=1) as mock_lrem:
                assert await queue.reserve() is None
                mock_lrem.assert_awaited_once_with("queue:signals:active", b"garbage")

    @pytest.mark.asyncio
    async def test_ack(self, queue):
        job = Job(id="j1", name=SEND_TELEGRAM_TEXT, data={}, enqueued_at=1)
        with patch.object(job_queue.cache, 'lrem', new_callable=AsyncMock, return_value=1) as mock_lrem:
            await queue.ack(ReservedJob(job=job, raw=b"raw"))
            mock_lrem.assert_awaited_once_with("queue:signals:active", b"raw")

    @pytest.mark.asyncio
    async def test_recover(self, queue):
        with patch.object(job_queue.cache, 'lmove', new_callable=AsyncMock, side_effect=[b"a", b"b", None]) as mock_lmove:
            assert await queue.recover() == 2
            mock_lmove.assert_awaited_with("queue:signals:active", "queue:signals:wait")
