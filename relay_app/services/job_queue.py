"""At-least-once job queue on Redis lists.

Layout per queue name:
- queue:{name}:wait   -> pending job envelopes (JSON)
- queue:{name}:active -> envelopes reserved by a consumer, removed on ack

A consumer that dies between reserve and ack leaves its job in the active
list; ``recover()`` moves such jobs back to the wait list on startup.

The active list is shared per queue name, so each queue has exactly one
consuming process: a second consumer would have its in-flight jobs re-queued
by the other's ``recover()``. Producers are unrestricted.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from relay_app.storage import cache
from relay_core.models import Signal

logger = logging.getLogger(__name__)

SEND_TELEGRAM_SIGNAL = "sendTelegramSignal"
SEND_TELEGRAM_TEXT = "sendTelegramText"
INGEST_TRADINGVIEW_ALERT = "ingestTradingViewAlert"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendTelegramTextPayload(_CamelModel):
    chat_id: str | int
    text: str = Field(min_length=1)
    parse_mode: Literal["HTML", "Markdown"] | None = None

    @field_validator("chat_id")
    @classmethod
    def _chat_id_not_blank(cls, value: str | int) -> str | int:
        if isinstance(value, str) and not value.strip():
            raise ValueError("chatId must not be empty")
        return value


class SendTelegramSignalPayload(_CamelModel):
    chat_id: str
    destination_id: str
    delivery_id: str | None = None
    signal: Signal


class IngestTradingViewAlertPayload(_CamelModel):
    received_at: str
    ip: str | None = None
    headers_subset: dict[str, str] | None = None
    payload_raw: Any = None


PAYLOAD_MODELS: dict[str, type[BaseModel]] = {
    SEND_TELEGRAM_SIGNAL: SendTelegramSignalPayload,
    SEND_TELEGRAM_TEXT: SendTelegramTextPayload,
    INGEST_TRADINGVIEW_ALERT: IngestTradingViewAlertPayload,
}


class Job(_CamelModel):
    """Envelope stored on the queue."""

    id: str
    name: str
    data: dict[str, Any]
    attempts: int = 1
    backoff_ms: int = 0
    enqueued_at: int  # epoch ms


@dataclass(frozen=True)
class ReservedJob:
    job: Job
    raw: bytes


def validate_payload(name: str, data: dict[str, Any] | BaseModel) -> dict[str, Any]:
    """Validate a job payload and return its JSON-ready camelCase dict.

    Raises:
        KeyError: Unknown job name.
        ValueError: Payload does not match the job's schema.
    """
    model = PAYLOAD_MODELS.get(name)
    if model is None:
        raise KeyError(f"Unknown job name '{name}'")
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    try:
        payload = model.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid {name} payload: {e}") from e
    return payload.model_dump(mode="json", by_alias=True)


class JobQueue:
    """Producer/consumer handle for one named queue."""

    def __init__(self, name: str, attempts: int = 5, backoff_ms: int = 3000):
        self.name = name
        self.attempts = attempts
        self.backoff_ms = backoff_ms

    @property
    def wait_key(self) -> str:
        return f"{cache.KEY_PREFIX_QUEUE}{self.name}:wait"

    @property
    def active_key(self) -> str:
        return f"{cache.KEY_PREFIX_QUEUE}{self.name}:active"

    async def add(self, name: str, data: dict[str, Any] | BaseModel) -> Job:
        """Validate and enqueue a job.

        Raises:
            KeyError / ValueError: Invalid job (see ``validate_payload``).
            RuntimeError: The job could not be written to the queue.
        """
        job = Job(
            id=str(uuid.uuid4()),
            name=name,
            data=validate_payload(name, data),
            attempts=self.attempts,
            backoff_ms=self.backoff_ms,
            enqueued_at=int(time.time() * 1000),
        )
        pushed = await cache.rpush(self.wait_key, orjson.dumps(job.model_dump(by_alias=True)))
        if not pushed:
            raise RuntimeError(f"Failed to enqueue {name} job on queue '{self.name}'")
        logger.info("Enqueued %s job %s", name, job.id)
        return job

    async def reserve(self, timeout: float = 1.0) -> ReservedJob | None:
        """Move the next job to the active list and return it."""
        raw = await cache.blmove(self.wait_key, self.active_key, timeout)
        if raw is None:
            return None
        try:
            job = Job.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Dropping malformed job on queue '{self.name}': {e}")
            await cache.lrem(self.active_key, raw)
            return None
        return ReservedJob(job=job, raw=raw)

    async def ack(self, reserved: ReservedJob) -> None:
        await cache.lrem(self.active_key, reserved.raw)

    async def recover(self) -> int:
        """Move jobs left in the active list back to the wait list.

        Only safe while no other consumer of this queue is running.
        """
        moved = 0
        while await cache.lmove(self.active_key, self.wait_key) is not None:
            moved += 1
        if moved:
            logger.info("Recovered %d unacknowledged jobs on queue '%s'", moved, self.name)
        return moved


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
