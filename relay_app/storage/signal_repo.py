"""Signal repository."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from relay_app.storage.database import SignalDeliveryTable, SignalTable, get_database
from relay_core.models import (
    AssetType,
    Signal,
    SignalKind,
    SignalLevels,
    SignalSide,
    SignalSource,
)


@dataclass(frozen=True)
class StoredSignal:
    id: str
    dedupe_key: str
    signal: Signal


def _ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def _datetime_to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


class SignalRepository:
    """Repository for accepted signals."""

    async def store(self, signal: Signal, dedupe_key: str) -> StoredSignal | None:
        """Insert a signal under its dedupe key.

        When a row with the same dedupe key already exists, returns that row
        if it has no delivery rows yet (an earlier routing attempt failed),
        else None.
        """
        signal_id = str(uuid.uuid4())
        async with get_database().session() as session:
            stmt = (
                insert(SignalTable)
                .values(
                    id=signal_id,
                    source=signal.source.value,
                    asset_type=signal.asset_type.value,
                    instrument=signal.instrument,
                    interval=signal.interval,
                    strategy=signal.strategy,
                    kind=signal.kind.value,
                    side=signal.side.value,
                    price=signal.price,
                    time=_ms_to_datetime(signal.time),
                    confidence=signal.confidence,
                    tags=list(signal.tags),
                    reason=signal.reason,
                    levels=signal.levels.model_dump() if signal.levels else None,
                    external_id=signal.external_id,
                    raw_payload=signal.raw_payload,
                    dedupe_key=dedupe_key,
                )
                .on_conflict_do_nothing(index_elements=["dedupe_key"])
                .returning(SignalTable.id)
            )
            result = await session.execute(stmt)
            inserted = result.scalar_one_or_none()
            if inserted is None:
                inserted = await self._find_undelivered(session, dedupe_key)

        if inserted is None:
            return None
        return StoredSignal(id=inserted, dedupe_key=dedupe_key, signal=signal)

    async def _find_undelivered(self, session, dedupe_key: str) -> str | None:
        has_deliveries = (
            select(SignalDeliveryTable.id)
            .where(SignalDeliveryTable.signal_id == SignalTable.id)
            .exists()
        )
        stmt = (
            select(SignalTable.id)
            .where(SignalTable.dedupe_key == dedupe_key)
            .where(~has_deliveries)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_since(self, since: datetime) -> list[Signal]:
        """Signals stored at or after ``since``, oldest first."""
        async with get_database().session() as session:
            stmt = (
                select(SignalTable)
                .where(SignalTable.created_at >= since)
                .order_by(SignalTable.created_at.asc())
            )
            result = await session.execute(stmt)
            rows = result.scalars().all()

            return [self._row_to_signal(row) for row in rows]

    def _row_to_signal(self, row: SignalTable) -> Signal:
        return Signal(
            source=SignalSource(row.source),
            asset_type=AssetType(row.asset_type),
            instrument=row.instrument,
            interval=row.interval,
            strategy=row.strategy,
            kind=SignalKind(row.kind),
            side=SignalSide(row.side),
            price=row.price,
            time=_datetime_to_ms(row.time),
            confidence=row.confidence,
            tags=list(row.tags or []),
            reason=row.reason or "",
            levels=SignalLevels(**row.levels) if row.levels else None,
            external_id=row.external_id,
            raw_payload=row.raw_payload,
        )
