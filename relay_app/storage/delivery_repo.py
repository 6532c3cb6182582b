"""Signal delivery repository."""

import uuid
from dataclasses import dataclass

from sqlalchemy.dialects.postgresql import insert

from relay_app.storage.database import SignalDeliveryTable, get_database
from relay_core.models import Destination


@dataclass(frozen=True)
class PendingDelivery:
    id: str
    signal_id: str
    destination_id: str
    status: str


class DeliveryRepository:

    async def create_pending(
        self,
        signal_id: str,
        destinations: list[Destination],
    ) -> list[PendingDelivery]:
        """Ensure one delivery row per (signal, destination).

        Existing rows are returned unchanged. Runs in one transaction.
        """
        if not destinations:
            return []

        deliveries = []
        async with get_database().session() as session:
            for destination in destinations:
                stmt = insert(SignalDeliveryTable).values(
                    id=str(uuid.uuid4()),
                    signal_id=signal_id,
                    destination_id=destination.id,
                    status="PENDING",
                )
                # No-op update so RETURNING yields the existing row too
                stmt = stmt.on_conflict_do_update(
                    index_elements=["signal_id", "destination_id"],
                    set_={"signal_id": stmt.excluded.signal_id},
                ).returning(
                    SignalDeliveryTable.id,
                    SignalDeliveryTable.signal_id,
                    SignalDeliveryTable.destination_id,
                    SignalDeliveryTable.status,
                )
                row = (await session.execute(stmt)).one()
                deliveries.append(PendingDelivery(
                    id=row.id,
                    signal_id=row.signal_id,
                    destination_id=row.destination_id,
                    status=row.status,
                ))
        return deliveries
