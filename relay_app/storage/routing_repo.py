"""Routing rules, destinations and lookup tables."""

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from relay_app.storage.database import (
    InstrumentTable,
    RoutingRuleTable,
    StrategyTable,
    TelegramDestinationTable,
    get_database,
)
from relay_core.models import AssetType, Destination, DestinationType, RoutingRule


@dataclass(frozen=True)
class DestinationTarget:
    """A destination to upsert by (destination_type, chat_id)."""

    destination_type: DestinationType
    chat_id: str
    title: str | None = None


class RoutingRepository:
    """Read access to routing configuration plus fallback upserts."""

    async def get_active_rules(self) -> list[tuple[RoutingRule, Destination]]:
        """Active rules whose destination is also active, oldest rule first."""
        async with get_database().session() as session:
            stmt = (
                select(RoutingRuleTable, TelegramDestinationTable)
                .join(
                    TelegramDestinationTable,
                    TelegramDestinationTable.id == RoutingRuleTable.destination_id,
                )
                .where(
                    RoutingRuleTable.is_active.is_(True),
                    TelegramDestinationTable.is_active.is_(True),
                )
                .order_by(RoutingRuleTable.created_at.asc())
            )
            result = await session.execute(stmt)
            return [
                (self._row_to_rule(rule), self._row_to_destination(dest))
                for rule, dest in result.all()
            ]

    async def find_instrument_id(self, symbol: str, asset_type: AssetType) -> str | None:
        async with get_database().session() as session:
            stmt = select(InstrumentTable.id).where(
                InstrumentTable.symbol == symbol,
                InstrumentTable.asset_type == asset_type.value,
                InstrumentTable.is_active.is_(True),
            ).limit(1)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def find_strategy_id(self, key: str) -> str | None:
        async with get_database().session() as session:
            stmt = select(StrategyTable.id).where(
                StrategyTable.key == key,
                StrategyTable.is_active.is_(True),
            ).limit(1)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def upsert_destinations(self, targets: list[DestinationTarget]) -> list[Destination]:
        """Upsert all targets in one transaction (all rows or none)."""
        destinations = []
        async with get_database().session() as session:
            for target in targets:
                stmt = insert(TelegramDestinationTable).values(
                    id=str(uuid.uuid4()),
                    destination_type=target.destination_type.value,
                    chat_id=target.chat_id,
                    title=target.title,
                    is_active=True,
                )
                set_ = {"is_active": True}
                if target.title:
                    set_["title"] = stmt.excluded.title
                stmt = stmt.on_conflict_do_update(
                    index_elements=["destination_type", "chat_id"],
                    set_=set_,
                ).returning(TelegramDestinationTable)
                result = await session.execute(stmt)
                destinations.append(self._row_to_destination(result.scalar_one()))
        return destinations

    def _row_to_rule(self, row: RoutingRuleTable) -> RoutingRule:
        return RoutingRule(
            id=row.id,
            asset_type=AssetType(row.asset_type) if row.asset_type else None,
            instrument_id=row.instrument_id,
            strategy_id=row.strategy_id,
            interval=row.interval,
            min_confidence=row.min_confidence,
            destination_id=row.destination_id,
            is_active=row.is_active,
        )

    def _row_to_destination(self, row: TelegramDestinationTable) -> Destination:
        return Destination(
            id=row.id,
            destination_type=DestinationType(row.destination_type),
            chat_id=row.chat_id,
            title=row.title,
            is_active=row.is_active,
        )
