"""Alert rule and alert outbox repository."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import or_, select, update

from relay_app.storage.database import AlertOutboxTable, AlertRuleTable, get_database
from relay_core.models import AlertRule, AlertType


@dataclass(frozen=True)
class OutboxEntry:
    id: str
    alert_rule_id: str
    job_name: str
    payload: dict[str, Any]


class AlertRepository:

    async def get_active(self, now: datetime) -> list[AlertRule]:
        """Active rules that have not expired at ``now``."""
        async with get_database().session() as session:
            stmt = select(AlertRuleTable).where(
                AlertRuleTable.is_active.is_(True),
                or_(
                    AlertRuleTable.expires_at.is_(None),
                    AlertRuleTable.expires_at > now,
                ),
            )
            result = await session.execute(stmt)
            return [self._row_to_rule(row) for row in result.scalars().all()]

    async def deactivate_with_outbox(
        self,
        rule_id: str,
        job_name: str,
        payload: dict[str, Any],
    ) -> OutboxEntry | None:
        """Flip the rule inactive and record its notification atomically.

        Returns None if the rule was already inactive (another tick or
        instance got there first); nothing is written in that case.
        """
        async with get_database().session() as session:
            stmt = (
                update(AlertRuleTable)
                .where(AlertRuleTable.id == rule_id, AlertRuleTable.is_active.is_(True))
                .values(is_active=False)
                .returning(AlertRuleTable.id)
            )
            flipped = (await session.execute(stmt)).scalar_one_or_none()
            if flipped is None:
                return None

            entry = OutboxEntry(
                id=str(uuid.uuid4()),
                alert_rule_id=rule_id,
                job_name=job_name,
                payload=payload,
            )
            session.add(AlertOutboxTable(
                id=entry.id,
                alert_rule_id=entry.alert_rule_id,
                job_name=entry.job_name,
                payload=entry.payload,
            ))
        return entry

    async def get_unsent_outbox(self, limit: int = 100) -> list[OutboxEntry]:
        async with get_database().session() as session:
            stmt = (
                select(AlertOutboxTable)
                .where(AlertOutboxTable.sent_at.is_(None))
                .order_by(AlertOutboxTable.created_at.asc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [
                OutboxEntry(
                    id=row.id,
                    alert_rule_id=row.alert_rule_id,
                    job_name=row.job_name,
                    payload=row.payload,
                )
                for row in result.scalars().all()
            ]

    async def mark_outbox_sent(self, entry_id: str) -> None:
        async with get_database().session() as session:
            stmt = (
                update(AlertOutboxTable)
                .where(AlertOutboxTable.id == entry_id)
                .values(sent_at=datetime.now(timezone.utc))
            )
            await session.execute(stmt)

    def _row_to_rule(self, row: AlertRuleTable) -> AlertRule:
        return AlertRule(
            id=row.id,
            user_id=row.user_id,
            instrument=row.instrument,
            type=AlertType(row.type),
            base_price=row.base_price,
            threshold=row.threshold,
            is_active=row.is_active,
            expires_at=row.expires_at,
        )
