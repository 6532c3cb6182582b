"""Chat config repository (digest destinations)."""

from sqlalchemy import func, select

from relay_app.storage.database import ChatConfigTable, get_database
from relay_core.models import ChatConfig


class ChatConfigRepository:

    async def count(self) -> int:
        async with get_database().session() as session:
            result = await session.execute(select(func.count()).select_from(ChatConfigTable))
            return result.scalar_one()

    async def get_enabled(self) -> list[ChatConfig]:
        async with get_database().session() as session:
            stmt = select(ChatConfigTable).where(ChatConfigTable.is_enabled.is_(True))
            result = await session.execute(stmt)
            return [
                ChatConfig(
                    chat_id=row.chat_id,
                    chat_type=row.chat_type,
                    is_enabled=row.is_enabled,
                    send_to_group=row.send_to_group,
                    send_to_channel=row.send_to_channel,
                    quiet_hours_enabled=row.quiet_hours_enabled,
                    quiet_hours_start=row.quiet_hours_start,
                    quiet_hours_end=row.quiet_hours_end,
                )
                for row in result.scalars().all()
            ]
