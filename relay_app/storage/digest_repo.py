"""Digest run claims."""

from datetime import date

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert

from relay_app.storage.database import DigestRunTable, get_database


class DigestRunRepository:

    async def claim(self, digest_date: date) -> bool:
        """Claim the digest for ``digest_date``.

        Exactly one caller per date gets True; the rest see the existing row.
        """
        async with get_database().session() as session:
            stmt = (
                insert(DigestRunTable)
                .values(digest_date=digest_date)
                .on_conflict_do_nothing(index_elements=["digest_date"])
                .returning(DigestRunTable.digest_date)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def release(self, digest_date: date) -> None:
        """Drop the claim for ``digest_date`` so another attempt can take it."""
        async with get_database().session() as session:
            await session.execute(
                delete(DigestRunTable).where(DigestRunTable.digest_date == digest_date)
            )
