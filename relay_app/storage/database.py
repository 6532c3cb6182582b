"""Database connection and table definitions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from relay_app.config import get_settings

Base = declarative_base()


class InstrumentTable(Base):
    """Tradable instruments, keyed by symbol and asset type."""

    __tablename__ = "instruments"

    id = Column(String(36), primary_key=True)
    symbol = Column(String(30), nullable=False)
    asset_type = Column(String(10), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("symbol", "asset_type", name="uq_instruments_symbol_asset"),
    )


class StrategyTable(Base):
    __tablename__ = "strategies"

    id = Column(String(36), primary_key=True)
    key = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class TelegramDestinationTable(Base):
    """Outbound chats (groups and channels)."""

    __tablename__ = "telegram_destinations"

    id = Column(String(36), primary_key=True)
    destination_type = Column(String(10), nullable=False)  # GROUP | CHANNEL
    chat_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))

    __table_args__ = (
        UniqueConstraint("destination_type", "chat_id", name="uq_destinations_type_chat"),
    )


class RoutingRuleTable(Base):
    """Signal routing rules. NULL columns are wildcards."""

    __tablename__ = "routing_rules"

    id = Column(String(36), primary_key=True)
    asset_type = Column(String(10), nullable=True)
    instrument_id = Column(String(36), nullable=True)
    strategy_id = Column(String(36), nullable=True)
    interval = Column(String(10), nullable=True)
    min_confidence = Column(Float, nullable=True)
    destination_id = Column(String(36), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))

    __table_args__ = (
        Index("idx_routing_rules_active", "is_active"),
    )


class SignalTable(Base):
    """Accepted signals. ``dedupe_key`` is unique."""

    __tablename__ = "signals"

    id = Column(String(36), primary_key=True)
    source = Column(String(20), nullable=False)
    asset_type = Column(String(10), nullable=False)
    instrument = Column(String(30), nullable=False)
    interval = Column(String(10), nullable=False)
    strategy = Column(String(50), nullable=False)
    kind = Column(String(10), nullable=False)
    side = Column(String(10), nullable=False)
    price = Column(Float, nullable=True)
    time = Column(DateTime(timezone=True), nullable=False)
    confidence = Column(Float, nullable=False, default=0)
    tags = Column(JSONB, nullable=False, default=list)
    reason = Column(Text, nullable=False, default="")
    levels = Column(JSONB, nullable=True)
    external_id = Column(String(128), nullable=True)
    raw_payload = Column(JSONB, nullable=True)
    dedupe_key = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))

    __table_args__ = (
        Index("idx_signals_created_at", "created_at"),
        Index("idx_signals_instrument_time", "instrument", "time"),
    )


class SignalDeliveryTable(Base):
    """One row per (signal, destination)."""

    __tablename__ = "signal_deliveries"

    id = Column(String(36), primary_key=True)
    signal_id = Column(String(36), nullable=False)
    destination_id = Column(String(36), nullable=False)
    status = Column(String(10), nullable=False, default="PENDING")  # PENDING | SENT | FAILED
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))
    sent_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("signal_id", "destination_id", name="uq_deliveries_signal_destination"),
    )


class AlertRuleTable(Base):
    __tablename__ = "alert_rules"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False)
    instrument = Column(String(30), nullable=False)
    type = Column(String(10), nullable=False)  # UP_PCT | DOWN_PCT | TP1
    base_price = Column(Float, nullable=True)
    threshold = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))

    __table_args__ = (
        Index("idx_alert_rules_active", "is_active"),
    )


class AlertOutboxTable(Base):
    """Pending notifications written in the same transaction as a rule flip."""

    __tablename__ = "alert_outbox"

    id = Column(String(36), primary_key=True)
    alert_rule_id = Column(String(36), nullable=False)
    job_name = Column(String(50), nullable=False)
    payload = Column(JSONB, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))
    sent_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_alert_outbox_unsent", "sent_at"),
    )


class ChatConfigTable(Base):
    __tablename__ = "chat_configs"

    chat_id = Column(String(64), primary_key=True)
    chat_type = Column(String(20), nullable=False, default="group")
    is_enabled = Column(Boolean, nullable=False, default=True)
    send_to_group = Column(Boolean, nullable=False, default=True)
    send_to_channel = Column(Boolean, nullable=False, default=False)
    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(String(5), nullable=True)
    quiet_hours_end = Column(String(5), nullable=True)


class DigestRunTable(Base):
    """One row per UTC date a digest was claimed for."""

    __tablename__ = "digest_runs"

    digest_date = Column(Date, primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=text("NOW()"))


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        settings = get_settings()
        url = database_url or settings.database_url

        # Convert postgresql:// to postgresql+asyncpg://
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        self.engine = create_async_engine(
            url,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,    # Validate before use
            pool_recycle=3600,     # Recycle every hour
            pool_timeout=30,
            connect_args={
                "timeout": 10,
                "command_timeout": 60,
            },
        )
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_tables(self) -> None:
        """Create all tables (local use; migrations live elsewhere)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session.

        Commits on success; rolls back and re-raises on error.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connection."""
        await self.engine.dispose()


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


async def init_database() -> Database:
    """Initialize the database and create tables."""
    db = get_database()
    await db.create_tables()
    return db


async def close_database() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
