"""Data storage layer."""

from relay_app.storage.database import Database, close_database, get_database, init_database
from relay_app.storage.signal_repo import SignalRepository, StoredSignal
from relay_app.storage.routing_repo import DestinationTarget, RoutingRepository
from relay_app.storage.delivery_repo import DeliveryRepository, PendingDelivery
from relay_app.storage.alert_repo import AlertRepository, OutboxEntry
from relay_app.storage.chat_repo import ChatConfigRepository
from relay_app.storage.digest_repo import DigestRunRepository
from relay_app.storage import cache
from relay_app.storage import market_data_cache
from relay_app.storage import price_cache

__all__ = [
    "Database",
    "get_database",
    "init_database",
    "close_database",
    "SignalRepository",
    "StoredSignal",
    "DestinationTarget",
    "RoutingRepository",
    "DeliveryRepository",
    "PendingDelivery",
    "AlertRepository",
    "OutboxEntry",
    "ChatConfigRepository",
    "DigestRunRepository",
    "cache",
    "market_data_cache",
    "price_cache",
]
