"""Exchange clients."""

from relay_app.clients.binance_rest import BinanceRestClient, RateLimiter
from relay_app.clients.okx_rest import OkxRestClient

__all__ = [
    "BinanceRestClient",
    "OkxRestClient",
    "RateLimiter",
]
