"""Market data models."""

from pydantic import BaseModel, ConfigDict


class CachedTicker(BaseModel):
    """Point-in-time bid/ask/last snapshot for one symbol from one provider.

    ``ts`` is epoch milliseconds of the upstream fetch.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    symbol: str
    bid: float | None = None
    ask: float | None = None
    last: float | None = None
    ts: int
