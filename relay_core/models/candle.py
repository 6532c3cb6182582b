"""Candle (OHLC bar) data model."""

from pydantic import BaseModel, ConfigDict


class Candle(BaseModel):
    """One closed bar for an instrument/interval.

    Times are epoch milliseconds, as returned by the upstream provider.
    """

    model_config = ConfigDict(frozen=True)

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    close_time: int
