"""Alert rule model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class AlertType(str, Enum):
    """One-shot price alert kinds."""

    UP_PCT = "UP_PCT"      # price >= base * (1 + threshold%)
    DOWN_PCT = "DOWN_PCT"  # price <= base * (1 - threshold%)
    TP1 = "TP1"            # price crosses an absolute target


class AlertRule(BaseModel):
    """A user's one-shot alert.

    Created outside the core. The evaluator only ever flips
    ``is_active`` to False when the rule triggers.
    """

    id: str
    user_id: str
    instrument: str
    type: AlertType
    base_price: float | None = None
    threshold: float | None = None
    is_active: bool = True
    expires_at: datetime | None = None
