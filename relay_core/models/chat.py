"""Chat configuration model (digest delivery)."""

from pydantic import BaseModel


class ChatConfig(BaseModel):
    """Per-chat delivery preferences.

    Quiet hours are ``HH:MM`` strings in UTC; the window is ``[start, end)``
    and wraps past midnight when start > end.
    """

    chat_id: str
    chat_type: str = "group"  # group | channel | private
    is_enabled: bool = True
    send_to_group: bool = True
    send_to_channel: bool = False
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
