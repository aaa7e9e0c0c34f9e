"""Notification feed models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from stockpot.models.common import CamelInput, CamelModel


class Notification(CamelModel):
    """Event surfaced to dashboard users; ``user_id`` of ``None`` means broadcast."""

    id: int
    type: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime
    user_id: Optional[int] = None


class NotificationCreate(CamelInput):
    type: str = Field(min_length=1, max_length=64)
    message: str = Field(min_length=1, max_length=2000)
    details: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    user_id: Optional[int] = Field(default=None, ge=1)


__all__ = ["Notification", "NotificationCreate"]
