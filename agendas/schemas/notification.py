from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: UUID
    recipient_id: UUID
    sender_id: UUID | None
    type: str
    agenda_id: UUID | None
    event_id: UUID | None
    data: dict[str, Any]
    is_read: bool
    created_at: datetime
    read_at: datetime | None

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int
