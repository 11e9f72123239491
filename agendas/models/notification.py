from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from agendas.core.clock import utcnow


class Notification(SQLModel, table=True):
    """User notification.

    ``agenda_id`` and ``event_id`` are plain references: a notification
    outlives the event or agenda it talks about.
    """

    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    recipient_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    sender_id: Optional[UUID] = Field(default=None, nullable=True)
    type: str = Field(max_length=50, index=True)
    agenda_id: Optional[UUID] = Field(default=None, nullable=True, index=True)
    event_id: Optional[UUID] = Field(default=None, nullable=True, index=True)
    data: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False, default=dict)
    )
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    read_at: Optional[datetime] = Field(default=None, nullable=True)
