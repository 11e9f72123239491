from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from agendas.core.clock import utcnow
from agendas.models.enums import EventStatus


class Event(SQLModel, table=True):
    """Agenda event."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    agenda_id: UUID = Field(foreign_key="agendas.id", nullable=False, index=True)
    creator_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, max_length=16)
    timezone: str = Field(default="UTC", max_length=64)
    starts_at: datetime = Field(nullable=False, index=True)
    ends_at: datetime = Field(nullable=False, index=True)
    all_day: bool = Field(default=False)
    status: str = Field(default=EventStatus.CONFIRMED.value, max_length=32, index=True)
    is_private: bool = Field(default=False)
    visible_to_students: bool = Field(default=False)
    # Stored as a list of UUID strings; the event owns its share list.
    shared_with: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    approved_by: Optional[UUID] = Field(
        default=None, foreign_key="users.id", nullable=True
    )
    approved_at: Optional[datetime] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def event_status(self) -> EventStatus:
        return EventStatus(self.status)

    @property
    def shared_with_user_ids(self) -> set[UUID]:
        return {UUID(str(user_id)) for user_id in self.shared_with or []}

    def set_shared_with(self, user_ids: Iterable[UUID]) -> None:
        # JSON columns are not mutation-tracked, always assign a new list
        self.shared_with = sorted({str(user_id) for user_id in user_ids})

    def touch(self) -> None:
        self.updated_at = utcnow()
