from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from agendas.core.clock import utcnow
from agendas.models.enums import AgendaType


class Agenda(SQLModel, table=True):
    """Calendar container. Its type governs roles and visibility."""

    __tablename__ = "agendas"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    type: str = Field(default=AgendaType.PERSONAL.value, max_length=32)
    timezone: str = Field(default="UTC", max_length=64)
    color: str = Field(default="#3B82F6", max_length=16)
    owner_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def agenda_type(self) -> AgendaType:
        return AgendaType(self.type)

    def is_owner(self, user_id: UUID) -> bool:
        return self.owner_id == user_id

    def touch(self) -> None:
        self.updated_at = utcnow()
