from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel

from agendas.core.clock import utcnow
from agendas.models.enums import Role


class AgendaMember(SQLModel, table=True):
    """Agenda membership with a per-user role. Never holds the owner."""

    __tablename__ = "agenda_members"

    agenda_id: UUID = Field(foreign_key="agendas.id", primary_key=True, nullable=False)
    user_id: UUID = Field(
        foreign_key="users.id", primary_key=True, nullable=False, index=True
    )
    role: str = Field(max_length=32)
    added_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def member_role(self) -> Role:
        return Role(self.role)
