from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from agendas.models import AgendaType


class AgendaBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    timezone: str = "UTC"
    color: str = "#3B82F6"


class AgendaCreate(AgendaBase):
    type: AgendaType = AgendaType.PERSONAL


class AgendaUpdate(BaseModel):
    """Partial update. The type and owner of an agenda never change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    timezone: Optional[str] = None
    color: Optional[str] = None


class AgendaRead(AgendaBase):
    id: UUID
    type: AgendaType
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AgendaReadWithRole(AgendaRead):
    current_user_role: str


class MemberRead(BaseModel):
    agenda_id: UUID
    user_id: UUID
    role: str
    email: EmailStr
    full_name: Optional[str] = None
    added_at: Optional[datetime] = None


class InvitationCreate(BaseModel):
    email: EmailStr
    # Defaults to the agenda type's default role when omitted
    role: Optional[str] = None


class InvitationAction(BaseModel):
    notification_id: UUID


class RoleUpdate(BaseModel):
    role: str
