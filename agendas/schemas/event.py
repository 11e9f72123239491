from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from agendas.models import EventStatus


class EventBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = None
    timezone: str = "UTC"
    starts_at: datetime
    ends_at: datetime
    all_day: bool = False
    is_private: bool = False
    visible_to_students: bool = False

    @field_validator("ends_at")
    @classmethod
    def check_ends_after_start(cls, ends_at: datetime, info: ValidationInfo) -> datetime:
        starts_at: datetime | None = info.data.get("starts_at")
        if starts_at and ends_at <= starts_at:
            raise ValueError("ends_at must be after starts_at")
        return ends_at


class EventCreate(EventBase):
    agenda_id: UUID
    shared_with: List[UUID] = []


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    color: Optional[str] = None
    timezone: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    all_day: Optional[bool] = None
    is_private: Optional[bool] = None
    visible_to_students: Optional[bool] = None
    shared_with: Optional[List[UUID]] = None


class EventRead(EventBase):
    id: UUID
    agenda_id: UUID
    creator_id: UUID
    status: EventStatus
    shared_with: List[UUID] = []
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ConflictEventSummary(BaseModel):
    id: UUID
    title: str
    starts_at: datetime
    ends_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionSummary(BaseModel):
    """What the current user may do with one event."""

    can_update: bool
    can_delete: bool
    can_approve: bool
    can_reject: bool
    # Denial reason per action, keyed by action name
    reasons: dict[str, str] = {}
