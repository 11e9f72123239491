"""Time-conflict detection for new events.

Scope is deliberately narrow: only CONFIRMED events created by the same user
in the same agenda count. Events in other agendas, events of other creators
and pending or rejected events never conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from agendas.models import Event, EventStatus

if TYPE_CHECKING:
    from agendas.services.storage import Storage


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval overlap; intervals that only touch do not overlap."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    storage: "Storage",
    agenda_id: UUID,
    creator_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
) -> list[Event]:
    candidates = storage.list_events(
        [agenda_id],
        starts_before=ends_at,
        ends_after=starts_at,
        status=EventStatus.CONFIRMED,
        creator_id=creator_id,
    )
    # Re-check in Python so the rule holds whatever the storage filters do.
    return [
        event
        for event in candidates
        if event.creator_id == creator_id
        and event.agenda_id == agenda_id
        and event.event_status == EventStatus.CONFIRMED
        and overlaps(starts_at, ends_at, event.starts_at, event.ends_at)
    ]
