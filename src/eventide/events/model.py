from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.enums import EventStatus


@dataclass(frozen=True)
class Event:
    """Domain entity: an event owned by its organizer."""

    event_id: int
    name: str
    description: str
    starts_at: datetime
    venue: str
    capacity: int
    organizer_id: str
    status: EventStatus
    created_at: datetime
    updated_at: datetime
    image_url: Optional[str] = None
    brochure_url: Optional[str] = None


@dataclass(frozen=True)
class EventFields:
    """Validated user-editable fields of an event."""

    name: str
    description: str
    starts_at: datetime
    venue: str
    capacity: int


@dataclass(frozen=True)
class EventSummary:
    """Read-model for the organizer dashboard."""

    event: Event
    pending_count: int
    approved_count: int


@dataclass(frozen=True)
class EventWriteResult:
    """Outcome of create/update: the stored event plus non-fatal attachment warnings."""

    event: Event
    warnings: list[str] = field(default_factory=list)


class FieldsUpdateOutcome(str, Enum):
    UPDATED = "updated"
    MISSING = "missing"
    BELOW_ACTIVE = "below_active"


@dataclass(frozen=True)
class FieldsUpdate:
    """Result of the locked edit; ``active_count`` is what the new capacity was checked against."""

    outcome: FieldsUpdateOutcome
    active_count: int = 0
