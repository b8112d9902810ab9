from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.enums import ACTIVE_REGISTRATION_STATUSES, RegistrationStatus


@dataclass(frozen=True)
class Registration:
    """Domain entity: one student's registration for one event."""

    registration_id: int
    event_id: int
    student_id: str
    status: RegistrationStatus
    registered_at: datetime
    updated_at: datetime
    qr_code_data: str
    checked_in_at: Optional[datetime] = None
    certificate_url: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_REGISTRATION_STATUSES


@dataclass(frozen=True)
class EventRegistrationRow:
    """Read-model: a registration as an event manager sees it."""

    registration: Registration
    student_name: Optional[str]
    student_email: Optional[str]
    register_no: Optional[str] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class StudentRegistrationRow:
    """Read-model: a registration as the student sees it."""

    registration: Registration
    event_name: str
    event_starts_at: datetime
    event_venue: str


class ReserveOutcome(str, Enum):
    """Result of the atomic capacity-checked write."""

    CREATED = "created"
    EVENT_UNAVAILABLE = "event_unavailable"
    ALREADY_REGISTERED = "already_registered"
    FULL = "full"
    STALE = "stale"


@dataclass(frozen=True)
class Reservation:
    outcome: ReserveOutcome
    registration_id: Optional[int] = None
