from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role, the only authorization signal."""

    STUDENT = "student"
    ORGANIZER = "organizer"
    COADMIN = "coadmin"
    ADMIN = "admin"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    COMPLETED = "completed"


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ATTENDED = "attended"


ACTIVE_REGISTRATION_STATUSES = frozenset({RegistrationStatus.PENDING, RegistrationStatus.APPROVED})


class CheckInOutcome(str, Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"
