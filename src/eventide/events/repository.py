from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EventStatus
from .model import Event, EventFields, EventSummary, FieldsUpdate


class EventRepository(Protocol):
    def create(self, *, fields: EventFields, organizer_id: str, now: datetime) -> int:
        """Insert a draft event and return its id."""

        raise NotImplementedError

    def get_by_id(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def update_fields(self, *, event_id: int, fields: EventFields, now: datetime) -> FieldsUpdate:
        """Atomically refuse a capacity below the event's active (pending/approved) registrations."""

        raise NotImplementedError

    def set_attachment(self, *, event_id: int, image_url: Optional[str] = None, brochure_url: Optional[str] = None, now: datetime) -> bool:
        """Set whichever attachment URLs are given, leave the others as they are."""

        raise NotImplementedError

    def set_status(self, *, event_id: int, expected: EventStatus, new: EventStatus, now: datetime) -> bool:
        """Conditional update: only applies while the stored status is still ``expected``."""

        raise NotImplementedError

    def list_published(self, *, limit: int) -> Sequence[Event]:
        """Published events ordered by start date ascending."""

        raise NotImplementedError

    def list_summaries(self, *, organizer_id: Optional[str], limit: int) -> Sequence[EventSummary]:
        """Events (all, or one organizer's) newest first with pending/approved counts."""

        raise NotImplementedError
