from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..access.gate import RoleGate
from ..access.policy import Action, Target
from ..common.datetime_utils import now_local
from ..common.validators import require_choice, require_datetime, require_non_empty, require_positive_int
from ..core.constants import BROCHURE_EXTENSIONS, DEFAULT_LIST_LIMIT, IMAGE_EXTENSIONS
from ..core.enums import EventStatus, Role
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..core.retry import RetryPolicy
from ..storage.files import AttachmentStorage, Upload, require_extension
from .lifecycle import ensure_transition
from .model import Event, EventFields, EventSummary, EventWriteResult, FieldsUpdateOutcome
from .repository import EventRepository

logger = logging.getLogger(__name__)


def event_target(event: Event) -> Target:
    return Target(event_organizer_id=event.organizer_id)


class EventService:
    def __init__(
        self,
        events: EventRepository,
        gate: RoleGate,
        storage: AttachmentStorage,
        *,
        retry: RetryPolicy | None = None,
    ):
        self._events = events
        self._gate = gate
        self._storage = storage
        self._retry = retry or RetryPolicy()

    @staticmethod
    def _validate_fields(*, name, description, starts_at, venue, capacity) -> EventFields:
        return EventFields(
            name=require_non_empty(name, "Name"),
            description=require_non_empty(description, "Description"),
            starts_at=require_datetime(starts_at, "Date"),
            venue=require_non_empty(venue, "Venue"),
            capacity=require_positive_int(capacity, "Capacity"),
        )

    @staticmethod
    def _validate_uploads(image: Optional[Upload], brochure: Optional[Upload]) -> None:
        if image is not None:
            require_extension(image, IMAGE_EXTENSIONS, "Image")
        if brochure is not None:
            require_extension(brochure, BROCHURE_EXTENSIONS, "Brochure")

    def _get(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def get_managed_event(self, *, caller_id: str, event_id: int, action: Action = Action.VIEW_EVENT) -> Event:
        """Load an event and require ``action`` on it."""

        event = self._get(event_id)
        self._gate.require(caller_id, action, event_target(event))
        return event

    def _store_attachments(
        self,
        event_id: int,
        *,
        image: Optional[Upload],
        brochure: Optional[Upload],
        now: datetime,
    ) -> list[str]:
        """Upload each attachment; a failure leaves that field unset and becomes a warning."""

        warnings: list[str] = []
        for kind, upload, folder in (
            ("image", image, f"event-images/{event_id}"),
            ("brochure", brochure, f"event-brochures/{event_id}"),
        ):
            if upload is None:
                continue
            try:
                url = self._storage.save(folder=folder, filename=upload.filename, content=upload.content)
                if kind == "image":
                    self._events.set_attachment(event_id=event_id, image_url=url, now=now)
                else:
                    self._events.set_attachment(event_id=event_id, brochure_url=url, now=now)
            except DomainError as e:
                logger.warning("event %s saved without %s: %s", event_id, kind, e)
                warnings.append(f"The {kind} could not be uploaded; the event was saved without it.")
        return warnings

    def create_event(
        self,
        *,
        caller_id: str,
        name: str,
        description: str,
        starts_at,
        venue: str,
        capacity,
        image: Optional[Upload] = None,
        brochure: Optional[Upload] = None,
        now: datetime | None = None,
    ) -> EventWriteResult:
        caller = self._gate.require(caller_id, Action.CREATE_EVENT)
        fields = self._validate_fields(
            name=name, description=description, starts_at=starts_at, venue=venue, capacity=capacity
        )
        self._validate_uploads(image, brochure)
        now = now or now_local()

        event_id = self._events.create(fields=fields, organizer_id=caller.uid, now=now)
        logger.info("event %s created as draft by %s", event_id, caller.uid)

        warnings = self._store_attachments(event_id, image=image, brochure=brochure, now=now)
        return EventWriteResult(event=self._get(event_id), warnings=warnings)

    def update_event(
        self,
        *,
        caller_id: str,
        event_id: int,
        name: str,
        description: str,
        starts_at,
        venue: str,
        capacity,
        image: Optional[Upload] = None,
        brochure: Optional[Upload] = None,
        now: datetime | None = None,
    ) -> EventWriteResult:
        event = self.get_managed_event(caller_id=caller_id, event_id=event_id, action=Action.EDIT_EVENT)
        fields = self._validate_fields(
            name=name, description=description, starts_at=starts_at, venue=venue, capacity=capacity
        )
        self._validate_uploads(image, brochure)
        now = now or now_local()

        update = self._retry.run(
            lambda: self._events.update_fields(event_id=event.event_id, fields=fields, now=now),
            operation=f"update of event {event.event_id}",
        )
        if update.outcome == FieldsUpdateOutcome.MISSING:
            raise NotFoundError("Event not found")
        if update.outcome == FieldsUpdateOutcome.BELOW_ACTIVE:
            raise ValidationError(
                f"Capacity cannot be lower than the {update.active_count} active registrations of this event"
            )

        warnings = self._store_attachments(event.event_id, image=image, brochure=brochure, now=now)
        logger.info("event %s updated", event.event_id)
        return EventWriteResult(event=self._get(event.event_id), warnings=warnings)

    def update_event_status(self, *, caller_id: str, event_id: int, new_status, now: datetime | None = None) -> Event:
        target_status = require_choice(new_status, EventStatus, "Status")
        event = self.get_managed_event(caller_id=caller_id, event_id=event_id, action=Action.CHANGE_EVENT_STATUS)

        def _apply() -> Event:
            current = self._get(event.event_id)
            ensure_transition(current.status, target_status)
            if not self._events.set_status(
                event_id=current.event_id,
                expected=current.status,
                new=target_status,
                now=now or now_local(),
            ):
                raise ConflictError("Event status changed concurrently")
            logger.info("event %s: %s -> %s", current.event_id, current.status.value, target_status.value)
            return self._get(current.event_id)

        return self._retry.run(_apply, operation=f"status change of event {event.event_id}")

    def get_event(self, *, event_id: int, caller_id: Optional[str] = None) -> Event:
        """Published events are public; anything else only exists for its managers."""

        event = self._get(event_id)
        if event.status == EventStatus.PUBLISHED:
            return event
        if caller_id:
            caller = self._gate.resolve(caller_id)
            if self._gate.allows(caller, Action.VIEW_EVENT, event_target(event)):
                return event
        raise NotFoundError("Event not found")

    def list_published_events(self, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[Event]:
        return self._events.list_published(limit=int(limit))

    def list_managed_events(self, *, caller_id: str, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[EventSummary]:
        caller = self._gate.require(caller_id, Action.LIST_MANAGED_EVENTS)
        organizer_id = None if caller.role in (Role.ADMIN, Role.COADMIN) else caller.uid
        return self._events.list_summaries(organizer_id=organizer_id, limit=int(limit))
