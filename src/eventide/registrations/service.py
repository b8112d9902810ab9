from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Sequence

from ..access.gate import RoleGate
from ..access.policy import Action, Target
from ..checkin.qr_codes import QRCodeSigner, render_png
from ..common.datetime_utils import iso_or_none, now_local
from ..common.validators import require_choice
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import RegistrationStatus, Role
from ..core.exceptions import (
    AlreadyRegisteredError,
    AuthorizationError,
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..core.retry import RetryPolicy
from ..events.model import Event
from ..events.repository import EventRepository
from .model import EventRegistrationRow, Registration, ReserveOutcome, StudentRegistrationRow
from .repository import RegistrationRepository
from .transitions import ensure_transition, reactivates

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "registration_id",
    "student_id",
    "student_name",
    "student_email",
    "register_no",
    "department",
    "status",
    "registered_at",
    "checked_in_at",
]


class RegistrationService:
    """Capacity guard + registration ledger use cases."""

    def __init__(
        self,
        registrations: RegistrationRepository,
        events: EventRepository,
        gate: RoleGate,
        signer: QRCodeSigner,
        *,
        retry: RetryPolicy | None = None,
    ):
        self._registrations = registrations
        self._events = events
        self._gate = gate
        self._signer = signer
        self._retry = retry or RetryPolicy()

    def _get_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def get_registration(self, registration_id: int) -> Registration:
        reg = self._registrations.get_by_id(int(registration_id))
        if not reg:
            raise NotFoundError("Registration not found")
        return reg

    def registration_target(self, reg: Registration) -> Target:
        event = self._get_event(reg.event_id)
        return Target(event_organizer_id=event.organizer_id, registration_student_id=reg.student_id)

    def register(self, *, caller_id: str, event_id: int, now: datetime | None = None) -> Registration:
        def _attempt() -> Registration:
            caller = self._gate.require(caller_id, Action.REGISTER)
            if caller.role != Role.STUDENT:
                raise AuthorizationError("Only students can register for events")

            reservation = self._registrations.reserve(
                event_id=int(event_id),
                student_id=caller.uid,
                qr_code_data=self._signer.derive(event_id=int(event_id), student_id=caller.uid),
                now=now or now_local(),
            )
            if reservation.outcome == ReserveOutcome.EVENT_UNAVAILABLE:
                raise NotFoundError("Event not found or not open for registration")
            if reservation.outcome == ReserveOutcome.ALREADY_REGISTERED:
                raise AlreadyRegisteredError("You are already registered for this event")
            if reservation.outcome == ReserveOutcome.FULL:
                raise CapacityExceededError("This event is full")
            reg = self.get_registration(int(reservation.registration_id))
            logger.info("student %s registered for event %s (registration %s)", caller.uid, event_id, reg.registration_id)
            return reg

        return self._retry.run(_attempt, operation=f"registration for event {event_id}")

    def update_registration_status(
        self,
        *,
        caller_id: str,
        registration_id: int,
        new_status,
        now: datetime | None = None,
    ) -> Registration:
        target_status = require_choice(new_status, RegistrationStatus, "Status")

        def _apply() -> Registration:
            current = self.get_registration(registration_id)
            caller = self._gate.require(
                caller_id, Action.CHANGE_REGISTRATION_STATUS, self.registration_target(current)
            )
            ensure_transition(current.status, target_status)
            stamp = now or now_local()

            if reactivates(current.status, target_status):
                outcome = self._registrations.reactivate(
                    registration_id=current.registration_id,
                    expected=current.status,
                    new=target_status,
                    now=stamp,
                )
                if outcome == ReserveOutcome.FULL:
                    raise CapacityExceededError("This event is full")
                if outcome == ReserveOutcome.ALREADY_REGISTERED:
                    raise AlreadyRegisteredError("The student already has an active registration for this event")
                if outcome != ReserveOutcome.CREATED:
                    raise ConflictError("Registration changed concurrently")
            elif not self._registrations.change_status(
                registration_id=current.registration_id,
                expected=current.status,
                new=target_status,
                now=stamp,
            ):
                raise ConflictError("Registration changed concurrently")

            logger.info(
                "registration %s: %s -> %s by %s",
                current.registration_id,
                current.status.value,
                target_status.value,
                caller.uid,
            )
            return self.get_registration(current.registration_id)

        return self._retry.run(_apply, operation=f"status change of registration {registration_id}")

    def get_for_owner_or_manager(self, *, caller_id: str, registration_id: int) -> Registration:
        reg = self.get_registration(registration_id)
        self._gate.require(caller_id, Action.VIEW_REGISTRATION, self.registration_target(reg))
        return reg

    def qr_code_png(self, *, caller_id: str, registration_id: int) -> bytes:
        reg = self.get_for_owner_or_manager(caller_id=caller_id, registration_id=registration_id)
        if not reg.is_active:
            raise ValidationError("The QR code is only available for pending or approved registrations")
        return render_png(reg.qr_code_data)

    def list_event_registrations(
        self,
        *,
        caller_id: str,
        event_id: int,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[EventRegistrationRow]:
        event = self._get_event(event_id)
        self._gate.require(caller_id, Action.LIST_EVENT_REGISTRATIONS, Target(event_organizer_id=event.organizer_id))
        return self._registrations.list_for_event(event_id=event.event_id, limit=int(limit))

    def list_my_registrations(self, *, caller_id: str, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[StudentRegistrationRow]:
        caller = self._gate.resolve(caller_id)
        return self._registrations.list_for_student(student_id=caller.uid, limit=int(limit))

    def export_attendance_csv(self, *, caller_id: str, event_id: int) -> str:
        """CSV of an event's registrations (one row per registration, newest first)."""

        rows = self.list_event_registrations(caller_id=caller_id, event_id=event_id)

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            reg = row.registration
            writer.writerow(
                {
                    "registration_id": reg.registration_id,
                    "student_id": reg.student_id,
                    "student_name": row.student_name or "",
                    "student_email": row.student_email or "",
                    "register_no": row.register_no or "",
                    "department": row.department or "",
                    "status": reg.status.value,
                    "registered_at": iso_or_none(reg.registered_at) or "",
                    "checked_in_at": iso_or_none(reg.checked_in_at) or "",
                }
            )
        return out.getvalue()
