from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..access.gate import RoleGate
from ..access.policy import Action, Target
from ..common.datetime_utils import now_local
from ..core.enums import CheckInOutcome, RegistrationStatus
from ..core.exceptions import ConflictError, InvalidCodeError, InvalidForCheckInError, NotFoundError
from ..core.retry import RetryPolicy
from ..events.repository import EventRepository
from ..registrations.model import Registration
from ..registrations.repository import RegistrationRepository
from ..users.repository import UserRepository
from .model import CheckInResult
from .qr_codes import QRCodeSigner, decode_image

logger = logging.getLogger(__name__)


class CheckInService:
    """Marks registrations attended from scanned QR payloads.

    ``pending/approved --scan--> attended``; re-scanning an attended registration
    echoes the original check-in time; any other status is rejected.
    """

    def __init__(
        self,
        registrations: RegistrationRepository,
        events: EventRepository,
        users: UserRepository,
        gate: RoleGate,
        signer: QRCodeSigner,
        *,
        retry: RetryPolicy | None = None,
    ):
        self._registrations = registrations
        self._events = events
        self._users = users
        self._gate = gate
        self._signer = signer
        self._retry = retry or RetryPolicy()

    def _result(self, outcome: CheckInOutcome, reg: Registration) -> CheckInResult:
        student = self._users.get_by_uid(reg.student_id)
        return CheckInResult(
            outcome=outcome,
            registration_id=reg.registration_id,
            student_id=reg.student_id,
            checked_in_at=reg.checked_in_at,
            student_name=student.name if student else None,
        )

    def _authorize(self, caller_id: str, event_id: int):
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        caller = self._gate.require(caller_id, Action.CHECK_IN, Target(event_organizer_id=event.organizer_id))
        return event, caller

    def check_in(self, *, caller_id: str, event_id: int, code: str, now: datetime | None = None) -> CheckInResult:
        return self._process(caller_id=caller_id, event_id=event_id, read_code=lambda: code, now=now)

    def check_in_image(self, *, caller_id: str, event_id: int, image: bytes, now: datetime | None = None) -> CheckInResult:
        """Same as :meth:`check_in` with the code read from an uploaded picture."""

        return self._process(caller_id=caller_id, event_id=event_id, read_code=lambda: decode_image(image), now=now)

    def _process(
        self,
        *,
        caller_id: str,
        event_id: int,
        read_code: Callable[[], str],
        now: datetime | None,
    ) -> CheckInResult:
        def _attempt() -> CheckInResult:
            # the code is only read once the caller may scan for this event
            event, caller = self._authorize(caller_id, event_id)
            code = (read_code() or "").strip()

            payload = self._signer.parse(code)
            if payload.event_id != event.event_id:
                raise InvalidCodeError("This QR code belongs to a different event")

            reg = self._registrations.find_by_code(event_id=event.event_id, qr_code_data=code)
            if not reg:
                raise InvalidCodeError("No registration matches this QR code")

            if self._registrations.mark_attended(registration_id=reg.registration_id, checked_in_at=now or now_local()):
                logger.info("registration %s checked in by %s", reg.registration_id, caller.uid)
                return self._result(CheckInOutcome.CHECKED_IN, self._reload(reg.registration_id))

            # lost the conditional update: someone else checked in first, or status forbids it
            current = self._reload(reg.registration_id)
            if current.status == RegistrationStatus.ATTENDED:
                return self._result(CheckInOutcome.ALREADY_CHECKED_IN, current)
            if current.is_active:
                raise ConflictError("Registration changed during check-in")
            raise InvalidForCheckInError(f"Registration is {current.status.value} and cannot be checked in")

        return self._retry.run(_attempt, operation=f"check-in at event {event_id}")

    def _reload(self, registration_id: int) -> Registration:
        reg = self._registrations.get_by_id(registration_id)
        if not reg:
            raise NotFoundError("Registration not found")
        return reg
