from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RegistrationStatus
from .model import EventRegistrationRow, Registration, Reservation, ReserveOutcome, StudentRegistrationRow


class RegistrationRepository(Protocol):
    def reserve(self, *, event_id: int, student_id: str, qr_code_data: str, now: datetime) -> Reservation:
        """Atomically: event is published, pair has no active row, active count < capacity, insert pending."""

        raise NotImplementedError

    def reactivate(
        self,
        *,
        registration_id: int,
        expected: RegistrationStatus,
        new: RegistrationStatus,
        now: datetime,
    ) -> ReserveOutcome:
        """Atomically move an inactive registration back to an active status.

        Applies the same capacity and one-active-per-pair checks as :meth:`reserve`.
        Returns STALE when the stored status is no longer ``expected``.
        """

        raise NotImplementedError

    def change_status(self, *, registration_id: int, expected: RegistrationStatus, new: RegistrationStatus, now: datetime) -> bool:
        """Conditional update: only applies while the stored status is still ``expected``."""

        raise NotImplementedError

    def mark_attended(self, *, registration_id: int, checked_in_at: datetime) -> bool:
        """Set attended + check-in time only if the row is still pending/approved."""

        raise NotImplementedError

    def set_certificate(self, *, registration_id: int, certificate_url: str, now: datetime) -> bool:
        raise NotImplementedError

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        raise NotImplementedError

    def find_by_code(self, *, event_id: int, qr_code_data: str) -> Optional[Registration]:
        raise NotImplementedError

    def list_for_event(self, *, event_id: int, limit: int) -> Sequence[EventRegistrationRow]:
        """Newest registrations first."""

        raise NotImplementedError

    def list_for_student(self, *, student_id: str, limit: int) -> Sequence[StudentRegistrationRow]:
        raise NotImplementedError
